"""Media storage - manager with failover over pluggable providers"""

from .base import StorageProvider
from .factory import create_storage_provider
from .local_provider import LocalStorageProvider
from .manager import MediaManager
from .s3_provider import S3StorageProvider
from .validation import ValidationConfig, ValidationResult, validate_file
from .whatsapp_provider import WhatsAppStorageProvider

__all__ = [
    "StorageProvider",
    "create_storage_provider",
    "LocalStorageProvider",
    "MediaManager",
    "S3StorageProvider",
    "ValidationConfig",
    "ValidationResult",
    "validate_file",
    "WhatsAppStorageProvider",
]
