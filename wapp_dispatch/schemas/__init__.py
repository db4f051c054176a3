"""Pydantic schemas - wire formats, configuration variants and API responses"""

from .jobs import Job, MediaRef
from .storage import (
    StorageConfig,
    WhatsAppStorageConfig,
    LocalStorageConfig,
    S3StorageConfig,
)
from .messages import PublishJobResponse, DeadLetterEntry
from .media import (
    MediaAssetResponse,
    MediaUrlResponse,
    MediaDeleteResponse,
    StorageInfoResponse,
)

__all__ = [
    "Job",
    "MediaRef",
    "StorageConfig",
    "WhatsAppStorageConfig",
    "LocalStorageConfig",
    "S3StorageConfig",
    "PublishJobResponse",
    "DeadLetterEntry",
    "MediaAssetResponse",
    "MediaUrlResponse",
    "MediaDeleteResponse",
    "StorageInfoResponse",
]
