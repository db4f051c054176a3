from typing import Optional

import httpx

from ...core.exceptions import ConfigurationError
from ...schemas.storage import (
    LocalStorageConfig,
    S3StorageConfig,
    StorageConfig,
    WhatsAppStorageConfig,
)
from .base import StorageProvider
from .local_provider import LocalStorageProvider
from .s3_provider import S3StorageProvider
from .whatsapp_provider import WhatsAppStorageProvider


def create_storage_provider(
    config: StorageConfig,
    http_client: Optional[httpx.AsyncClient] = None,
) -> StorageProvider:
    """Build the provider matching a validated storage config variant"""
    if isinstance(config, WhatsAppStorageConfig):
        return WhatsAppStorageProvider(config, http_client=http_client)
    if isinstance(config, LocalStorageConfig):
        return LocalStorageProvider(config)
    if isinstance(config, S3StorageConfig):
        return S3StorageProvider(config)
    raise ConfigurationError(f"Unsupported storage provider: {getattr(config, 'provider', config)!r}")
