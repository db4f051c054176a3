"""
Media Manager - one entry point over a primary storage provider and an
optional fallback

Each operation runs on the primary. If it raises and a fallback is
configured, the same operation runs once on the fallback with the same
arguments; the fallback's error (if any) is what the caller sees.
Without a fallback the primary's error propagates unchanged.
"""
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

import httpx

from ...models.media import MediaInfo, UploadMediaParams
from ...schemas.storage import StorageConfig
from .base import StorageProvider
from .factory import create_storage_provider
from .validation import DEFAULT_VALIDATION_CONFIG, ValidationConfig, ensure_valid_file

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MediaManager:

    def __init__(
        self,
        primary: StorageProvider,
        fallback: Optional[StorageProvider] = None,
        validation_config: ValidationConfig = DEFAULT_VALIDATION_CONFIG,
        logger: Optional[logging.Logger] = None,
    ):
        self.primary = primary
        self.fallback = fallback
        self.validation_config = validation_config
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_config(
        cls,
        primary_config: StorageConfig,
        fallback_config: Optional[StorageConfig] = None,
        validation_config: ValidationConfig = DEFAULT_VALIDATION_CONFIG,
        http_client: Optional[httpx.AsyncClient] = None,
        logger: Optional[logging.Logger] = None,
    ) -> "MediaManager":
        primary = create_storage_provider(primary_config, http_client=http_client)
        fallback = (
            create_storage_provider(fallback_config, http_client=http_client)
            if fallback_config is not None else None
        )
        return cls(primary, fallback, validation_config=validation_config, logger=logger)

    async def _with_failover(
        self,
        operation: str,
        call: Callable[[StorageProvider], Awaitable[T]],
    ) -> T:
        try:
            return await call(self.primary)
        except Exception as e:
            if self.fallback is None:
                raise
            self.logger.warning(
                f"Primary storage '{self.primary.name}' failed on {operation} "
                f"({type(e).__name__}: {e}), trying fallback '{self.fallback.name}'"
            )
        return await call(self.fallback)

    async def upload(self, params: UploadMediaParams) -> MediaInfo:
        """
        Validate and store a file

        Raises:
            MediaValidationError: before any provider is called
        """
        if self.validation_config.enabled:
            ensure_valid_file(
                params.file_name,
                params.mime_type,
                params.data,
                media_type=params.type,
                config=self.validation_config,
            )
        info = await self._with_failover("upload", lambda provider: provider.upload(params))
        self.logger.info(
            f"Media uploaded: {params.file_name} ({params.size} bytes) "
            f"-> {info.storage_provider}:{info.id}"
        )
        return info

    async def get(self, media_id: str) -> MediaInfo:
        return await self._with_failover("get", lambda provider: provider.get(media_id))

    async def delete(self, media_id: str) -> bool:
        return await self._with_failover("delete", lambda provider: provider.delete(media_id))

    async def get_url(self, media_id: str) -> str:
        return await self._with_failover("get_url", lambda provider: provider.get_url(media_id))

    def get_storage_info(self) -> Dict[str, Any]:
        return {
            "primary": self.primary.name,
            "fallback": self.fallback.name if self.fallback else None,
            "validation_enabled": self.validation_config.enabled,
        }

    async def close(self):
        await self.primary.close()
        if self.fallback is not None:
            await self.fallback.close()
