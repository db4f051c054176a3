"""Provider-native media storage through the WhatsApp Cloud API /media endpoints"""
import logging
from datetime import datetime, timezone
from typing import Optional

import httpx

from ...core.exceptions import MediaNotFoundError, UpstreamError
from ...models.media import MediaInfo, MediaStatus, UploadMediaParams
from ...schemas.storage import WhatsAppStorageConfig
from ..whatsapp_client import WhatsAppClientConfig, WhatsAppCloudClient
from .base import StorageProvider

logger = logging.getLogger(__name__)


class WhatsAppStorageProvider(StorageProvider):
    name = "whatsapp"

    def __init__(
        self,
        config: WhatsAppStorageConfig,
        http_client: Optional[httpx.AsyncClient] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.logger = logger or logging.getLogger(__name__)
        self.client = WhatsAppCloudClient(
            WhatsAppClientConfig(
                base_url=config.base_url,
                access_token=config.access_token,
                phone_number_id=config.phone_number_id,
                timeout=config.timeout,
            ),
            http_client=http_client,
            logger=self.logger,
        )

    async def upload(self, params: UploadMediaParams) -> MediaInfo:
        media_id = await self.client.upload_media(
            params.type.value, params.file_name, params.mime_type, params.data
        )
        return MediaInfo(
            id=media_id,
            storage_provider=self.name,
            mime_type=params.mime_type,
            status=MediaStatus.UPLOADED,
            file_name=params.file_name,
            size=params.size,
            media_type=params.type,
            uploaded_at=datetime.now(timezone.utc),
        )

    async def get(self, media_id: str) -> MediaInfo:
        try:
            data = await self.client.get_media(media_id)
        except UpstreamError as e:
            if e.status_code == 404:
                raise MediaNotFoundError(
                    message=f"Media not found: {media_id}",
                    status_code=404,
                    details={"provider": self.name},
                ) from e
            raise
        return MediaInfo(
            id=data["id"],
            storage_provider=self.name,
            mime_type=data.get("mime_type") or "application/octet-stream",
            size=data.get("file_size"),
            url=data.get("url"),
            sha256=data.get("sha256"),
        )

    async def delete(self, media_id: str) -> bool:
        result = await self.client.delete_media(media_id)
        return result["success"]

    async def get_url(self, media_id: str) -> str:
        info = await self.get(media_id)
        if not info.url:
            raise UpstreamError(
                message=f"WhatsApp API returned no URL for media {media_id}",
                details={"provider": self.name},
                retryable=False,
            )
        return info.url

    async def close(self):
        await self.client.close()
