"""Local filesystem media storage"""
import asyncio
import hashlib
import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from ...core.exceptions import MediaNotFoundError
from ...models.media import MediaInfo, MediaStatus, MediaType, UploadMediaParams
from ...schemas.storage import LocalStorageConfig
from .base import StorageProvider
from .validation import get_file_extension

logger = logging.getLogger(__name__)

_META_SUFFIX = ".meta.json"


class LocalStorageProvider(StorageProvider):
    """
    Stores each asset as <upload_dir>/<id>.<ext> next to a JSON sidecar
    holding its metadata. Files are served by whatever serves base_url.
    """

    name = "local"

    def __init__(self, config: LocalStorageConfig, logger: Optional[logging.Logger] = None):
        self.upload_dir = Path(config.upload_dir)
        self.base_url = config.base_url.rstrip("/")
        self.logger = logger or logging.getLogger(__name__)

    def _meta_path(self, media_id: str) -> Path:
        return self.upload_dir / f"{media_id}{_META_SUFFIX}"

    def _url(self, stored_name: str) -> str:
        return f"{self.base_url}/{stored_name}"

    def _check_id(self, media_id: str):
        # ids are generated here; anything with a path separator is not ours
        if not media_id or "/" in media_id or "\\" in media_id or media_id.startswith("."):
            raise MediaNotFoundError(
                message=f"Media not found: {media_id}",
                status_code=404,
                details={"provider": self.name},
            )

    def _write(self, params: UploadMediaParams) -> MediaInfo:
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        media_id = uuid.uuid4().hex
        extension = get_file_extension(params.file_name)
        stored_name = f"{media_id}.{extension}" if extension else media_id

        (self.upload_dir / stored_name).write_bytes(params.data)

        info = MediaInfo(
            id=media_id,
            storage_provider=self.name,
            mime_type=params.mime_type,
            status=MediaStatus.UPLOADED,
            file_name=params.file_name,
            size=params.size,
            url=self._url(stored_name),
            sha256=hashlib.sha256(params.data).hexdigest(),
            media_type=params.type,
            uploaded_at=datetime.now(timezone.utc),
        )
        meta = {**info.to_dict(), "stored_name": stored_name}
        self._meta_path(media_id).write_text(json.dumps(meta), encoding="utf-8")
        return info

    def _read_meta(self, media_id: str) -> dict:
        self._check_id(media_id)
        meta_path = self._meta_path(media_id)
        if not meta_path.exists():
            raise MediaNotFoundError(
                message=f"Media not found: {media_id}",
                status_code=404,
                details={"provider": self.name},
            )
        return json.loads(meta_path.read_text(encoding="utf-8"))

    def _read(self, media_id: str) -> MediaInfo:
        meta = self._read_meta(media_id)
        uploaded_at = meta.get("uploaded_at")
        media_type = meta.get("media_type")
        return MediaInfo(
            id=meta["id"],
            storage_provider=self.name,
            mime_type=meta["mime_type"],
            status=MediaStatus(meta.get("status") or MediaStatus.UPLOADED.value),
            file_name=meta.get("file_name"),
            size=meta.get("size"),
            url=self._url(meta["stored_name"]),
            sha256=meta.get("sha256"),
            media_type=MediaType(media_type) if media_type else None,
            uploaded_at=datetime.fromisoformat(uploaded_at) if uploaded_at else None,
        )

    def _remove(self, media_id: str) -> bool:
        meta = self._read_meta(media_id)
        (self.upload_dir / meta["stored_name"]).unlink(missing_ok=True)
        self._meta_path(media_id).unlink(missing_ok=True)
        return True

    async def upload(self, params: UploadMediaParams) -> MediaInfo:
        info = await asyncio.to_thread(self._write, params)
        self.logger.info(f"Media stored locally: {params.file_name} -> {info.id}")
        return info

    async def get(self, media_id: str) -> MediaInfo:
        return await asyncio.to_thread(self._read, media_id)

    async def delete(self, media_id: str) -> bool:
        deleted = await asyncio.to_thread(self._remove, media_id)
        self.logger.info(f"Local media deleted: {media_id}")
        return deleted

    async def get_url(self, media_id: str) -> str:
        info = await self.get(media_id)
        return info.url
