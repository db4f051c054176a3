"""S3 (or S3-compatible) media storage"""
import asyncio
import hashlib
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import quote, unquote

import boto3
from botocore.exceptions import ClientError

from ...core.exceptions import MediaNotFoundError
from ...models.media import MediaInfo, MediaStatus, MediaType, UploadMediaParams
from ...schemas.storage import S3StorageConfig
from .base import StorageProvider
from .validation import get_file_extension

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


class S3StorageProvider(StorageProvider):
    """
    Stores each asset as one object keyed <prefix><id>.<ext>. File name,
    media type and checksum travel as object metadata, so `get` is a
    single HEAD request.

    boto3 is blocking; every call runs in a worker thread.
    """

    name = "s3"

    def __init__(
        self,
        config: S3StorageConfig,
        client=None,
        key_prefix: str = "media/",
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config
        self.bucket = config.bucket
        self.key_prefix = key_prefix
        self.logger = logger or logging.getLogger(__name__)
        self._s3 = client or boto3.client(
            's3',
            region_name=config.region,
            endpoint_url=config.endpoint_url,
            aws_access_key_id=config.access_key_id,
            aws_secret_access_key=config.secret_access_key,
        )

    def _key(self, media_id: str) -> str:
        return f"{self.key_prefix}{media_id}"

    def _url(self, key: str) -> str:
        if self.config.public_base_url:
            return f"{self.config.public_base_url.rstrip('/')}/{quote(key)}"
        return self._s3.generate_presigned_url(
            'get_object',
            Params={'Bucket': self.bucket, 'Key': key},
            ExpiresIn=self.config.presign_expiry,
        )

    def _not_found(self, media_id: str) -> MediaNotFoundError:
        return MediaNotFoundError(
            message=f"Media not found: {media_id}",
            status_code=404,
            details={"provider": self.name, "bucket": self.bucket},
        )

    def _put(self, params: UploadMediaParams) -> MediaInfo:
        extension = get_file_extension(params.file_name)
        media_id = f"{uuid.uuid4().hex}.{extension}" if extension else uuid.uuid4().hex
        key = self._key(media_id)
        sha256 = hashlib.sha256(params.data).hexdigest()

        self._s3.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=params.data,
            ContentType=params.mime_type,
            Metadata={
                'file-name': quote(params.file_name),
                'media-type': params.type.value,
                'sha256': sha256,
            },
        )
        return MediaInfo(
            id=media_id,
            storage_provider=self.name,
            mime_type=params.mime_type,
            status=MediaStatus.UPLOADED,
            file_name=params.file_name,
            size=params.size,
            url=self._url(key),
            sha256=sha256,
            media_type=params.type,
            uploaded_at=datetime.now(timezone.utc),
        )

    def _head(self, media_id: str) -> MediaInfo:
        key = self._key(media_id)
        try:
            head = self._s3.head_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') in _NOT_FOUND_CODES:
                raise self._not_found(media_id) from e
            raise

        metadata = head.get('Metadata', {})
        media_type = metadata.get('media-type')
        file_name = metadata.get('file-name')
        return MediaInfo(
            id=media_id,
            storage_provider=self.name,
            mime_type=head.get('ContentType') or 'application/octet-stream',
            status=MediaStatus.UPLOADED,
            file_name=unquote(file_name) if file_name else None,
            size=head.get('ContentLength'),
            url=self._url(key),
            sha256=metadata.get('sha256'),
            media_type=MediaType(media_type) if media_type else None,
            uploaded_at=head.get('LastModified'),
        )

    def _delete(self, media_id: str) -> bool:
        # S3 DELETE succeeds for missing keys, so check existence first
        self._head(media_id)
        self._s3.delete_object(Bucket=self.bucket, Key=self._key(media_id))
        return True

    async def upload(self, params: UploadMediaParams) -> MediaInfo:
        info = await asyncio.to_thread(self._put, params)
        self.logger.info(f"Media stored in s3://{self.bucket}/{self._key(info.id)}")
        return info

    async def get(self, media_id: str) -> MediaInfo:
        return await asyncio.to_thread(self._head, media_id)

    async def delete(self, media_id: str) -> bool:
        deleted = await asyncio.to_thread(self._delete, media_id)
        self.logger.info(f"S3 media deleted: {media_id}")
        return deleted

    async def get_url(self, media_id: str) -> str:
        info = await self.get(media_id)
        return info.url
