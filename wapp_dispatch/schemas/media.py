"""Media schemas for API responses"""

from pydantic import BaseModel
from typing import Optional
from datetime import datetime

from ..models.media import MediaInfo


class MediaAssetResponse(BaseModel):
    """Schema for a stored media asset"""
    id: str
    storage_provider: str
    mime_type: str
    status: str
    file_name: Optional[str] = None
    size: Optional[int] = None
    url: Optional[str] = None
    sha256: Optional[str] = None
    media_type: Optional[str] = None
    uploaded_at: Optional[datetime] = None

    @classmethod
    def from_info(cls, info: MediaInfo) -> "MediaAssetResponse":
        return cls(
            id=info.id,
            storage_provider=info.storage_provider,
            mime_type=info.mime_type,
            status=info.status.value,
            file_name=info.file_name,
            size=info.size,
            url=info.url,
            sha256=info.sha256,
            media_type=info.media_type.value if info.media_type else None,
            uploaded_at=info.uploaded_at,
        )


class MediaUrlResponse(BaseModel):
    id: str
    url: str


class MediaDeleteResponse(BaseModel):
    id: str
    success: bool


class StorageInfoResponse(BaseModel):
    primary: str
    fallback: Optional[str] = None
    validation_enabled: bool
