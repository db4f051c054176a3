from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class MediaType(str, Enum):
    """Media categories accepted by the messaging provider"""
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    DOCUMENT = "document"


class MediaStatus(str, Enum):
    """PENDING -> UPLOADED or PENDING -> FAILED; both are terminal"""
    PENDING = "PENDING"
    UPLOADED = "UPLOADED"
    FAILED = "FAILED"


_ALLOWED_TRANSITIONS = {
    MediaStatus.PENDING: {MediaStatus.PENDING, MediaStatus.UPLOADED, MediaStatus.FAILED},
    MediaStatus.UPLOADED: {MediaStatus.UPLOADED},
    MediaStatus.FAILED: {MediaStatus.FAILED},
}


def can_transition(current: MediaStatus, new: MediaStatus) -> bool:
    return new in _ALLOWED_TRANSITIONS[current]


@dataclass(frozen=True)
class UploadMediaParams:
    """Arguments of a media upload, passed unchanged to every provider tried"""
    type: MediaType
    file_name: str
    mime_type: str
    data: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class MediaInfo:
    """Transient snapshot of a stored asset as reported by one storage provider"""
    id: str
    storage_provider: str
    mime_type: str
    status: MediaStatus = MediaStatus.UPLOADED
    file_name: Optional[str] = None
    size: Optional[int] = None
    url: Optional[str] = None
    sha256: Optional[str] = None
    media_type: Optional[MediaType] = None
    uploaded_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row):
        """Create MediaInfo from a media_assets row"""
        media_type = row.get('media_type')
        return cls(
            id=row['id'],
            storage_provider=row['storage_provider'],
            mime_type=row['mime_type'],
            status=MediaStatus(row.get('status') or MediaStatus.UPLOADED.value),
            file_name=row.get('file_name'),
            size=row.get('size'),
            url=row.get('url'),
            sha256=row.get('sha256'),
            media_type=MediaType(media_type) if media_type else None,
            uploaded_at=row.get('created_at'),
        )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'storage_provider': self.storage_provider,
            'mime_type': self.mime_type,
            'status': self.status.value,
            'file_name': self.file_name,
            'size': self.size,
            'url': self.url,
            'sha256': self.sha256,
            'media_type': self.media_type.value if self.media_type else None,
            'uploaded_at': self.uploaded_at.isoformat() if self.uploaded_at else None,
        }
