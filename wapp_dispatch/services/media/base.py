from abc import ABC, abstractmethod

from ...models.media import MediaInfo, UploadMediaParams


class StorageProvider(ABC):
    """
    One media storage backend.

    Implementations raise their backend-native errors; the media manager
    treats any exception as a failed attempt.
    """

    name: str = ""

    @abstractmethod
    async def upload(self, params: UploadMediaParams) -> MediaInfo:
        """Store bytes and return the stored asset"""

    @abstractmethod
    async def get(self, media_id: str) -> MediaInfo:
        """Current metadata of a stored asset"""

    @abstractmethod
    async def delete(self, media_id: str) -> bool:
        """Remove an asset; True when the backend confirmed the deletion"""

    @abstractmethod
    async def get_url(self, media_id: str) -> str:
        """URL the asset can be fetched from"""

    async def close(self):
        """Release backend resources"""
        return None
