"""Media asset records - what was stored, where and in which state"""
import asyncpg
import logging
from typing import Optional

from ..models.media import MediaInfo, MediaStatus, MediaType, can_transition

logger = logging.getLogger(__name__)

_LOCK_STATUS_SQL = "SELECT status FROM media_assets WHERE id = $1 FOR UPDATE"


def next_status(media_id: str, current: Optional[str], requested: MediaStatus) -> MediaStatus:
    """
    Status to persist for a row currently in `current` (None: no row yet).

    UPLOADED and FAILED are terminal; a request to leave them keeps the
    stored status.
    """
    if current is None:
        return requested
    current = MediaStatus(current)
    if can_transition(current, requested):
        return requested
    logger.warning(
        f"Media asset {media_id} is {current.value}, ignoring status change to {requested.value}"
    )
    return current


class MediaAssetRepository:
    """
    Persists MediaInfo snapshots in the media_assets table.

    The media manager never writes here; HTTP handlers record an asset
    after the manager returns, including which provider actually served it.
    """

    def __init__(self, pool: asyncpg.Pool):
        self._pool = pool

    async def record(self, info: MediaInfo, media_type: Optional[MediaType] = None) -> MediaInfo:
        """Insert or refresh the record of an uploaded asset"""
        media_type = media_type or info.media_type
        async with self._pool.acquire() as conn:
            async with conn.transaction():
                current = await conn.fetchval(_LOCK_STATUS_SQL, info.id)
                status = next_status(info.id, current, info.status)
                # The CASE covers a row inserted concurrently after the lock query
                row = await conn.fetchrow(
                    """
                    INSERT INTO media_assets (
                        id, storage_provider, media_type, mime_type, file_name,
                        size, sha256, url, status
                    )
                    VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
                    ON CONFLICT (id) DO UPDATE SET
                        storage_provider = EXCLUDED.storage_provider,
                        mime_type = EXCLUDED.mime_type,
                        file_name = COALESCE(EXCLUDED.file_name, media_assets.file_name),
                        size = COALESCE(EXCLUDED.size, media_assets.size),
                        sha256 = COALESCE(EXCLUDED.sha256, media_assets.sha256),
                        url = COALESCE(EXCLUDED.url, media_assets.url),
                        status = CASE WHEN media_assets.status = $10
                            THEN EXCLUDED.status ELSE media_assets.status END,
                        updated_at = NOW()
                    RETURNING *
                    """,
                    info.id,
                    info.storage_provider,
                    media_type.value if media_type else None,
                    info.mime_type,
                    info.file_name,
                    info.size,
                    info.sha256,
                    info.url,
                    status.value,
                    MediaStatus.PENDING.value,
                )
        logger.debug(f"Media asset recorded: {info.storage_provider}:{info.id} ({row['status']})")
        return MediaInfo.from_row(row)

    async def update(self, info: MediaInfo) -> Optional[MediaInfo]:
        """
        Refresh url/checksum/status from a newer snapshot.

        Terminal states are kept: a FAILED or UPLOADED row never goes back
        to PENDING or over to the other terminal state.
        """
        async with self._pool.acquire() as conn:
            async with conn.transaction():
                current = await conn.fetchval(_LOCK_STATUS_SQL, info.id)
                if current is None:
                    return None
                status = next_status(info.id, current, info.status)
                row = await conn.fetchrow(
                    """
                    UPDATE media_assets SET
                        url = COALESCE($2, url),
                        sha256 = COALESCE($3, sha256),
                        size = COALESCE($4, size),
                        status = $5,
                        updated_at = NOW()
                    WHERE id = $1
                    RETURNING *
                    """,
                    info.id,
                    info.url,
                    info.sha256,
                    info.size,
                    status.value,
                )
        return MediaInfo.from_row(row) if row else None

    async def get(self, media_id: str) -> Optional[MediaInfo]:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow("SELECT * FROM media_assets WHERE id = $1", media_id)
        return MediaInfo.from_row(row) if row else None

    async def delete(self, media_id: str) -> bool:
        async with self._pool.acquire() as conn:
            result = await conn.execute("DELETE FROM media_assets WHERE id = $1", media_id)
        return result.endswith(" 1")
