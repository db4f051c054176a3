"""
Tests for the media asset repository

Run with: pytest wapp_dispatch/services/test_media_assets.py -v
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from .media_assets import MediaAssetRepository, next_status
from ..models.media import MediaInfo, MediaStatus, MediaType, can_transition


def async_cm(value):
    cm = MagicMock()
    cm.__aenter__ = AsyncMock(return_value=value)
    cm.__aexit__ = AsyncMock(return_value=False)
    return cm


def make_repo(current_status=None):
    """Repository over a fake pool; fetchrow echoes the status it was asked to write"""
    conn = MagicMock()
    conn.transaction = MagicMock(return_value=async_cm(None))
    conn.fetchval = AsyncMock(return_value=current_status)
    conn.execute = AsyncMock(return_value="DELETE 1")

    async def fetchrow(query, *args):
        status = args[8] if query.lstrip().startswith("INSERT") else args[4]
        return {
            "id": args[0],
            "storage_provider": "s3",
            "mime_type": "image/png",
            "status": status,
        }

    conn.fetchrow = AsyncMock(side_effect=fetchrow)
    pool = MagicMock()
    pool.acquire = MagicMock(return_value=async_cm(conn))
    return MediaAssetRepository(pool), conn


def make_info(status=MediaStatus.UPLOADED):
    return MediaInfo(
        id="media-1",
        storage_provider="s3",
        mime_type="image/png",
        status=status,
        media_type=MediaType.IMAGE,
    )


class TestCanTransition:

    def test_pending_moves_anywhere(self):
        for new in MediaStatus:
            assert can_transition(MediaStatus.PENDING, new)

    def test_terminal_states_are_final(self):
        assert not can_transition(MediaStatus.UPLOADED, MediaStatus.FAILED)
        assert not can_transition(MediaStatus.UPLOADED, MediaStatus.PENDING)
        assert not can_transition(MediaStatus.FAILED, MediaStatus.UPLOADED)
        assert not can_transition(MediaStatus.FAILED, MediaStatus.PENDING)
        assert can_transition(MediaStatus.FAILED, MediaStatus.FAILED)


class TestNextStatus:

    def test_new_row_takes_requested_status(self):
        assert next_status("m", None, MediaStatus.PENDING) == MediaStatus.PENDING

    def test_disallowed_change_keeps_current(self, caplog):
        assert next_status("m", "FAILED", MediaStatus.UPLOADED) == MediaStatus.FAILED
        assert "ignoring status change to UPLOADED" in caplog.text


@pytest.mark.asyncio
class TestRecord:

    async def test_failed_row_is_not_reverted(self):
        repo, conn = make_repo(current_status="FAILED")

        info = await repo.record(make_info(MediaStatus.UPLOADED))

        args = conn.fetchrow.await_args.args
        assert args[9] == "FAILED"
        assert info.status == MediaStatus.FAILED

    async def test_upsert_guards_terminal_status(self):
        repo, conn = make_repo(current_status="UPLOADED")

        await repo.record(make_info(MediaStatus.PENDING))

        query, *args = conn.fetchrow.await_args.args
        assert "CASE WHEN media_assets.status = $10" in query
        assert args[9] == "PENDING"
        assert args[8] == "UPLOADED"

    async def test_pending_row_moves_to_uploaded(self):
        repo, conn = make_repo(current_status="PENDING")

        info = await repo.record(make_info(MediaStatus.UPLOADED))

        assert info.status == MediaStatus.UPLOADED

    async def test_missing_row_inserts_requested_status(self):
        repo, conn = make_repo(current_status=None)

        info = await repo.record(make_info(MediaStatus.PENDING))

        assert conn.fetchval.await_args.args[1] == "media-1"
        assert info.status == MediaStatus.PENDING
        conn.transaction.assert_called_once()


@pytest.mark.asyncio
class TestUpdate:

    async def test_missing_row_returns_none(self):
        repo, conn = make_repo(current_status=None)

        assert await repo.update(make_info()) is None
        conn.fetchrow.assert_not_awaited()

    async def test_uploaded_row_stays_uploaded(self):
        repo, conn = make_repo(current_status="UPLOADED")

        info = await repo.update(make_info(MediaStatus.FAILED))

        assert conn.fetchrow.await_args.args[5] == "UPLOADED"
        assert info.status == MediaStatus.UPLOADED

    async def test_pending_row_fails(self):
        repo, conn = make_repo(current_status="PENDING")

        info = await repo.update(make_info(MediaStatus.FAILED))

        assert info.status == MediaStatus.FAILED
