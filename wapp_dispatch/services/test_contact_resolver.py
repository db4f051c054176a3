"""Tests for contact lookup"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from .contact_resolver import ContactResolver
from ..core.exceptions import NotFoundError, UpstreamError


def make_pool(row=None, error=None):
    conn = AsyncMock()
    if error is not None:
        conn.fetchrow = AsyncMock(side_effect=error)
    else:
        conn.fetchrow = AsyncMock(return_value=row)

    acquire = MagicMock()
    acquire.__aenter__ = AsyncMock(return_value=conn)
    acquire.__aexit__ = AsyncMock(return_value=False)
    pool = MagicMock()
    pool.acquire = MagicMock(return_value=acquire)
    return pool, conn


@pytest.mark.asyncio
class TestContactResolver:

    async def test_returns_stored_phone(self):
        pool, conn = make_pool(row={"id": "c1", "phone": "9198xxxxxxx"})

        phone = await ContactResolver(pool).resolve("c1")

        assert phone == "9198xxxxxxx"
        conn.fetchrow.assert_awaited_once_with("SELECT id, phone FROM contacts WHERE id = $1", "c1")

    async def test_missing_contact(self):
        pool, _ = make_pool(row=None)

        with pytest.raises(NotFoundError):
            await ContactResolver(pool).resolve("c404")

    async def test_contact_without_phone(self):
        pool, _ = make_pool(row={"id": "c1", "phone": None})

        with pytest.raises(NotFoundError):
            await ContactResolver(pool).resolve("c1")

    async def test_database_failure_is_retryable_upstream_error(self):
        pool, _ = make_pool(error=ConnectionRefusedError("connection refused"))

        with pytest.raises(UpstreamError) as exc_info:
            await ContactResolver(pool).resolve("c1")

        assert exc_info.value.retryable is True
