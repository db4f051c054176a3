"""Contact lookup - turns a contact reference into a phone number"""
import asyncpg
import logging
from typing import Optional

from ..core.exceptions import NotFoundError, UpstreamError

logger = logging.getLogger(__name__)


class ContactResolver:
    """
    Reads the phone number of a contact from the contacts table.

    One query per call on the shared pool. No caching and no retry:
    the worker decides what to do with a failed lookup.
    """

    def __init__(self, pool: asyncpg.Pool, logger: Optional[logging.Logger] = None):
        self._pool = pool
        self.logger = logger or logging.getLogger(__name__)

    async def resolve(self, contact_ref: str) -> str:
        """
        Get the stored phone number of a contact

        Raises:
            NotFoundError: no contact with that id, or the contact has no phone
            UpstreamError: the database could not be queried
        """
        try:
            async with self._pool.acquire() as conn:
                row = await conn.fetchrow(
                    "SELECT id, phone FROM contacts WHERE id = $1",
                    contact_ref,
                )
        except (asyncpg.PostgresError, OSError) as e:
            self.logger.error(f"Contact lookup failed for {contact_ref}: {e}")
            raise UpstreamError(
                message="Contact lookup failed",
                details={"contact_ref": contact_ref, "error": str(e)},
                retryable=True,
            ) from e

        if not row:
            raise NotFoundError(
                message=f"Contact not found: {contact_ref}",
                status_code=404,
                details={"contact_ref": contact_ref},
            )

        phone = (row['phone'] or '').strip()
        if not phone:
            raise NotFoundError(
                message=f"Contact {contact_ref} has no phone number",
                status_code=404,
                details={"contact_ref": contact_ref},
            )

        self.logger.debug(f"Resolved contact {contact_ref}")
        return phone
