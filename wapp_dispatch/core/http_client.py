"""
Shared HTTP client with connection pooling.

One long-lived client is created per process and reused by the messaging
client and the WhatsApp storage provider, so concurrent dispatches share
TCP connections instead of opening one per message.
"""
import httpx
import logging

logger = logging.getLogger(__name__)


def create_http_client(timeout: float = 30.0, connect_timeout: float = 10.0) -> httpx.AsyncClient:
    """
    Create an HTTP client with connection pooling.

    Should be closed on shutdown via close_http_client().
    """
    client = httpx.AsyncClient(
        timeout=httpx.Timeout(timeout, connect=connect_timeout),
        limits=httpx.Limits(
            max_connections=100,
            max_keepalive_connections=20,
            keepalive_expiry=30.0
        ),
        http2=True,  # Graph API supports HTTP/2 multiplexing
    )
    logger.info("HTTP client created with connection pooling")
    return client


async def close_http_client(client: httpx.AsyncClient):
    """Close a shared HTTP client and release its connections"""
    if client is not None and not client.is_closed:
        await client.aclose()
        logger.info("HTTP client closed")
