import asyncio
import asyncpg
import logging

logger = logging.getLogger(__name__)


async def create_pool(
    host: str,
    port: int,
    database: str,
    user: str,
    password: str,
    min_size: int = 2,
    max_size: int = 10,
    timeout: float = 30.0,
) -> asyncpg.Pool:
    """
    Create the asyncpg pool shared by every concurrent handler.

    Raises:
        asyncio.TimeoutError: pool creation took longer than `timeout`
    """
    try:
        pool = await asyncio.wait_for(
            asyncpg.create_pool(
                host=host,
                port=port,
                database=database,
                user=user,
                password=password,
                min_size=min_size,
                max_size=max_size,
                command_timeout=30,
            ),
            timeout=timeout
        )
        logger.info(
            f"Database pool created: {host}:{port}/{database} "
            f"(min={min_size}, max={max_size})"
        )
        return pool
    except asyncio.TimeoutError:
        logger.error(f"Database pool creation timed out after {timeout} seconds")
        raise
    except Exception as e:
        logger.error(f"Failed to create database pool: {e}")
        raise


async def create_pool_from_settings(settings) -> asyncpg.Pool:
    return await create_pool(
        host=settings.postgres_host,
        port=settings.postgres_port,
        database=settings.postgres_db,
        user=settings.postgres_user,
        password=settings.postgres_password,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
    )


async def close_pool(pool: asyncpg.Pool):
    """Close the database connection pool"""
    if pool is not None:
        await pool.close()
        logger.info("Database pool closed")


async def check_database(pool: asyncpg.Pool) -> bool:
    """Run SELECT 1 on a pooled connection"""
    async with pool.acquire() as conn:
        return await conn.fetchval("SELECT 1") == 1
