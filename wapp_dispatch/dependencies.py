"""
Route dependencies.

Shared clients are built once in the app lifespan and kept on app.state;
routes get them through these functions so tests can put fakes there.
"""
from fastapi import Request
import asyncpg
import redis.asyncio as redis

from .services.dead_letter import RedisDeadLetterSink
from .services.job_publisher import JobPublisher
from .services.media.manager import MediaManager
from .services.media_assets import MediaAssetRepository


def get_db_pool(request: Request) -> asyncpg.Pool:
    return request.app.state.db_pool


def get_redis(request: Request) -> redis.Redis:
    return request.app.state.redis


def get_job_publisher(request: Request) -> JobPublisher:
    return request.app.state.job_publisher


def get_dead_letter(request: Request) -> RedisDeadLetterSink:
    return request.app.state.dead_letter


def get_media_manager(request: Request) -> MediaManager:
    return request.app.state.media_manager


def get_media_assets(request: Request) -> MediaAssetRepository:
    return request.app.state.media_assets
