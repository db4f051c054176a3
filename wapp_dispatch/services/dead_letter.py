"""Dead-letter sink for jobs the worker gave up on"""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

import redis.asyncio as redis

from ..core.exceptions import error_summary

logger = logging.getLogger(__name__)


class RedisDeadLetterSink:
    """
    Keeps failed jobs in a capped Redis list (newest first) so they can be
    inspected and re-published by hand.
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        key: str,
        max_length: int = 10000,
        logger: Optional[logging.Logger] = None,
    ):
        self._redis = redis_client
        self.key = key
        self.max_length = max_length
        self.logger = logger or logging.getLogger(__name__)

    async def push(self, raw: Union[str, bytes], error: BaseException, attempts: int) -> None:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", errors="replace")
        entry = {
            "payload": raw,
            "attempts": attempts,
            "failed_at": datetime.now(timezone.utc).isoformat(),
            **error_summary(error),
        }
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.lpush(self.key, json.dumps(entry, default=str))
            pipe.ltrim(self.key, 0, self.max_length - 1)
            await pipe.execute()
        self.logger.info(f"Job dead-lettered to '{self.key}' after {attempts} attempt(s)")

    async def recent(self, limit: int = 100) -> List[Dict[str, Any]]:
        """Most recent dead-lettered entries"""
        items = await self._redis.lrange(self.key, 0, limit - 1)
        return [json.loads(item) for item in items]

    async def count(self) -> int:
        return await self._redis.llen(self.key)
