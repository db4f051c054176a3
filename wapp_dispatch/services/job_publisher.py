"""Job channel producer - publishes jobs for the message worker"""
import logging
from typing import Optional

import redis.asyncio as redis

from ..schemas.jobs import Job

logger = logging.getLogger(__name__)


class JobPublisher:
    """
    Publishes jobs on a Redis pub/sub channel.

    Delivery is at-most-once: a job published while no worker is
    subscribed is lost.
    """

    def __init__(self, redis_client: redis.Redis, channel: str, logger: Optional[logging.Logger] = None):
        self._redis = redis_client
        self.channel = channel
        self.logger = logger or logging.getLogger(__name__)

    async def publish(self, job: Job) -> int:
        """
        Publish one job

        Returns:
            Number of subscribers that received it
        """
        receivers = await self._redis.publish(self.channel, job.to_json())
        if receivers == 0:
            self.logger.warning(f"Job published to '{self.channel}' but no worker is subscribed")
        else:
            self.logger.info(f"Job published to '{self.channel}' ({receivers} receivers)")
        return receivers
