"""
Message Worker - consumes jobs from the Redis job channel and sends WhatsApp messages

Flow:
- Subscription reader puts raw payloads into a bounded queue
- N consumers take payloads off the queue and run process_job
- process_job: parse -> dispatch (per-attempt timeout) -> retry transient
  failures with backoff -> dead-letter what still fails

The channel is Redis pub/sub, so delivery is at-most-once: jobs published
while no worker is subscribed are lost.

A dispatch attempt that times out may still have been accepted by the
provider, so retrying it can deliver the same message twice. Set
WORKER_RETRY_TIMEOUTS=false to dead-letter timed-out jobs instead.

Run:
    $ python -m wapp_dispatch.workers.message_worker

Or with environment overrides:
    $ WORKER_MAX_CONCURRENT_JOBS=10 python -m wapp_dispatch.workers.message_worker
"""

import asyncio
import logging
import signal
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional, Union

import redis.asyncio as redis

from ..core.database import check_database
from ..core.exceptions import (
    JobParseError,
    UpstreamError,
    ValidationError,
    error_summary,
    is_retryable_error,
)
from ..models.message import JobOutcome, JobResult
from ..schemas.jobs import Job

logger = logging.getLogger(__name__)


@dataclass
class WorkerConfig:
    """Message worker configuration"""
    channel: str = "message-queue"
    max_concurrent_jobs: int = 5
    queue_size: int = 100
    job_timeout: float = 30.0
    max_retries: int = 2
    retry_delay: float = 5.0
    retry_timeouts: bool = True
    health_check_interval: float = 60.0
    stats_interval: float = 300.0
    graceful_shutdown_timeout: float = 10.0

    @classmethod
    def from_settings(cls, settings) -> "WorkerConfig":
        return cls(
            channel=settings.worker_queue_channel,
            max_concurrent_jobs=settings.worker_max_concurrent_jobs,
            queue_size=settings.worker_queue_size,
            job_timeout=settings.worker_job_timeout,
            max_retries=settings.worker_max_retries,
            retry_delay=settings.worker_retry_delay,
            retry_timeouts=settings.worker_retry_timeouts,
            health_check_interval=settings.worker_health_check_interval,
            stats_interval=settings.worker_stats_interval,
            graceful_shutdown_timeout=settings.worker_graceful_shutdown_timeout,
        )

    def backoff(self, attempt: int) -> float:
        """Delay before retry number `attempt` (1-based), doubling each time"""
        return self.retry_delay * (2 ** (attempt - 1))


@dataclass
class WorkerStats:
    """Counters for the periodic stats line and health endpoint"""
    started_at: float = field(default_factory=time.monotonic)
    total_jobs: int = 0
    sent: int = 0
    failed: int = 0
    dead_lettered: int = 0
    dropped: int = 0
    retries: int = 0
    in_flight: int = 0
    max_in_flight: int = 0
    total_processing_time: float = 0.0
    last_job_at: Optional[datetime] = None
    healthy: bool = True

    def record(self, result: JobResult):
        self.total_jobs += 1
        self.total_processing_time += result.duration
        self.last_job_at = datetime.now(timezone.utc)
        if result.outcome == JobOutcome.SENT:
            self.sent += 1
        elif result.outcome == JobOutcome.DROPPED:
            self.dropped += 1
        elif result.outcome == JobOutcome.DEAD_LETTERED:
            self.dead_lettered += 1
        else:
            self.failed += 1

    @property
    def average_processing_time(self) -> float:
        return self.total_processing_time / self.total_jobs if self.total_jobs else 0.0

    @property
    def uptime(self) -> float:
        return time.monotonic() - self.started_at

    def to_dict(self) -> dict:
        return {
            "total_jobs": self.total_jobs,
            "sent": self.sent,
            "failed": self.failed,
            "dead_lettered": self.dead_lettered,
            "dropped": self.dropped,
            "retries": self.retries,
            "in_flight": self.in_flight,
            "max_in_flight": self.max_in_flight,
            "average_processing_time": round(self.average_processing_time, 3),
            "uptime": round(self.uptime, 1),
            "last_job_at": self.last_job_at.isoformat() if self.last_job_at else None,
            "healthy": self.healthy,
        }


class MessageWorker:
    """
    Воркер отправки сообщений из очереди задач.

    In-flight dispatches never exceed config.max_concurrent_jobs: the
    subscription reader blocks on the bounded queue instead of spawning
    a task per message.
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        dispatcher,
        config: WorkerConfig = None,
        dead_letter=None,
        pool=None,
        logger: Optional[logging.Logger] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Args:
            redis_client: client used for the subscription and health checks
            dispatcher: object with `async dispatch(job) -> MessageHandle`
            config: worker settings
            dead_letter: object with `async push(raw, error, attempts)`, or None
            pool: asyncpg pool, only used by the health check
            sleep: backoff sleep, replaceable in tests
        """
        self._redis = redis_client
        self.dispatcher = dispatcher
        self.config = config or WorkerConfig()
        self.dead_letter = dead_letter
        self._pool = pool
        self.logger = logger or logging.getLogger(__name__)
        self._sleep = sleep

        self.stats = WorkerStats()
        self._running = False
        self._stop_event = asyncio.Event()
        self._queue: Optional[asyncio.Queue] = None
        self._consumers: List[asyncio.Task] = []
        self._background: List[asyncio.Task] = []

    # ==================== JOB PROCESSING ====================

    async def _attempt(self, job: Job):
        try:
            return await asyncio.wait_for(self.dispatcher.dispatch(job), timeout=self.config.job_timeout)
        except asyncio.TimeoutError as e:
            raise UpstreamError(
                message=f"Dispatch timed out after {self.config.job_timeout}s",
                details={"timeout": self.config.job_timeout},
                retryable=self.config.retry_timeouts,
            ) from e

    async def process_job(self, raw: Union[str, bytes]) -> JobResult:
        """
        Handle one payload from the channel. Never raises.

        Returns:
            What happened to the job (sent / dropped / dead-lettered / failed)
        """
        job_id = uuid.uuid4().hex[:8]
        started = time.monotonic()
        size = len(raw.encode("utf-8")) if isinstance(raw, str) else len(raw)
        self.logger.info(f"[{job_id}] Job received ({size} bytes)")

        try:
            job = Job.from_raw(raw)
        except JobParseError as e:
            result = JobResult(
                job_id=job_id,
                outcome=JobOutcome.DROPPED,
                duration=time.monotonic() - started,
                error=e.message,
                error_type=type(e).__name__,
            )
            self.logger.warning(f"[{job_id}] Job dropped: {e.message} {e.details}")
            self.stats.record(result)
            return result

        attempts = 0
        error: Optional[BaseException] = None
        while True:
            attempts += 1
            try:
                handle = await self._attempt(job)
            except ValidationError as e:
                result = JobResult(
                    job_id=job_id,
                    outcome=JobOutcome.DROPPED,
                    attempts=attempts,
                    duration=time.monotonic() - started,
                    error=e.message,
                    error_type=type(e).__name__,
                )
                self.logger.warning(f"[{job_id}] Job dropped: {e.message} {job.log_context()}")
                self.stats.record(result)
                return result
            except Exception as e:
                error = e
            else:
                result = JobResult(
                    job_id=job_id,
                    outcome=JobOutcome.SENT,
                    attempts=attempts,
                    duration=time.monotonic() - started,
                    handle=handle,
                )
                self.logger.info(
                    f"[{job_id}] Message sent: {handle.kind} id={handle.message_id} "
                    f"attempts={attempts} in {result.duration:.2f}s"
                )
                self.stats.record(result)
                return result

            if not is_retryable_error(error) or attempts > self.config.max_retries:
                break

            delay = self.config.backoff(attempts)
            self.stats.retries += 1
            self.logger.warning(
                f"[{job_id}] Attempt {attempts} failed ({type(error).__name__}: {error}), "
                f"retrying in {delay:.1f}s"
            )
            await self._sleep(delay)

        return await self._give_up(job_id, raw, error, attempts, started)

    async def _give_up(
        self,
        job_id: str,
        raw: Union[str, bytes],
        error: BaseException,
        attempts: int,
        started: float,
    ) -> JobResult:
        summary = error_summary(error)
        outcome = JobOutcome.FAILED
        if self.dead_letter is not None:
            try:
                await self.dead_letter.push(raw, error, attempts)
                outcome = JobOutcome.DEAD_LETTERED
            except Exception as e:
                self.logger.error(f"[{job_id}] Dead-letter write failed, job lost: {e}")

        result = JobResult(
            job_id=job_id,
            outcome=outcome,
            attempts=attempts,
            duration=time.monotonic() - started,
            error=summary["error"],
            error_type=summary["error_type"],
        )
        self.logger.error(
            f"[{job_id}] Job {outcome.value} after {attempts} attempt(s): "
            f"{summary['error_type']}: {summary['error']}"
        )
        self.stats.record(result)
        return result

    # ==================== WORKER POOL ====================

    async def start_pool(self):
        """Create the bounded queue and the consumer tasks"""
        self._queue = asyncio.Queue(maxsize=self.config.queue_size)
        self._consumers = [
            asyncio.create_task(self._consume(i), name=f"message-consumer-{i}")
            for i in range(self.config.max_concurrent_jobs)
        ]

    async def submit(self, raw: Union[str, bytes]):
        """Queue a payload; waits while the queue is full"""
        await self._queue.put(raw)

    async def _consume(self, index: int):
        while True:
            raw = await self._queue.get()
            self.stats.in_flight += 1
            self.stats.max_in_flight = max(self.stats.max_in_flight, self.stats.in_flight)
            try:
                await self.process_job(raw)
            except Exception as e:
                self.logger.error(f"Consumer {index} failed on a job: {e}", exc_info=True)
            finally:
                self.stats.in_flight -= 1
                self._queue.task_done()

    async def drain(self, timeout: float = None):
        """Let queued and in-flight jobs finish up to `timeout`, then cancel the consumers"""
        timeout = self.config.graceful_shutdown_timeout if timeout is None else timeout
        if self._queue is not None:
            try:
                await asyncio.wait_for(self._queue.join(), timeout=timeout)
            except asyncio.TimeoutError:
                self.logger.warning(
                    f"Graceful shutdown timed out after {timeout}s, "
                    f"{self._queue.qsize()} queued and {self.stats.in_flight} in-flight jobs abandoned"
                )
        await self._cancel(self._consumers)
        self._consumers = []

    @staticmethod
    async def _cancel(tasks: List[asyncio.Task]):
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    # ==================== HEALTH & STATS ====================

    async def health_check(self) -> bool:
        """Ping Redis and, when a pool is configured, the database"""
        try:
            await self._redis.ping()
            if self._pool is not None:
                await check_database(self._pool)
            self.stats.healthy = True
        except Exception as e:
            self.logger.error(f"Health check failed: {e}")
            self.stats.healthy = False
        return self.stats.healthy

    async def _periodic(self, interval: float, action: Callable[[], Awaitable[None]]):
        while self._running:
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=interval)
                return
            except asyncio.TimeoutError:
                pass
            await action()

    async def _log_stats(self):
        self.logger.info(f"Worker stats: {self.stats.to_dict()}")

    # ==================== LIFECYCLE ====================

    async def run(self):
        """Subscribe to the job channel and process jobs until stop() is called"""
        self.logger.info(
            f"Starting Message Worker (channel: {self.config.channel}, "
            f"concurrency: {self.config.max_concurrent_jobs}, retries: {self.config.max_retries})"
        )
        self._running = True
        self._stop_event.clear()
        await self.start_pool()
        self._background = [
            asyncio.create_task(
                self._periodic(self.config.health_check_interval, self.health_check),
                name="message-worker-health",
            ),
            asyncio.create_task(
                self._periodic(self.config.stats_interval, self._log_stats),
                name="message-worker-stats",
            ),
        ]

        pubsub = None
        try:
            pubsub = self._redis.pubsub()
            await pubsub.subscribe(self.config.channel)
            self.logger.info(f"Subscribed to '{self.config.channel}'")

            while self._running:
                message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
                if message is None or message.get("type") != "message":
                    continue
                await self.submit(message["data"])
        except asyncio.CancelledError:
            self.logger.info("Worker cancelled")
            raise
        finally:
            self._running = False
            self._stop_event.set()
            if pubsub is not None:
                try:
                    await pubsub.unsubscribe(self.config.channel)
                    await pubsub.aclose()
                except Exception as e:
                    self.logger.warning(f"Failed to close subscription: {e}")
            await self.drain()
            await self._cancel(self._background)
            self._background = []
            await self._log_stats()
            self.logger.info("Message Worker stopped")

    async def stop(self):
        """Stop reading new jobs; run() drains in-flight ones and returns"""
        if self._running:
            self.logger.info("Stopping Message Worker...")
        self._running = False
        self._stop_event.set()


async def main():
    """Entry point для запуска воркера"""
    from ..config import settings
    from ..core.database import close_pool, create_pool_from_settings
    from ..core.http_client import close_http_client, create_http_client
    from ..core.logger import setup_logging
    from ..core.redis import close_redis_client, create_redis_client
    from ..services.contact_resolver import ContactResolver
    from ..services.dead_letter import RedisDeadLetterSink
    from ..services.dispatcher import OutboundDispatcher
    from ..services.whatsapp_client import WhatsAppClientConfig, WhatsAppCloudClient

    setup_logging(settings.log_level, settings.log_file)

    logger.info("=" * 60)
    logger.info("MESSAGE WORKER - WhatsApp outbound dispatch")
    logger.info("=" * 60)

    # Fail fast on missing credentials before touching the network
    messaging_config = WhatsAppClientConfig.from_settings(settings)
    http_client = create_http_client(timeout=settings.whatsapp_timeout)
    messaging_client = WhatsAppCloudClient(messaging_config, http_client=http_client)

    pool = await create_pool_from_settings(settings)
    redis_client = await create_redis_client(settings.redis_url)

    worker = MessageWorker(
        redis_client=redis_client,
        dispatcher=OutboundDispatcher(ContactResolver(pool), messaging_client),
        config=WorkerConfig.from_settings(settings),
        dead_letter=RedisDeadLetterSink(
            redis_client,
            settings.worker_dead_letter_key,
            max_length=settings.worker_dead_letter_max_length,
        ),
        pool=pool,
    )

    # Setup signal handlers
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, lambda: asyncio.create_task(worker.stop()))

    try:
        await worker.run()
    finally:
        await close_http_client(http_client)
        await close_redis_client(redis_client)
        await close_pool(pool)


if __name__ == "__main__":
    asyncio.run(main())
