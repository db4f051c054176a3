"""Tests for the dead-letter sink and the job publisher"""

import json

import pytest
from unittest.mock import AsyncMock, MagicMock

from .dead_letter import RedisDeadLetterSink
from .job_publisher import JobPublisher
from ..core.exceptions import UpstreamError
from ..schemas.jobs import Job


def make_redis():
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[1, True])
    pipe.__aenter__ = AsyncMock(return_value=pipe)
    pipe.__aexit__ = AsyncMock(return_value=False)

    client = MagicMock()
    client.pipeline = MagicMock(return_value=pipe)
    client.lrange = AsyncMock()
    client.llen = AsyncMock()
    client.publish = AsyncMock()
    return client, pipe


@pytest.mark.asyncio
class TestRedisDeadLetterSink:

    async def test_push_writes_capped_entry(self):
        client, pipe = make_redis()
        sink = RedisDeadLetterSink(client, "dl", max_length=100)
        error = UpstreamError("invalid parameter", status_code=400, details={"code": 131008})

        await sink.push(b'{"textBody": "hi"}', error, 1)

        client.pipeline.assert_called_once_with(transaction=True)
        key, raw_entry = pipe.lpush.call_args.args
        entry = json.loads(raw_entry)
        assert key == "dl"
        assert entry["payload"] == '{"textBody": "hi"}'
        assert entry["attempts"] == 1
        assert entry["error_type"] == "UpstreamError"
        assert entry["status_code"] == 400
        assert entry["details"] == {"code": 131008}
        assert entry["failed_at"]
        pipe.ltrim.assert_called_once_with("dl", 0, 99)
        pipe.execute.assert_awaited_once()

    async def test_push_failure_propagates(self):
        client, pipe = make_redis()
        pipe.execute.side_effect = ConnectionError("redis down")
        sink = RedisDeadLetterSink(client, "dl")

        with pytest.raises(ConnectionError):
            await sink.push("{}", ValueError("x"), 3)

    async def test_recent(self):
        client, _ = make_redis()
        client.lrange.return_value = [json.dumps({"payload": "{}", "attempts": 2})]
        sink = RedisDeadLetterSink(client, "dl")

        entries = await sink.recent(5)

        assert entries == [{"payload": "{}", "attempts": 2}]
        client.lrange.assert_awaited_once_with("dl", 0, 4)

    async def test_count(self):
        client, _ = make_redis()
        client.llen.return_value = 7

        assert await RedisDeadLetterSink(client, "dl").count() == 7


@pytest.mark.asyncio
class TestJobPublisher:

    async def test_publishes_wire_format(self):
        client, _ = make_redis()
        client.publish.return_value = 2
        publisher = JobPublisher(client, "message-queue")

        receivers = await publisher.publish(Job(contact_ref="c1", template_name="welcome"))

        assert receivers == 2
        channel, payload = client.publish.await_args.args
        assert channel == "message-queue"
        assert json.loads(payload) == {"contactRef": "c1", "templateName": "welcome"}

    async def test_no_subscribers_is_reported(self):
        client, _ = make_redis()
        client.publish.return_value = 0
        logger = MagicMock()
        publisher = JobPublisher(client, "message-queue", logger=logger)

        assert await publisher.publish(Job(recipient_phone="+1555", text_body="hi")) == 0
        logger.warning.assert_called_once()
