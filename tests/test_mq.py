"""Tests for the Redis Streams publisher and consumer."""

from unittest.mock import AsyncMock

import pytest
import redis.asyncio as redis

from utils.mq import RedisStreamConsumer, RedisStreamPublisher


def stream_reply(stream: bytes, entries: list) -> list:
    return [[stream, entries]]


async def test_publish_appends_key_and_payload():
    publisher = RedisStreamPublisher(stream="pdf-jobs", redis_url="redis://test", maxlen=100)
    publisher.client = AsyncMock()
    publisher.client.xadd.return_value = b"1700000000000-0"

    entry_id = await publisher.publish("job_1", b'{"id": "job_1"}')

    assert entry_id == "1700000000000-0"
    publisher.client.xadd.assert_awaited_once_with(
        "pdf-jobs",
        {"key": "job_1", "payload": b'{"id": "job_1"}'},
        maxlen=100,
        approximate=True,
    )


async def test_publish_passes_extra_fields():
    publisher = RedisStreamPublisher(stream="pdf-jobs.dlq", redis_url="redis://test", maxlen=100)
    publisher.client = AsyncMock()
    publisher.client.xadd.return_value = b"1-0"

    await publisher.publish("rejected", b"garbage", error="bad", error_type="JobDecodeError")

    fields = publisher.client.xadd.await_args.args[1]
    assert fields == {"key": "rejected", "payload": b"garbage", "error": "bad", "error_type": "JobDecodeError"}


async def test_close_releases_client():
    publisher = RedisStreamPublisher(redis_url="redis://test")
    client = AsyncMock()
    publisher.client = client

    await publisher.close()

    client.aclose.assert_awaited_once()
    assert publisher.client is None


def make_consumer() -> RedisStreamConsumer:
    consumer = RedisStreamConsumer(
        stream="pdf-jobs",
        group="pdf-consumer-group",
        consumer_name="worker-1",
        redis_url="redis://test",
        batch_size=10,
        block_ms=50,
    )
    consumer.client = AsyncMock()
    return consumer


async def test_connect_creates_group_from_start_of_stream():
    consumer = make_consumer()

    await consumer.connect()

    consumer.client.xgroup_create.assert_awaited_once_with("pdf-jobs", "pdf-consumer-group", id="0", mkstream=True)


async def test_connect_tolerates_existing_group():
    consumer = make_consumer()
    consumer.client.xgroup_create.side_effect = redis.ResponseError("BUSYGROUP Consumer Group name already exists")

    await consumer.connect()


async def test_connect_propagates_other_errors():
    consumer = make_consumer()
    consumer.client.xgroup_create.side_effect = redis.ResponseError("WRONGTYPE Operation against a key")

    with pytest.raises(redis.ResponseError):
        await consumer.connect()


async def test_consume_replays_pending_then_reads_new_and_acks_everything():
    consumer = make_consumer()
    consumer.client.xreadgroup.side_effect = [
        stream_reply(b"pdf-jobs", [(b"1-0", {b"key": b"job_a", b"payload": b"pending"})]),
        stream_reply(b"pdf-jobs", []),
        stream_reply(
            b"pdf-jobs",
            [
                (b"2-0", {b"key": b"job_b", b"payload": b"bad"}),
                (b"3-0", {b"key": b"job_c", b"payload": b"good"}),
            ],
        ),
    ]
    handled = []

    async def handler(payload: bytes) -> None:
        handled.append(payload)
        if payload == b"bad":
            raise ValueError("poison message")
        if payload == b"good":
            consumer.stop()

    await consumer.consume(handler)

    assert handled == [b"pending", b"bad", b"good"]
    acked = [call.args[2] for call in consumer.client.xack.await_args_list]
    assert acked == ["1-0", "2-0", "3-0"]

    read_ids = [call.args[2] for call in consumer.client.xreadgroup.await_args_list]
    assert read_ids == [{"pdf-jobs": "0"}, {"pdf-jobs": "0"}, {"pdf-jobs": ">"}]


async def test_consume_acks_entries_without_payload():
    consumer = make_consumer()
    replies = [stream_reply(b"pdf-jobs", [(b"1-0", None)])]
    handler = AsyncMock()

    async def read(*args, **kwargs):
        if replies:
            return replies.pop(0)
        consumer.stop()
        return []

    consumer.client.xreadgroup.side_effect = read

    await consumer.consume(handler)

    handler.assert_not_awaited()
    consumer.client.xack.assert_awaited_once_with("pdf-jobs", "pdf-consumer-group", "1-0")


async def test_stop_before_consume_reads_nothing():
    consumer = make_consumer()
    consumer.stop()
    handler = AsyncMock()

    await consumer.consume(handler)

    consumer.client.xreadgroup.assert_not_awaited()
    handler.assert_not_awaited()
