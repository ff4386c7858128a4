"""
Redis Streams wrapper with consumer-group acknowledgment and error handling.

Jobs travel as stream entries with two fields:
- key: job ID (routing/diagnostics only, never interpreted by the consumer)
- payload: serialized job bytes

Consumers read through a consumer group and XACK every entry once the handler
has returned, whether it succeeded or not. Entries delivered but never
acknowledged (consumer crashed mid-handle) are replayed on the next start,
giving at-least-once hand-off.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

import redis.asyncio as redis

from utils.config import settings

logger = logging.getLogger(__name__)

MessageHandler = Callable[[bytes], Awaitable[None]]


def _decode(value: Any) -> Any:
    return value.decode("utf-8", errors="replace") if isinstance(value, bytes) else value


class RedisStreamPublisher:
    """Redis stream publisher with connection pooling."""

    def __init__(
        self,
        stream: Optional[str] = None,
        redis_url: Optional[str] = None,
        maxlen: Optional[int] = None,
    ) -> None:
        """Initialize Redis stream publisher.

        Args:
            stream: Stream name, defaults to settings.JOB_STREAM
            redis_url: Redis connection URL, defaults to settings.REDIS_URL
            maxlen: Approximate stream length cap, defaults to settings.JOB_STREAM_MAXLEN
        """
        self.stream = stream or settings.JOB_STREAM
        self.redis_url = redis_url or settings.REDIS_URL
        self.maxlen = maxlen if maxlen is not None else settings.JOB_STREAM_MAXLEN
        self.client: Optional[redis.Redis] = None

    async def connect(self) -> None:
        """Establish Redis connection with connection pooling."""
        if self.client is None:
            self.client = redis.from_url(
                self.redis_url,
                max_connections=settings.REDIS_MAX_CONNECTIONS,
                decode_responses=False,  # Payloads are raw orjson bytes
            )

    async def publish(self, key: str, payload: bytes, **fields: str) -> str:
        """Append one message to the stream.

        Args:
            key: Message key (the job ID)
            payload: Serialized message body
            **fields: Additional string fields stored alongside the payload

        Returns:
            Stream entry ID assigned by Redis

        Raises:
            redis.RedisError: If the write fails
        """
        if self.client is None:
            await self.connect()

        entry_id = await self.client.xadd(
            self.stream,
            {"key": key, "payload": payload, **fields},
            maxlen=self.maxlen,
            approximate=True,
        )
        return _decode(entry_id)

    async def close(self) -> None:
        """Close Redis connection and cleanup resources."""
        if self.client:
            await self.client.aclose()
            self.client = None


class RedisStreamConsumer:
    """Consumer-group reader that hands each stream entry to an async handler."""

    def __init__(
        self,
        stream: Optional[str] = None,
        group: Optional[str] = None,
        consumer_name: Optional[str] = None,
        redis_url: Optional[str] = None,
        batch_size: Optional[int] = None,
        block_ms: Optional[int] = None,
    ) -> None:
        """Initialize Redis stream consumer.

        Args:
            stream: Stream name, defaults to settings.JOB_STREAM
            group: Consumer group, defaults to settings.CONSUMER_GROUP
            consumer_name: Consumer name within the group, defaults to settings.CONSUMER_NAME
            redis_url: Redis connection URL, defaults to settings.REDIS_URL
            batch_size: Max entries per read, defaults to settings.CONSUMER_BATCH_SIZE
            block_ms: Read blocking time, defaults to settings.CONSUMER_BLOCK_MS
        """
        self.stream = stream or settings.JOB_STREAM
        self.group = group or settings.CONSUMER_GROUP
        self.consumer_name = consumer_name or settings.CONSUMER_NAME
        self.redis_url = redis_url or settings.REDIS_URL
        self.batch_size = batch_size or settings.CONSUMER_BATCH_SIZE
        self.block_ms = block_ms or settings.CONSUMER_BLOCK_MS
        self.client: Optional[redis.Redis] = None
        self._stop_event = asyncio.Event()

    async def connect(self) -> None:
        """Establish Redis connection and make sure the consumer group exists."""
        if self.client is None:
            self.client = redis.from_url(
                self.redis_url,
                max_connections=settings.REDIS_MAX_CONNECTIONS,
                decode_responses=False,
            )

        try:
            await self.client.xgroup_create(self.stream, self.group, id="0", mkstream=True)
            logger.info("Created consumer group %s on stream %s", self.group, self.stream)
        except redis.ResponseError as e:
            if "BUSYGROUP" not in str(e):
                raise

    async def consume(self, handler: MessageHandler) -> None:
        """Deliver stream entries to handler until stop() is called.

        Pending entries left over from a previous run are replayed first.

        Args:
            handler: Async callback receiving the raw payload bytes
        """
        if self.client is None:
            await self.connect()

        logger.info("Starting message consumption (stream=%s, group=%s)", self.stream, self.group)

        await self._read_loop(handler, start_id="0")
        await self._read_loop(handler, start_id=">")

    async def _read_loop(self, handler: MessageHandler, start_id: str) -> None:
        replaying = start_id != ">"

        while not self._stop_event.is_set():
            try:
                response = await self.client.xreadgroup(
                    self.group,
                    self.consumer_name,
                    {self.stream: start_id},
                    count=self.batch_size,
                    block=None if replaying else self.block_ms,
                )

                entries = [entry for _, stream_entries in response or [] for entry in stream_entries]
                if replaying and not entries:
                    return

                for entry_id, fields in entries:
                    await self._deliver(entry_id, fields, handler)
                    if self._stop_event.is_set():
                        break

            except redis.RedisError as e:
                logger.error("Redis error during consumption", extra={"error": str(e)})
                await asyncio.sleep(1)  # Brief pause before retry

    async def _deliver(self, entry_id: Any, fields: Optional[dict], handler: MessageHandler) -> None:
        entry_id = _decode(entry_id)
        fields = fields or {}
        key = _decode(fields.get(b"key"))
        payload = fields.get(b"payload")

        logger.info("Received message: key=%s, id=%s", key, entry_id)

        if payload is None:
            logger.warning("Message has no payload, skipping", extra={"entry_id": entry_id})
        else:
            try:
                await handler(payload)
            except Exception as e:
                logger.error(
                    "Failed to handle message: %s",
                    e,
                    extra={"entry_id": entry_id, "key": key},
                )
            else:
                logger.info("Successfully processed message %s", entry_id)

        # Acknowledge regardless of outcome: delivery received, not work completed
        await self.client.xack(self.stream, self.group, entry_id)

    def stop(self) -> None:
        """Signal the consumption loop to stop after the current message."""
        self._stop_event.set()

    async def close(self) -> None:
        """Close Redis connection and cleanup resources."""
        if self.client:
            await self.client.aclose()
            self.client = None
