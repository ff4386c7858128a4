"""
Extraction Consumer - Job Stream Service

Consumes PDF jobs from the Redis job stream and fans each one out into
concurrent Tika extractions. This is the entry point of the consuming side.

Features:
- Redis Streams consumer group with at-least-once hand-off
- Global extraction concurrency ceiling (EXTRACTION_CONCURRENCY)
- Optional dead-letter stream for rejected payloads (DLQ_STREAM)
- Graceful shutdown: stop reading, drain in-flight extractions, exit
- A second SIGINT/SIGTERM skips the drain

Usage:
    # Consumer mode (default)
    python -m apps.consumer

    # Handle one message, drain and exit
    RUN_ONCE=true python -m apps.consumer
"""

import asyncio
import logging
import os
import signal
import sys
from typing import Optional

from apps.consumer.drain import DrainController
from apps.consumer.extraction import TextExtractor, TikaClient
from apps.consumer.handler import JobFanOutHandler
from utils.config import settings
from utils.logging import setup_logging
from utils.mq import RedisStreamConsumer, RedisStreamPublisher

logger = logging.getLogger(__name__)


class ExtractionConsumer:
    """
    Service wiring the job stream to the fan-out handler.

    Handles:
    - Redis stream subscription management
    - Dead-letter publishing for rejected payloads
    - Signal handling and drain on shutdown
    """

    def __init__(
        self,
        run_once: bool = False,
        extractor: Optional[TextExtractor] = None,
        subscriber: Optional[RedisStreamConsumer] = None,
        dead_letter_publisher: Optional[RedisStreamPublisher] = None,
    ) -> None:
        """
        Initialize extraction consumer.

        Args:
            run_once: If True, handle one message, drain and exit
            extractor: Extraction port, defaults to a TikaClient on settings.TIKA_URL
            subscriber: Job stream consumer, defaults to settings.JOB_STREAM
            dead_letter_publisher: Publisher for rejected payloads, defaults to
                settings.DLQ_STREAM when that is set
        """
        self.run_once = run_once
        self.extractor = extractor or TikaClient()
        self.subscriber = subscriber or RedisStreamConsumer()
        if dead_letter_publisher is None and settings.DLQ_STREAM:
            dead_letter_publisher = RedisStreamPublisher(stream=settings.DLQ_STREAM)
        self.dead_letter_publisher = dead_letter_publisher

        self.drain = DrainController()
        self.handler = JobFanOutHandler(
            extractor=self.extractor,
            permits=asyncio.Semaphore(settings.EXTRACTION_CONCURRENCY),
            drain=self.drain,
            dead_letter=self.publish_dead_letter if dead_letter_publisher else None,
        )
        self.shutdown_event = asyncio.Event()
        self.force_exit_event = asyncio.Event()
        self._processed_count = 0

        logger.info(
            "ExtractionConsumer initialized (run_once=%s, stream=%s, concurrency=%d)",
            run_once,
            self.subscriber.stream,
            settings.EXTRACTION_CONCURRENCY,
        )

    async def handle_message(self, payload: bytes) -> None:
        """Pass one queue payload to the fan-out handler."""
        try:
            await self.handler.handle_message(payload)
            self._processed_count += 1
        finally:
            if self.run_once:
                logger.info("RUN_ONCE mode: signaling shutdown after handling message")
                self.subscriber.stop()
                self.shutdown_event.set()

    async def publish_dead_letter(self, payload: bytes, error: Exception) -> None:
        """Copy a rejected payload to the dead-letter stream."""
        try:
            entry_id = await self.dead_letter_publisher.publish(
                "rejected",
                payload,
                error=str(error),
                error_type=type(error).__name__,
            )
            logger.info("Rejected payload copied to dead-letter stream (id=%s)", entry_id)
        except Exception as e:
            logger.error("Failed to publish dead letter", extra={"error": str(e)})

    def setup_signal_handlers(self) -> None:
        """Setup handlers for graceful shutdown on SIGINT/SIGTERM."""
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(signum, self._on_signal, signum)

    def _on_signal(self, signum: int) -> None:
        if self.shutdown_event.is_set():
            logger.warning("Received signal %s again, forcing exit", signum)
            self.force_exit_event.set()
        else:
            logger.info("Received signal %s, initiating graceful shutdown", signum)
            self.shutdown_event.set()

    async def start(self) -> None:
        """
        Start consumer and process messages until shutdown signal.

        Once shutdown begins, no new message is read; extractions already
        launched are allowed to finish before connections are closed.
        """
        self.setup_signal_handlers()

        logger.info("Starting PDF consumer")

        try:
            await self.subscriber.connect()
            logger.info(
                "Connected to Redis",
                extra={"stream": self.subscriber.stream, "group": self.subscriber.group},
            )

            subscription_task = asyncio.create_task(self.subscriber.consume(self.handle_message))
            shutdown_task = asyncio.create_task(self.shutdown_event.wait())

            logger.info("Consumer started, waiting for messages...")

            await asyncio.wait(
                [shutdown_task, subscription_task],
                return_when=asyncio.FIRST_COMPLETED,
            )

            # Stop pulling new messages; the loop exits after its current read
            self.subscriber.stop()
            try:
                await subscription_task
            finally:
                shutdown_task.cancel()
                await self.wait_for_extractions()

            logger.info(
                "Consumer shutdown complete",
                extra={"processed_events": self._processed_count},
            )

        except Exception as e:
            logger.error("Consumer failed", extra={"error": str(e)}, exc_info=True)
            raise

        finally:
            await self.subscriber.close()
            await self._close_extractor()
            if self.dead_letter_publisher:
                await self.dead_letter_publisher.close()
            logger.info("Consumer connections closed")

    async def wait_for_extractions(self) -> None:
        """Wait for in-flight extractions unless a forced exit is requested."""
        drain_task = asyncio.create_task(self.drain.wait_all())
        force_task = asyncio.create_task(self.force_exit_event.wait())

        done, pending = await asyncio.wait(
            [drain_task, force_task],
            return_when=asyncio.FIRST_COMPLETED,
        )
        for task in pending:
            task.cancel()

        if force_task in done:
            logger.warning("Forced exit with %d extractions still in flight", self.drain.in_flight)

    async def _close_extractor(self) -> None:
        close = getattr(self.extractor, "close", None)
        if close is not None:
            await close()


async def main() -> None:
    """Main entry point for the extraction consumer."""
    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
    run_once = os.getenv("RUN_ONCE", "false").lower() in ("true", "1", "yes")

    consumer = ExtractionConsumer(run_once=run_once)

    try:
        await consumer.start()
    except Exception as e:
        logger.error("Consumer failed", extra={"error": str(e)}, exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
