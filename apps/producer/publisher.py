"""
Job Publisher for Producer Service

Publishes a PDF job to the Redis job stream through the retrying submitter.

Features:
- Redis Streams integration via production wrapper
- Bounded retries with fixed delay (SUBMIT_MAX_ATTEMPTS, SUBMIT_RETRY_DELAY)
- Cancellation of pending retries on SIGINT/SIGTERM
- Structured logging

Usage:
    from apps.producer.publisher import publish_job

    entry_id = await publish_job(job)
"""

import asyncio
import logging
import signal
from typing import Optional

from apps.producer.submitter import JobSubmitter
from utils.mq import RedisStreamPublisher
from utils.schemas import Job

logger = logging.getLogger(__name__)


async def publish_job(job: Job, publisher: Optional[RedisStreamPublisher] = None) -> str:
    """
    Publish a job to the job stream, cancelling retries on SIGINT/SIGTERM.

    Args:
        job: Validated job to publish
        publisher: Stream publisher, defaults to one on settings.JOB_STREAM

    Returns:
        Stream entry ID of the published job

    Raises:
        SubmitError: If every delivery attempt failed
        SubmitCancelledError: If a signal arrived while waiting to retry
    """
    publisher = publisher or RedisStreamPublisher()
    cancel_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, cancel_event.set)

    try:
        submitter = JobSubmitter(publisher)
        entry_id = await submitter.submit(job, cancel_event=cancel_event)

        logger.info(
            "Published PDF job",
            extra={
                "stream": publisher.stream,
                "job_id": job.id,
                "entry_id": entry_id,
                "file_count": len(job.file_path_list),
            },
        )
        return entry_id

    except Exception as e:
        logger.error(
            "Failed to publish job",
            extra={
                "stream": publisher.stream,
                "job_id": job.id,
                "error": str(e),
            },
        )
        raise

    finally:
        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(signum)
        await publisher.close()
