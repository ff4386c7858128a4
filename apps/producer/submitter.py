"""
Job Submitter - Publish Jobs with Bounded Retries

Publishes a serialized job to the job stream, keyed by job ID. Failed attempts
are retried after a fixed delay up to max_attempts; running out of attempts
raises SubmitError, which the producer treats as fatal.

Usage:
    from apps.producer.submitter import JobSubmitter
    from utils.mq import RedisStreamPublisher

    submitter = JobSubmitter(RedisStreamPublisher())
    entry_id = await submitter.submit(job)
"""

import asyncio
import logging
from typing import Optional, Protocol

from tenacity import AsyncRetrying, RetryError, stop_after_attempt, wait_fixed

from utils.config import settings
from utils.errors import SubmitCancelledError, SubmitError
from utils.schemas import Job, serialize_job

logger = logging.getLogger(__name__)


class JobPublisher(Protocol):
    """Queue side of the hand-off: publish one keyed message, return its ack ID."""

    async def publish(self, key: str, payload: bytes) -> str:
        ...


class JobSubmitter:
    """Hands jobs to the queue, retrying failed publishes."""

    def __init__(
        self,
        publisher: JobPublisher,
        max_attempts: Optional[int] = None,
        attempt_timeout: Optional[float] = None,
        retry_delay: Optional[float] = None,
    ) -> None:
        """Initialize submitter.

        Args:
            publisher: Queue publisher
            max_attempts: Delivery attempts before giving up, defaults to settings.SUBMIT_MAX_ATTEMPTS
            attempt_timeout: Seconds allowed per attempt, defaults to settings.SUBMIT_ATTEMPT_TIMEOUT
            retry_delay: Seconds between attempts, defaults to settings.SUBMIT_RETRY_DELAY
        """
        self.publisher = publisher
        self.max_attempts = max_attempts or settings.SUBMIT_MAX_ATTEMPTS
        self.attempt_timeout = attempt_timeout or settings.SUBMIT_ATTEMPT_TIMEOUT
        self.retry_delay = retry_delay if retry_delay is not None else settings.SUBMIT_RETRY_DELAY

    async def submit(self, job: Job, cancel_event: Optional[asyncio.Event] = None) -> str:
        """Publish a job, retrying on failure.

        Args:
            job: Validated job to publish
            cancel_event: When set during a retry wait, submission stops

        Returns:
            Acknowledgment ID of the first successful publish

        Raises:
            SubmitError: If every attempt failed
            SubmitCancelledError: If cancel_event was set between attempts
        """
        payload = serialize_job(job)

        async def sleep(seconds: float) -> None:
            if cancel_event is None:
                await asyncio.sleep(seconds)
                return
            try:
                await asyncio.wait_for(cancel_event.wait(), timeout=seconds)
            except asyncio.TimeoutError:
                return
            raise SubmitCancelledError(f"Submission of job {job.id} cancelled")

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_fixed(self.retry_delay),
            sleep=sleep,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    attempt_number = attempt.retry_state.attempt_number
                    try:
                        entry_id = await asyncio.wait_for(
                            self.publisher.publish(job.id, payload),
                            timeout=self.attempt_timeout,
                        )
                    except Exception as e:
                        logger.warning(
                            "Attempt %d/%d failed to send message: %s",
                            attempt_number,
                            self.max_attempts,
                            str(e) or type(e).__name__,
                            extra={"job_id": job.id},
                        )
                        raise
        except RetryError as e:
            raise SubmitError(attempts=self.max_attempts) from e.last_attempt.exception()

        logger.info("Message sent successfully: key=%s, id=%s", job.id, entry_id)
        return entry_id
