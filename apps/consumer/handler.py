"""
Job Fan-Out Handler - Queue Message to Concurrent Extractions

Turns one queue message into one background extraction task per file.

Two phases:
- accept(): decode and validate the job. Nothing is launched for a payload
  that fails here.
- dispatch(): register and launch the extraction tasks, then return without
  waiting for them.

handle_message() runs both and returns as soon as every task is launched, so
the queue acknowledges the message on delivery rather than on completion.
Extraction results are lost if the process dies after acknowledgment but
before a task finishes.

Each task waits for a permit from the shared semaphore before calling the
extractor, which bounds extraction calls across all jobs.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from apps.consumer.drain import DrainController
from apps.consumer.extraction import TextExtractor
from utils.errors import ExtractionError, JobDecodeError, JobValidationError
from utils.schemas import ExtractionTask, Job, deserialize_job

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 200

DeadLetterHook = Callable[[bytes, Exception], Awaitable[None]]


class JobFanOutHandler:
    """Consumes serialized jobs and fans them out to the extractor."""

    def __init__(
        self,
        extractor: TextExtractor,
        permits: asyncio.Semaphore,
        drain: DrainController,
        dead_letter: Optional[DeadLetterHook] = None,
    ) -> None:
        """
        Initialize the handler.

        Args:
            extractor: Extraction port called once per file
            permits: Concurrency ceiling shared by every extraction task
            drain: Tracker the shutdown path waits on
            dead_letter: Optional hook receiving payloads rejected by accept()
        """
        self.extractor = extractor
        self.permits = permits
        self.drain = drain
        self.dead_letter = dead_letter
        self._tasks: set[asyncio.Task] = set()

    def accept(self, payload: bytes) -> Job:
        """
        Decode and validate a queue payload.

        Raises:
            JobDecodeError: If the payload is not a job
            JobValidationError: If the job's file lists don't line up
        """
        job = deserialize_job(payload)
        job.ensure_aligned()
        return job

    def dispatch(self, job: Job) -> list[asyncio.Task]:
        """Launch one extraction task per file of an accepted job."""
        launched = []

        for task in job.tasks():
            self.drain.register()
            background = asyncio.create_task(
                self._run_extraction(task),
                name=f"extract:{job.id}:{task.file_name}",
            )
            self._tasks.add(background)
            background.add_done_callback(self._tasks.discard)
            launched.append(background)

        return launched

    async def handle_message(self, payload: bytes) -> None:
        """
        Queue callback: accept the job and launch its extractions.

        Raises:
            JobDecodeError: If the payload is not a job
            JobValidationError: If the job's file lists don't line up
        """
        try:
            job = self.accept(payload)
        except (JobDecodeError, JobValidationError) as e:
            logger.warning("Rejected job payload: %s", e)
            if self.dead_letter is not None:
                await self.dead_letter(payload, e)
            raise

        logger.info("Processing PDF job: %s with %d files", job.id, len(job.file_path_list))
        self.dispatch(job)
        logger.info("PDF job %s queued for text extraction (%d files)", job.id, len(job.file_path_list))

    async def _run_extraction(self, task: ExtractionTask) -> None:
        try:
            async with self.permits:
                await self._extract_and_save(task)
        except ExtractionError as e:
            logger.error(
                "Failed to extract text from %s: %s",
                task.file_name,
                e,
                extra={"job_id": task.job_id, "source_path": task.source_path},
            )
        except OSError as e:
            logger.error(
                "Failed to save text file for %s: %s",
                task.file_name,
                e,
                extra={"job_id": task.job_id, "output_file": str(task.output_file)},
            )
        except Exception:
            logger.exception(
                "Unexpected error extracting %s",
                task.file_name,
                extra={"job_id": task.job_id, "source_path": task.source_path},
            )
        finally:
            self.drain.deregister()

    async def _extract_and_save(self, task: ExtractionTask) -> None:
        logger.info("Starting text extraction for job: %s (file: %s)", task.job_id, task.file_name)

        text = await self.extractor.extract(task.source_path)
        logger.info("Successfully extracted text from %s (%d characters)", task.file_name, len(text))

        await asyncio.to_thread(save_text, text, task)
        logger.info("Successfully saved text to file: %s", task.output_file)

        if len(text) > PREVIEW_CHARS:
            logger.debug("Text preview: %s...", text[:PREVIEW_CHARS])
        else:
            logger.debug("Full text: %s", text)


def save_text(text: str, task: ExtractionTask) -> None:
    """Write extracted text to the task's output file, creating the directory if needed."""
    task.output_file.parent.mkdir(parents=True, exist_ok=True)
    task.output_file.write_text(text, encoding="utf-8")
