"""Shared pytest fixtures and test doubles for the PDF job pipeline tests."""

import asyncio
from typing import Optional

import pytest

from apps.consumer.drain import DrainController
from apps.consumer.handler import JobFanOutHandler
from utils.schemas import Job


class StubExtractor:
    """Extraction port double recording calls and peak concurrency.

    results maps a source path to its text, or to an exception to raise.
    Paths not listed extract to "text of <path>".
    """

    def __init__(
        self,
        results: Optional[dict] = None,
        delay: float = 0.0,
        gate: Optional[asyncio.Event] = None,
    ) -> None:
        self.results = results or {}
        self.delay = delay
        self.gate = gate
        self.calls: list[str] = []
        self.active = 0
        self.max_active = 0

    async def extract(self, file_path: str) -> str:
        self.calls.append(file_path)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.gate is not None:
                await self.gate.wait()
            await asyncio.sleep(self.delay)
            result = self.results.get(file_path, f"text of {file_path}")
            if isinstance(result, Exception):
                raise result
            return result
        finally:
            self.active -= 1


class FakePublisher:
    """Publisher double failing a given number of times before succeeding."""

    def __init__(self, failures: int = 0, error: Optional[Exception] = None, stream: str = "pdf-jobs") -> None:
        self.failures = failures
        self.error = error or ConnectionError("broker unavailable")
        self.stream = stream
        self.calls: list[tuple] = []
        self.closed = False

    async def publish(self, key: str, payload: bytes, **fields: str) -> str:
        self.calls.append((key, payload, fields))
        if len(self.calls) <= self.failures:
            raise self.error
        return f"1700000000000-{len(self.calls) - 1}"

    async def close(self) -> None:
        self.closed = True


def make_job(
    file_paths: Optional[list[str]] = None,
    file_names: Optional[list[str]] = None,
    output_path: str = "/out",
    job_id: str = "job_1700000000_ab12cd34",
) -> Job:
    """Build a job without going through validation of the input files."""
    file_paths = ["/a.pdf", "/b.pdf"] if file_paths is None else file_paths
    file_names = [path.rsplit("/", 1)[-1] for path in file_paths] if file_names is None else file_names
    return Job(
        id=job_id,
        create_timestamp=1700000000,
        file_path_list=file_paths,
        file_name_list=file_names,
        output_path=output_path,
    )


@pytest.fixture
def drain():
    """Fresh drain controller."""
    return DrainController()


@pytest.fixture
def extractor():
    """Stub extractor returning "text of <path>" for every file."""
    return StubExtractor()


@pytest.fixture
def handler(extractor, drain):
    """Fan-out handler over the stub extractor with three permits."""
    return JobFanOutHandler(extractor=extractor, permits=asyncio.Semaphore(3), drain=drain)
