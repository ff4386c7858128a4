"""
Pydantic Schemas - Job Model and Wire Encoding

Defines the unit of work handed from the producer to the consumer:
- Job: immutable description of a multi-file extraction job
- ExtractionTask: one file of one job, as processed by the consumer
- serialize_job / deserialize_job: orjson wire encoding

Wire format (one queue message per job):
{
    "id": "job_1700000000_9f86d081884c7d65",
    "create_timestamp": 1700000000,
    "file_path_list": ["/books/a.pdf", "/books/b.pdf"],
    "file_name_list": ["a.pdf", "b.pdf"],
    "output_path": "/out"
}

Usage:
    from utils.schemas import Job, deserialize_job, serialize_job

    job = Job.create(["/books/a.pdf"], ["a.pdf"], "/out")
    assert deserialize_job(serialize_job(job)) == job
"""

import secrets
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

import orjson
from pydantic import BaseModel, Field, ValidationError

from utils.errors import JobDecodeError, JobValidationError

JOB_ID_PREFIX = "job"
JOB_ID_RANDOM_BYTES = 8


def new_job_id() -> str:
    """Generate a collision-resistant job ID from the current epoch and random bytes."""
    return f"{JOB_ID_PREFIX}_{int(time.time())}_{secrets.token_hex(JOB_ID_RANDOM_BYTES)}"


class Job(BaseModel):
    """PDF extraction job.

    file_path_list and file_name_list are index-aligned: entry i of one
    describes the same file as entry i of the other. Decoding does not check
    this; call ensure_aligned() before acting on a job.
    """

    id: str = Field(..., min_length=1, description="Job ID")
    create_timestamp: int = Field(..., description="Creation time, epoch seconds")
    file_path_list: list[str] = Field(..., description="Absolute source file paths")
    file_name_list: list[str] = Field(..., description="Display names, aligned with file_path_list")
    output_path: str = Field(..., description="Directory receiving extracted text")

    class Config:
        frozen = True
        extra = "ignore"

    @classmethod
    def create(cls, file_paths: Sequence[str], file_names: Sequence[str], output_path: str) -> "Job":
        """Create a new job with a fresh ID and creation timestamp."""
        return cls(
            id=new_job_id(),
            create_timestamp=int(time.time()),
            file_path_list=list(file_paths),
            file_name_list=list(file_names),
            output_path=output_path,
        )

    def ensure_aligned(self) -> None:
        """Check that the job lists at least one file and its lists line up.

        Raises:
            JobValidationError: If the lists differ in length or are empty
        """
        if len(self.file_path_list) != len(self.file_name_list):
            raise JobValidationError(
                f"file path list and file name list have different lengths for job {self.id} "
                f"({len(self.file_path_list)} != {len(self.file_name_list)})"
            )
        if not self.file_path_list:
            raise JobValidationError(f"job {self.id} lists no files")

    def tasks(self) -> list["ExtractionTask"]:
        """Split the job into one extraction task per file."""
        return [
            ExtractionTask(
                job_id=self.id,
                source_path=path,
                file_name=name,
                output_path=self.output_path,
            )
            for path, name in zip(self.file_path_list, self.file_name_list)
        ]


@dataclass(frozen=True)
class ExtractionTask:
    """A single file of a job, owned by the asyncio task that extracts it."""

    job_id: str
    source_path: str
    file_name: str
    output_path: str

    @property
    def output_file(self) -> Path:
        """Target text file: the display name with its extension swapped for .txt."""
        return Path(self.output_path) / f"{Path(self.file_name).stem}.txt"


def serialize_job(job: Job) -> bytes:
    """Encode a job as JSON bytes, field for field."""
    return orjson.dumps(job.model_dump())


def deserialize_job(data: bytes | str) -> Job:
    """Decode JSON bytes produced by serialize_job.

    Args:
        data: Raw queue payload

    Returns:
        Decoded job (unknown fields are ignored)

    Raises:
        JobDecodeError: If the payload is not valid JSON or not a job object
    """
    try:
        raw: Any = orjson.loads(data)
    except orjson.JSONDecodeError as e:
        raise JobDecodeError(f"Invalid job payload: {e}") from e

    if not isinstance(raw, dict):
        raise JobDecodeError(f"Invalid job payload: expected an object, got {type(raw).__name__}")

    try:
        return Job.model_validate(raw)
    except ValidationError as e:
        raise JobDecodeError(f"Invalid job payload: {str(e).splitlines()[0]}") from e
