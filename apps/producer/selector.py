"""
PDF Selection - Build a Job from Command-Line Paths

Validates a comma-separated list of local files and turns it into a Job with
absolute source paths and index-aligned display names.
"""

import logging
from pathlib import Path
from typing import Iterable, Optional

from utils.config import settings
from utils.errors import JobValidationError
from utils.schemas import Job

logger = logging.getLogger(__name__)


def split_paths(paths_arg: str) -> list[str]:
    """Split a comma-separated path list, dropping blank entries."""
    return [path.strip() for path in paths_arg.split(",") if path.strip()]


def create_job_from_paths(
    paths_arg: str,
    output_path: str,
    allowed_extensions: Optional[Iterable[str]] = None,
) -> Job:
    """
    Create a job from comma-separated file paths.

    Args:
        paths_arg: Comma-separated file paths
        output_path: Directory the consumer writes extracted text to (made absolute)
        allowed_extensions: Accepted file extensions, defaults to settings.ALLOWED_EXTENSIONS

    Returns:
        New job listing every file

    Raises:
        JobValidationError: If a file is missing, has the wrong extension, or no file is given
    """
    extensions = {ext.lower() for ext in (allowed_extensions or settings.ALLOWED_EXTENSIONS)}

    file_paths: list[str] = []
    file_names: list[str] = []

    for raw_path in split_paths(paths_arg):
        path = Path(raw_path).expanduser()

        if not path.is_file():
            raise JobValidationError(f"file does not exist: {raw_path}")

        if path.suffix.lower() not in extensions:
            raise JobValidationError(f"file is not a PDF: {raw_path}")

        abs_path = path.absolute()
        file_paths.append(str(abs_path))
        file_names.append(abs_path.name)

    if not file_paths:
        raise JobValidationError("no valid PDF files provided")

    job = Job.create(file_paths, file_names, str(Path(output_path).expanduser().absolute()))
    logger.debug("Created job %s for %d files", job.id, len(file_paths))
    return job
