"""Typer command submitting one PDF extraction job."""

import asyncio
import logging
from typing import Annotated

import typer

from apps.producer.publisher import publish_job
from apps.producer.selector import create_job_from_paths
from utils.config import settings
from utils.errors import BookLookerError
from utils.logging import setup_logging

logger = logging.getLogger(__name__)

app = typer.Typer(
    help="Submit PDF files for text extraction",
    add_completion=False,
    no_args_is_help=True,
)


@app.command()
def produce(
    paths: Annotated[str, typer.Argument(help="Comma-separated PDF file paths")],
    output_path: Annotated[str, typer.Argument(help="Directory receiving the extracted .txt files")],
) -> None:
    """Validate the given PDFs and publish them as one extraction job."""
    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

    try:
        job = create_job_from_paths(paths, output_path)
        asyncio.run(publish_job(job))
    except BookLookerError as e:
        logger.error("Failed to submit PDF job: %s", e)
        raise typer.Exit(1)

    logger.info(
        "Successfully sent PDF job: %s (%d files: %s) -> output: %s",
        job.id,
        len(job.file_name_list),
        job.file_name_list,
        job.output_path,
    )
