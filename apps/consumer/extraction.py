"""
Text Extraction Port - Apache Tika Client

Extracts plain text from a document by PUTting its raw bytes to a Tika
server's /tika endpoint. Every failure (unreadable file, transport error,
non-200 response) surfaces as ExtractionError.

Usage:
    from apps.consumer.extraction import TikaClient

    client = TikaClient()
    text = await client.extract("/books/a.pdf")
    await client.close()
"""

import asyncio
import logging
import mimetypes
from pathlib import Path
from typing import Optional, Protocol

import httpx

from utils.config import settings
from utils.errors import ExtractionError

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/pdf"


class TextExtractor(Protocol):
    """Anything that turns a file path into extracted text."""

    async def extract(self, file_path: str) -> str:
        """Return the text of file_path or raise ExtractionError."""
        ...


class TikaClient:
    """Async client for an Apache Tika server."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """Initialize Tika client.

        Args:
            base_url: Tika server URL, defaults to settings.TIKA_URL
            timeout: Request timeout in seconds, defaults to settings.TIKA_TIMEOUT
            client: Pre-built HTTP client (not closed by close())
        """
        self.base_url = (base_url or settings.TIKA_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.TIKA_TIMEOUT
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=self.timeout)

    async def extract(self, file_path: str) -> str:
        """Extract text from a document using Tika.

        Args:
            file_path: Path of the document to extract

        Returns:
            Extracted plain text

        Raises:
            ExtractionError: If the file can't be read or Tika doesn't answer 200
        """
        try:
            content = await asyncio.to_thread(Path(file_path).read_bytes)
        except OSError as e:
            raise ExtractionError(f"failed to open file {file_path}: {e}") from e

        content_type = mimetypes.guess_type(file_path)[0] or DEFAULT_CONTENT_TYPE

        try:
            response = await self.client.put(
                f"{self.base_url}/tika",
                content=content,
                headers={"Accept": "text/plain", "Content-Type": content_type},
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise ExtractionError(f"failed to send request for {file_path}: {e}") from e

        if response.status_code != httpx.codes.OK:
            raise ExtractionError(f"tika server returned status: {response.status_code}")

        return response.text

    async def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self.client.aclose()
