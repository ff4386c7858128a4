"""
Drain Controller - In-Flight Extraction Tracking

Counts extraction tasks that have been launched but not finished so the
shutdown path can wait for them before the process exits.
"""

import asyncio
import logging

logger = logging.getLogger(__name__)


class DrainController:
    """Counter of in-flight tasks with an awaitable "all done" condition.

    Every register() must be paired with exactly one deregister(). All calls
    happen on the event loop thread.
    """

    def __init__(self) -> None:
        self._in_flight = 0
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def in_flight(self) -> int:
        return self._in_flight

    def register(self) -> None:
        self._in_flight += 1
        self._idle.clear()

    def deregister(self) -> None:
        if self._in_flight == 0:
            raise RuntimeError("deregister() called without a matching register()")

        self._in_flight -= 1
        if self._in_flight == 0:
            self._idle.set()

    async def wait_all(self) -> None:
        """Block until every registered task has deregistered."""
        if self._in_flight:
            logger.info("Waiting for %d in-flight extractions to finish", self._in_flight)
        while self._in_flight:
            await self._idle.wait()
        logger.info("All text extractions completed")
