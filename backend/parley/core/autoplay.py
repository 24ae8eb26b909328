"""Auto-play driver that advances a running debate on a fixed cadence."""

import asyncio
import logging
from typing import Dict, Optional

from ..config import settings
from ..db.models import SessionStatus
from .orchestrator import TurnOrchestrator

logger = logging.getLogger(__name__)


class AutoPlayDriver:
    """
    Calls ``advance()`` every ``interval`` seconds while the session is
    debating.

    Each tick awaits the previous turn before sleeping again, so the
    driver never issues overlapping calls. Stopping only prevents the
    next tick; a turn already in flight runs to completion.
    """

    def __init__(self, orchestrator: TurnOrchestrator, interval: Optional[float] = None):
        self.orchestrator = orchestrator
        self.interval = settings.autoplay_interval if interval is None else interval
        self._task: Optional[asyncio.Task] = None
        self._stop = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start ticking, unless already running."""
        if self.running:
            return
        self._stop = asyncio.Event()
        self._task = asyncio.create_task(self._run())
        logger.debug(f"Auto-play started for session {self.orchestrator.session_id}")

    def stop(self) -> None:
        self._stop.set()

    async def wait(self) -> None:
        """Wait for the loop to exit."""
        if self._task is not None:
            await self._task

    async def _run(self) -> None:
        session_id = self.orchestrator.session_id
        try:
            while not self._stop.is_set():
                try:
                    await asyncio.wait_for(self._stop.wait(), timeout=self.interval)
                    break
                except asyncio.TimeoutError:
                    pass

                session = await self.orchestrator.store.get_session(session_id)
                if session.status != SessionStatus.DEBATING:
                    break

                await self.orchestrator.advance()
        except Exception as e:
            logger.error(f"Auto-play stopped for session {session_id}: {e}", exc_info=True)
        finally:
            logger.debug(f"Auto-play loop exited for session {session_id}")


# Driver registry
_drivers: Dict[int, AutoPlayDriver] = {}


def get_driver(orchestrator: TurnOrchestrator) -> AutoPlayDriver:
    """Get or create the driver for an orchestrator's session."""
    driver = _drivers.get(orchestrator.session_id)
    if driver is None or driver.orchestrator is not orchestrator:
        driver = AutoPlayDriver(orchestrator)
        _drivers[orchestrator.session_id] = driver
    return driver


def remove_driver(session_id: int):
    """Stop and forget a session's driver."""
    driver = _drivers.pop(session_id, None)
    if driver is not None:
        driver.stop()


def stop_all_drivers() -> int:
    """Stop every driver. Returns how many were running."""
    running = sum(1 for driver in _drivers.values() if driver.running)
    for session_id in list(_drivers):
        remove_driver(session_id)
    return running
