"""Background sweeper — periodically reclaims expired and consumed secrets."""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from burnnote.config import settings
from burnnote.database import async_session
from burnnote.services import secret_service

logger = logging.getLogger(__name__)


class SecretSweeper:
    """Calls ``sweep_secrets`` every ``interval`` seconds between ``start()`` and ``stop()``.

    Correctness never depends on this running; consumes re-check expiry and
    consumed state themselves. A failed run is logged and the next one still
    happens on schedule.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] = async_session,
        interval: float | None = None,
    ) -> None:
        self._session_factory = session_factory
        self.interval = settings.sweep_interval_seconds if interval is None else interval
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> int:
        async with self._session_factory() as db:
            removed = await secret_service.sweep_secrets(db)
        if removed:
            logger.info("Sweep removed %d dead secrets", removed)
        else:
            logger.debug("Sweep found no dead secrets")
        return removed

    def start(self) -> None:
        if self.running:
            return
        logger.info("Starting secret sweeper (every %ss)", self.interval)
        self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Secret sweeper stopped")

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.run_once()
            except Exception as exc:
                logger.warning("Secret sweep failed (will retry next interval): %s", exc)
