# session_service/sweeper.py
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .session_store import SessionStore

log = logging.getLogger("sessions.sweeper")


class ExpirySweeper:
    """
    Periodically purges expired sessions from the store.

    Expired records are already invisible to lookups; this only reclaims
    memory for clients that never come back.
    """

    def __init__(self, store: SessionStore, interval_seconds: float) -> None:
        self.store = store
        self.interval = interval_seconds
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.interval <= 0:
            log.info("expiry sweep disabled")
            return
        if self.running:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run())
        log.info("expiry sweep started interval=%.1fs", self.interval)

    async def stop(self) -> None:
        self._stop_event.set()
        if self._task is not None:
            await self._task
            self._task = None
        log.info("expiry sweep stopped")

    async def sweep_once(self) -> int:
        removed = await self.store.sweep_expired()
        if removed:
            log.info("swept %d expired session(s)", removed)
        return removed

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
            else:
                break

            try:
                await self.sweep_once()
            except Exception as e:
                log.exception("expiry sweep failed: %s", e)
