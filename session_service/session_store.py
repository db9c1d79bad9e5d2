# session_service/session_store.py
from __future__ import annotations

import asyncio
import copy
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from typing import Any, AsyncIterator, Callable, Dict, Optional, Protocol, runtime_checkable

from .codec import SessionIdCodec
from .errors import SessionNotFound, StoreExhausted

log = logging.getLogger("sessions.store")

Clock = Callable[[], float]

_MAX_ID_ATTEMPTS = 8


@dataclass
class SessionRecord:
    id: str
    data: Dict[str, Any] = field(default_factory=dict)
    created_at: float = 0.0
    last_accessed_at: float = 0.0
    expires_at: float = 0.0

    def is_expired(self, now: float) -> bool:
        return self.expires_at <= now

    def copy(self) -> "SessionRecord":
        return replace(self, data=copy.deepcopy(self.data))


@runtime_checkable
class SessionStore(Protocol):
    """
    Contract every session backend satisfies (in-memory here, a database
    collaborator in other deployments).
    """

    async def create(self) -> SessionRecord: ...

    async def get(self, sid: str) -> Optional[SessionRecord]: ...

    async def touch(self, sid: str, expires_at: float) -> None: ...

    async def set(self, sid: str, data: Dict[str, Any]) -> None: ...

    async def delete(self, sid: str) -> None: ...

    async def sweep_expired(self) -> int: ...

    def lock(self, sid: str) -> Any: ...


class _IdLock:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.holders = 0


class InMemorySessionStore:
    """
    Process-local store. Data is lost when the process exits.

    Every mutation below runs without awaiting, so it is atomic with respect
    to other coroutines on the loop. ``lock(sid)`` serializes whole requests
    that carry the same id.
    """

    def __init__(
        self,
        codec: SessionIdCodec,
        *,
        max_age_seconds: int,
        max_sessions: Optional[int] = None,
        clock: Clock = time.time,
    ) -> None:
        self._codec = codec
        self._max_age = max_age_seconds
        self._max_sessions = max_sessions
        self._clock = clock
        self._records: Dict[str, SessionRecord] = {}
        self._locks: Dict[str, _IdLock] = {}

    def __len__(self) -> int:
        return len(self._records)

    async def create(self) -> SessionRecord:
        if self._max_sessions is not None and len(self._records) >= self._max_sessions:
            await self.sweep_expired()
            if len(self._records) >= self._max_sessions:
                log.warning("session capacity reached max_sessions=%d", self._max_sessions)
                raise StoreExhausted(f"session capacity of {self._max_sessions} reached")

        for _ in range(_MAX_ID_ATTEMPTS):
            sid = self._codec.generate()
            if sid not in self._records:
                break
            log.warning("session id collision, regenerating")
        else:
            raise RuntimeError("could not generate a unique session id")

        now = self._clock()
        rec = SessionRecord(
            id=sid,
            data={},
            created_at=now,
            last_accessed_at=now,
            expires_at=now + self._max_age,
        )
        self._records[sid] = rec
        log.debug("session created sid=%s", sid[:6])
        return rec.copy()

    async def get(self, sid: str) -> Optional[SessionRecord]:
        rec = self._records.get(sid)
        if not rec:
            return None
        if rec.is_expired(self._clock()):
            self._records.pop(sid, None)
            return None
        return rec.copy()

    async def touch(self, sid: str, expires_at: float) -> None:
        rec = self._records.get(sid)
        if not rec:
            return
        rec.expires_at = expires_at
        rec.last_accessed_at = self._clock()

    async def set(self, sid: str, data: Dict[str, Any]) -> None:
        rec = self._records.get(sid)
        if not rec or rec.is_expired(self._clock()):
            raise SessionNotFound(sid)
        rec.data = copy.deepcopy(data)

    async def delete(self, sid: str) -> None:
        self._records.pop(sid, None)

    async def sweep_expired(self) -> int:
        now = self._clock()
        expired = [
            sid
            for sid, rec in self._records.items()
            if rec.is_expired(now) and sid not in self._locks
        ]
        for sid in expired:
            self._records.pop(sid, None)
        return len(expired)

    @asynccontextmanager
    async def lock(self, sid: str) -> AsyncIterator[None]:
        entry = self._locks.get(sid)
        if entry is None:
            entry = self._locks[sid] = _IdLock()
        entry.holders += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.holders -= 1
            if entry.holders == 0:
                self._locks.pop(sid, None)
