# session_service/middleware/session.py
from __future__ import annotations

import contextvars
import copy
import logging
import time
from contextlib import AsyncExitStack
from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..codec import SessionIdCodec
from ..errors import SessionNotFound, SessionStoreError
from ..session_store import Clock, SessionRecord, SessionStore
from ..settings import Settings

log = logging.getLogger("sessions.middleware")

STORE_ERROR_MESSAGE = "세션 저장소를 사용할 수 없습니다."

session_context_var: contextvars.ContextVar = contextvars.ContextVar("session_context", default=None)


class SessionContext:
    """
    The session as seen by a single request handler.

    Holds a private copy of the record's data; changes reach the store only
    when the middleware commits them after the handler returns.
    """

    def __init__(self, record: Optional[SessionRecord] = None, *, is_new: bool = False) -> None:
        self._record = record
        self._data: Dict[str, Any] = copy.deepcopy(record.data) if record else {}
        self._is_new = is_new
        self._modified = False
        self._destroyed = False

    @property
    def id(self) -> Optional[str]:
        return self._record.id if self._record else None

    @property
    def record(self) -> Optional[SessionRecord]:
        return self._record

    @property
    def is_new(self) -> bool:
        return self._is_new

    @property
    def modified(self) -> bool:
        return self._modified

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    @property
    def data(self) -> Dict[str, Any]:
        return dict(self._data)

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._modified = True

    def pop(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        self._modified = True
        return self._data.pop(key)

    def destroy(self) -> None:
        self._destroyed = True

    def attach(self, record: SessionRecord, *, is_new: bool = True) -> None:
        self._record = record
        self._is_new = is_new


async def current_session() -> SessionContext:
    """FastAPI dependency returning the session resolved for this request."""
    ctx = session_context_var.get()
    if ctx is None:
        raise RuntimeError("ServerSessionMiddleware is not installed")
    return ctx


class ServerSessionMiddleware(BaseHTTPMiddleware):
    """
    Resolves the session cookie before the handler runs and persists the
    session afterwards. Requests carrying the same session id are serialized
    on the store's per-id lock for their whole duration.
    """

    def __init__(
        self,
        app,
        *,
        store: SessionStore,
        codec: SessionIdCodec,
        settings: Settings,
        clock: Clock = time.time,
    ) -> None:
        super().__init__(app)
        self.store = store
        self.codec = codec
        self.settings = settings
        self.clock = clock

    async def dispatch(self, request: Request, call_next):
        try:
            async with AsyncExitStack() as stack:
                ctx = await self._resolve(request, stack)
                token = session_context_var.set(ctx)
                try:
                    response = await call_next(request)
                finally:
                    session_context_var.reset(token)
                await self._commit(ctx, response)
                return response
        except SessionStoreError as e:
            log.exception("session store failure path=%s err=%s", request.url.path, e)
            return JSONResponse({"message": STORE_ERROR_MESSAGE}, status_code=503)

    # ------------------------------------------------------------------
    # Resolve
    # ------------------------------------------------------------------

    async def _resolve(self, request: Request, stack: AsyncExitStack) -> SessionContext:
        raw = request.cookies.get(self.settings.COOKIE_NAME)
        sid = self.codec.decode(raw) if raw else None
        if raw and sid is None:
            log.info("ignoring invalid session cookie")

        record: Optional[SessionRecord] = None
        if sid:
            await stack.enter_async_context(self.store.lock(sid))
            record = await self.store.get(sid)
            if record is None:
                log.debug("session cookie references unknown or expired id")

        if record is not None:
            return SessionContext(record)

        if self.settings.SAVE_UNINITIALIZED:
            return SessionContext(await self.store.create(), is_new=True)

        return SessionContext()

    # ------------------------------------------------------------------
    # Persist & respond
    # ------------------------------------------------------------------

    async def _commit(self, ctx: SessionContext, response: Response) -> None:
        record = ctx.record

        if ctx.destroyed:
            if record is not None:
                await self.store.delete(record.id)
                log.info("session destroyed")
            self._clear_cookie(response)
            return

        if record is None:
            if not ctx.modified:
                return
            record = await self._save_new(ctx)
            self._set_cookie(response, record.id)
            return

        max_age = self.settings.MAX_AGE_SECONDS
        if ctx.is_new or ctx.modified or self.settings.RESAVE:
            try:
                await self.store.set(record.id, ctx.data)
            except SessionNotFound:
                # expired while the handler ran
                record = await self._save_new(ctx)
            await self.store.touch(record.id, self.clock() + max_age)
            self._set_cookie(response, record.id)
        elif self.settings.ROLLING:
            await self.store.touch(record.id, self.clock() + max_age)
            self._set_cookie(response, record.id)
        else:
            await self.store.touch(record.id, record.expires_at)

    async def _save_new(self, ctx: SessionContext) -> SessionRecord:
        record = await self.store.create()
        ctx.attach(record)
        await self.store.set(record.id, ctx.data)
        log.info("session created")
        return record

    def _set_cookie(self, response: Response, sid: str) -> None:
        response.set_cookie(
            key=self.settings.COOKIE_NAME,
            value=self.codec.encode(sid),
            max_age=self.settings.MAX_AGE_SECONDS,
            httponly=True,
            secure=self.settings.COOKIE_SECURE,
            samesite=self.settings.COOKIE_SAMESITE,
            domain=self.settings.COOKIE_DOMAIN,
            path="/",
        )

    def _clear_cookie(self, response: Response) -> None:
        response.delete_cookie(
            key=self.settings.COOKIE_NAME,
            domain=self.settings.COOKIE_DOMAIN,
            path="/",
        )
