# session_service/main.py
from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .codec import SessionIdCodec
from .logging_conf import setup_logging
from .middleware.correlation import RequestContextMiddleware
from .middleware.session import ServerSessionMiddleware
from .routers.health_routes import router as health_router
from .routers.session_routes import router as session_router
from .session_store import Clock, InMemorySessionStore, SessionStore
from .settings import Settings, settings as default_settings
from .sweeper import ExpirySweeper

log = logging.getLogger("sessions")


def create_app(
    settings: Optional[Settings] = None,
    *,
    store: Optional[SessionStore] = None,
    clock: Clock = time.time,
) -> FastAPI:
    settings = settings or default_settings
    setup_logging(settings.LOG_LEVEL)

    codec = SessionIdCodec(
        settings.SIGNING_SECRET,
        salt=settings.SIGNING_SALT,
        id_bytes=settings.ID_ENTROPY_BYTES,
    )
    if store is None:
        store = InMemorySessionStore(
            codec,
            max_age_seconds=settings.MAX_AGE_SECONDS,
            max_sessions=settings.MAX_SESSIONS,
            clock=clock,
        )

    sweeper = ExpirySweeper(store, settings.SWEEP_INTERVAL_SECONDS)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log.info(
            "startup begin cookie=%s max_age=%s rolling=%s resave=%s save_uninitialized=%s",
            settings.COOKIE_NAME,
            settings.MAX_AGE_SECONDS,
            settings.ROLLING,
            settings.RESAVE,
            settings.SAVE_UNINITIALIZED,
        )
        if settings.uses_default_secret:
            log.warning("SESSIONS_SIGNING_SECRET is not set; using the development default")
        sweeper.start()
        log.info("startup complete")
        yield
        await sweeper.stop()

    app = FastAPI(
        title="Session Service",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.session_store = store
    app.state.sweeper = sweeper

    # innermost first: the session middleware must run inside request logging
    app.add_middleware(
        ServerSessionMiddleware,
        store=store,
        codec=codec,
        settings=settings,
        clock=clock,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestContextMiddleware)

    app.include_router(health_router)
    app.include_router(session_router)
    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "session_service.main:app",
        host="0.0.0.0",
        port=default_settings.PORT,
        reload=True,
    )
