# session_service/logging_conf.py
from __future__ import annotations

import logging
import sys

from .middleware.correlation import RequestIdFilter

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | rid=%(request_id)s | %(message)s"

_configured = False


def setup_logging(level: str = "INFO") -> None:
    global _configured
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    # on the handler so propagated records from uvicorn/app loggers get the id too
    handler.addFilter(RequestIdFilter())
    root.addHandler(handler)
    _configured = True
