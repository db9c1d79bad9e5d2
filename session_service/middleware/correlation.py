# session_service/middleware/correlation.py
import contextvars
import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

log = logging.getLogger("sessions.http")

request_id_var: contextvars.ContextVar = contextvars.ContextVar("request_id", default=None)


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get() or "-"
        return True


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tags each request with an id and logs REQ/RES lines around it."""

    async def dispatch(self, request: Request, call_next):
        rid = request.headers.get("x-request-id") or str(uuid.uuid4())
        token = request_id_var.set(rid)
        start = time.time()
        path = request.url.path

        log.info(
            "REQ method=%s path=%s query=%s client=%s",
            request.method,
            path,
            str(request.url.query),
            request.client.host if request.client else None,
        )

        try:
            resp: Response = await call_next(request)
        except Exception:
            dur_ms = int((time.time() - start) * 1000)
            log.exception("ERR dur_ms=%s path=%s", dur_ms, path)
            raise
        else:
            dur_ms = int((time.time() - start) * 1000)
            log.info("RES status=%s dur_ms=%s path=%s", resp.status_code, dur_ms, path)
            resp.headers["x-request-id"] = rid
            return resp
        finally:
            request_id_var.reset(token)
