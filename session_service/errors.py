# session_service/errors.py
from __future__ import annotations


class SessionError(Exception):
    """Base class for session failures."""


class InvalidCookie(SessionError):
    """
    Cookie value is malformed or its signature does not verify.

    Never raised: SessionIdCodec.decode reports this case by returning None,
    and the middleware treats it the same as a missing cookie.
    """


class SessionNotFound(SessionError):
    """No live record exists for the given session id."""


class SessionStoreError(SessionError):
    """Store-level failure that must be reported to the client as a server error."""


class StoreUnavailable(SessionStoreError):
    """Backing store could not be reached."""


class StoreExhausted(SessionStoreError):
    """Configured session capacity has been reached."""


__all__ = [
    "SessionError",
    "InvalidCookie",
    "SessionNotFound",
    "SessionStoreError",
    "StoreUnavailable",
    "StoreExhausted",
]
