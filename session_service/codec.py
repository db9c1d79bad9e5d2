# session_service/codec.py
from __future__ import annotations

import hmac
import logging
import secrets
from typing import Optional

from itsdangerous import BadData, URLSafeSerializer

log = logging.getLogger("sessions.codec")

MIN_ID_BYTES = 16
MAX_COOKIE_VALUE_LENGTH = 4096


class SessionIdCodec:
    """
    Issues session ids and turns them into signed cookie values.

    The cookie value is ``<payload>.<signature>`` as produced by
    itsdangerous, so it only contains URL-safe characters.
    """

    def __init__(self, secret: str, *, salt: str = "session-id", id_bytes: int = 24) -> None:
        if id_bytes < MIN_ID_BYTES:
            raise ValueError(f"id_bytes must be >= {MIN_ID_BYTES}")
        self.id_bytes = id_bytes
        self._serializer = URLSafeSerializer(secret, salt=salt)

    def generate(self) -> str:
        return secrets.token_urlsafe(self.id_bytes)

    def encode(self, sid: str) -> str:
        return self._serializer.dumps(sid)

    def decode(self, value: Optional[str]) -> Optional[str]:
        """Return the session id, or None for anything missing, malformed or tampered."""
        if not value or len(value) > MAX_COOKIE_VALUE_LENGTH:
            return None
        try:
            sid = self._serializer.loads(value)
        except BadData:
            log.debug("rejected session cookie len=%d", len(value))
            return None
        if not isinstance(sid, str) or not sid:
            return None
        # base64 padding bits let a few altered values still verify; accept only the canonical form
        if not hmac.compare_digest(self.encode(sid), value):
            log.debug("rejected non-canonical session cookie")
            return None
        return sid
