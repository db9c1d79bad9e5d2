from http.cookies import Morsel, SimpleCookie
from typing import Optional

import pytest
from httpx import ASGITransport, AsyncClient

from session_service.codec import SessionIdCodec
from session_service.main import create_app
from session_service.session_store import InMemorySessionStore
from session_service.settings import Settings

COOKIE_NAME = "connect.sid"
SECRET = "test-secret"


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def codec():
    return SessionIdCodec(SECRET)


@pytest.fixture
def store(codec, clock):
    return InMemorySessionStore(codec, max_age_seconds=3600, clock=clock)


def make_settings(**overrides) -> Settings:
    values = {
        "SIGNING_SECRET": SECRET,
        "COOKIE_NAME": COOKIE_NAME,
        "SWEEP_INTERVAL_SECONDS": 0,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def make_client(clock):
    """Build a client against a fresh app; keyword args override settings."""

    def _make(store=None, **overrides):
        app = create_app(make_settings(**overrides), store=store, clock=clock)
        return app, AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver")

    return _make


@pytest.fixture
async def client(make_client, anyio_backend):
    _, c = make_client()
    async with c:
        yield c


def issued_cookie(resp) -> Optional[Morsel]:
    header = resp.headers.get("set-cookie")
    if not header:
        return None
    jar = SimpleCookie()
    jar.load(header)
    return jar.get(COOKIE_NAME)


async def send(client: AsyncClient, method: str, url: str, *, cookie: Optional[str] = None, **kwargs):
    """Issue a request carrying exactly the given session cookie (or none)."""
    client.cookies.clear()
    headers = dict(kwargs.pop("headers", {}))
    if cookie is not None:
        headers["cookie"] = f"{COOKIE_NAME}={cookie}"
    return await client.request(method, url, headers=headers, **kwargs)
