from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any, Callable

import pytest
import structlog
from fastapi import Depends, FastAPI
from httpx import ASGITransport, AsyncClient

from carrier.config import get_settings
from carrier.context import RequestContext
from carrier.dependencies import get_request_context
from carrier.observability.middleware import RequestContextMiddleware
from carrier.propagation import get_current_context


class FakeClock:
    """Monotonic nanosecond clock that only moves when told to."""

    def __init__(self, start: int = 1_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ns: int) -> None:
        self.now += ns


class SessionScopeMiddleware:
    """Stand-in for a framework session layer: puts a fixed dict in scope["session"]."""

    def __init__(self, app: Callable[..., Any], session: dict[str, Any]) -> None:
        self.app = app
        self.session = session

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") == "http":
            scope["session"] = dict(self.session)
        await self.app(scope, receive, send)


def _context_payload(context: RequestContext) -> dict[str, Any]:
    return {
        "request_id": context.request_id,
        "session_id": context.session_id,
        "forwarded_for": context.forwarded_for,
        "authorization": context.authorization,
        "user_id": context.user_id,
        "token": context.token,
        "request_chain": context.request_chain.value,
        "headers": [list(pair) for pair in context.headers],
    }


def make_app(session: dict[str, Any] | None = None) -> FastAPI:
    app = FastAPI()

    @app.get("/context")
    async def context_view(context: RequestContext = Depends(get_request_context)) -> dict[str, Any]:
        return _context_payload(context)

    @app.get("/current")
    async def current_view() -> dict[str, Any]:
        current = get_current_context()
        return {"present": current is not None}

    @app.get("/boom")
    async def boom() -> None:
        raise RuntimeError("boom")

    app.add_middleware(RequestContextMiddleware)
    if session is not None:
        # Added last so it wraps RequestContextMiddleware.
        app.add_middleware(SessionScopeMiddleware, session=session)
    return app


@pytest.fixture(autouse=True)
def test_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("CARRIER_LOG_LEVEL", "CARRIER_LOG_JSON", "CARRIER_ECHO_REQUEST_ID", "CARRIER_ACCESS_LOG"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    structlog.contextvars.clear_contextvars()

    yield

    get_settings.cache_clear()
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
async def api_client() -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=make_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def session_client() -> AsyncIterator[AsyncClient]:
    session = {"sessionId": "session-from-store", "authToken": "Bearer abc", "token": "tok-1", "userId": "/auth/oid/1234"}
    transport = ASGITransport(app=make_app(session=session))
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
