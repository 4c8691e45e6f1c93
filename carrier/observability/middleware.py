from __future__ import annotations

from time import perf_counter
from typing import Any, Callable

import structlog
from starlette.datastructures import Headers, MutableHeaders

from carrier.config import get_settings
from carrier.context import RequestContext
from carrier.headers import HeaderNames
from carrier.observability.logging import bind_request_context
from carrier.propagation import reset_current_context, set_current_context


class RequestContextMiddleware:
    """Builds the request context, binds it to logs, and writes access logs.

    Place it inside Starlette's ``SessionMiddleware`` (add it first) so that
    session values are visible here.
    """

    def __init__(self, app: Callable[..., Any]) -> None:
        self.app = app

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        settings = get_settings()
        headers = Headers(scope=scope)
        session = scope.get("session")
        if session is not None:
            context = RequestContext.from_session_and_headers(session, headers)
        else:
            context = RequestContext.from_headers(headers)

        scope.setdefault("state", {})["request_context"] = context
        token = set_current_context(context)
        bind_request_context(context)
        structlog.contextvars.bind_contextvars(
            path=scope.get("path"),
            method=scope.get("method"),
        )

        start = perf_counter()
        status_code: int = 500

        async def send_wrapper(message: dict[str, Any]) -> None:
            nonlocal status_code

            if message.get("type") == "http.response.start":
                status_code = int(message.get("status", 500))
                if settings.echo_request_id and context.request_id is not None:
                    response_headers = MutableHeaders(scope=message)
                    response_headers[HeaderNames.X_REQUEST_ID] = context.request_id

            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            elapsed_ms = (perf_counter() - start) * 1000.0

            if settings.access_log:
                structlog.get_logger("access").info(
                    "http_request",
                    status_code=status_code,
                    elapsed_ms=round(elapsed_ms, 2),
                )

            reset_current_context(token)
            structlog.contextvars.clear_contextvars()
