"""Carry the current request's context into outbound HTTP calls.

The middleware sets the current context per request. Outbound clients either
merge headers explicitly::

    headers = outbound_headers({"Content-Type": "application/json"})
    async with httpx.AsyncClient() as client:
        await client.post(url, headers=headers, json=data)

or install the event hook once::

    httpx.AsyncClient(event_hooks={"request": [ainject_context_headers]})

Headers the caller already set are never overwritten.
"""

from __future__ import annotations

from collections.abc import Mapping
from contextvars import ContextVar, Token

import httpx

from carrier.context import RequestContext

_current_context: ContextVar[RequestContext | None] = ContextVar("request_context", default=None)


def get_current_context() -> RequestContext | None:
    return _current_context.get()


def set_current_context(context: RequestContext | None) -> Token[RequestContext | None]:
    return _current_context.set(context)


def reset_current_context(token: Token[RequestContext | None]) -> None:
    _current_context.reset(token)


def outbound_headers(
    headers: Mapping[str, str] | None = None,
    *,
    context: RequestContext | None = None,
) -> dict[str, str]:
    result = dict(headers or {})
    context = context or get_current_context()
    if context is None:
        return result

    taken = {name.lower() for name in result}
    for name, value in context.headers:
        if name.lower() in taken:
            continue
        result[name] = value
        taken.add(name.lower())
    return result


def inject_context_headers(request: httpx.Request) -> None:
    """httpx request hook for ``httpx.Client``."""

    context = get_current_context()
    if context is None:
        return
    for name, value in context.headers:
        if name not in request.headers:
            request.headers[name] = value


async def ainject_context_headers(request: httpx.Request) -> None:
    """httpx request hook for ``httpx.AsyncClient``."""

    inject_context_headers(request)
