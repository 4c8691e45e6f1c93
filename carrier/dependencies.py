from __future__ import annotations

from fastapi import Request

from carrier.context import RequestContext


def get_request_context(request: Request) -> RequestContext:
    context = getattr(request.state, "request_context", None)
    if context is not None:
        return context

    # RequestContextMiddleware not installed; build one for this request.
    if "session" in request.scope:
        return RequestContext.from_session_and_headers(request.session, request.headers)
    return RequestContext.from_headers(request.headers)
