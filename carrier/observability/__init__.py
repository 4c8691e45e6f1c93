"""Logging and ASGI glue for request contexts.

Stays dependency-light: structlog contextvars for log binding plus a pure ASGI
middleware that attaches a context to every HTTP request.
"""
