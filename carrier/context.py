"""Request-scoped tracing and auth metadata.

A ``RequestContext`` is built once per inbound request, either from headers
alone or from session state plus headers, and turned back into outbound
headers and audit maps. Instances are frozen; every "update" returns a copy.
"""

from __future__ import annotations

import dataclasses
import re
import time
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from carrier.chain import RequestChain, build_request_chain
from carrier.headers import MISSING, EventKeys, HeaderNames, SessionKeys

Clock = Callable[[], int]

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_TIMESTAMP_RE = re.compile(r"[+-]?[0-9]+")


def _lookup(headers: Mapping[str, str] | Iterable[tuple[str, str]] | None) -> dict[str, str]:
    """Lower-case header names; the first value wins for repeated names."""

    if headers is None:
        return {}
    items = headers.items() if isinstance(headers, Mapping) else headers
    found: dict[str, str] = {}
    for name, value in items:
        found.setdefault(name.lower(), value)
    return found


def _present(value: str | None) -> bool:
    return value is not None and value.strip() != ""


def merge_forwarded_for(true_client_ip: str | None, forwarded_for: str | None) -> str | None:
    """Combine the edge proxy's client IP with the forwarded-for chain.

    Blank values count as absent on both sides.
    """

    has_tcip = _present(true_client_ip)
    has_xff = _present(forwarded_for)

    if has_tcip and not has_xff:
        return true_client_ip
    if has_xff and not has_tcip:
        return forwarded_for
    if not has_tcip and not has_xff:
        return None
    if forwarded_for.startswith(true_client_ip):  # type: ignore[union-attr,arg-type]
        # already prepended upstream
        return forwarded_for
    return f"{true_client_ip}, {forwarded_for}"


def _or_missing(value: str | None) -> str:
    return value if value is not None else MISSING


def parse_request_timestamp(value: str | None) -> int | None:
    if value is None or not _TIMESTAMP_RE.fullmatch(value):
        return None
    parsed = int(value)
    if parsed < _INT64_MIN or parsed > _INT64_MAX:
        return None
    return parsed


@dataclasses.dataclass(frozen=True)
class RequestContext:
    authorization: str | None = None
    user_id: str | None = None
    token: str | None = None
    forwarded_for: str | None = None
    session_id: str | None = None
    request_id: str | None = None
    request_chain: RequestChain = dataclasses.field(default_factory=RequestChain.init)
    created_at_ns: int | None = None
    extra_headers: tuple[tuple[str, str], ...] = ()
    clock: Clock = dataclasses.field(default=time.monotonic_ns, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.created_at_ns is None:
            object.__setattr__(self, "created_at_ns", self.clock())

    @classmethod
    def from_headers(
        cls,
        headers: Mapping[str, str] | Iterable[tuple[str, str]] | None,
        *,
        clock: Clock = time.monotonic_ns,
    ) -> RequestContext:
        found = _lookup(headers)
        timestamp = parse_request_timestamp(found.get(HeaderNames.X_REQUEST_TIMESTAMP))

        return cls(
            authorization=found.get(HeaderNames.AUTHORIZATION),
            token=found.get(HeaderNames.TOKEN),
            forwarded_for=found.get(HeaderNames.X_FORWARDED_FOR),
            session_id=found.get(HeaderNames.X_SESSION_ID),
            request_id=found.get(HeaderNames.X_REQUEST_ID),
            request_chain=build_request_chain(found.get(HeaderNames.X_REQUEST_CHAIN)),
            created_at_ns=timestamp if timestamp is not None else clock(),
            clock=clock,
        )

    @classmethod
    def from_session_and_headers(
        cls,
        session: Mapping[str, Any] | None,
        headers: Mapping[str, str] | Iterable[tuple[str, str]] | None,
        *,
        clock: Clock = time.monotonic_ns,
    ) -> RequestContext:
        """Build from framework session state, falling back to headers.

        Auth values come only from the session. The session id prefers the
        session's value and uses ``x-session-id`` only when the session has none.
        """

        session = session or {}
        found = _lookup(headers)
        timestamp = parse_request_timestamp(found.get(HeaderNames.X_REQUEST_TIMESTAMP))

        session_id = session.get(SessionKeys.SESSION_ID)
        if session_id is None:
            session_id = found.get(HeaderNames.X_SESSION_ID)

        return cls(
            authorization=session.get(SessionKeys.AUTH_TOKEN),
            user_id=session.get(SessionKeys.USER_ID),
            token=session.get(SessionKeys.TOKEN),
            forwarded_for=merge_forwarded_for(
                found.get(HeaderNames.TRUE_CLIENT_IP),
                found.get(HeaderNames.X_FORWARDED_FOR),
            ),
            session_id=session_id,
            request_id=found.get(HeaderNames.X_REQUEST_ID),
            request_chain=build_request_chain(found.get(HeaderNames.X_REQUEST_CHAIN)),
            created_at_ns=timestamp if timestamp is not None else clock(),
            clock=clock,
        )

    @property
    def headers(self) -> list[tuple[str, str]]:
        fixed = [
            (HeaderNames.X_REQUEST_ID, self.request_id),
            (HeaderNames.X_SESSION_ID, self.session_id),
            (HeaderNames.X_FORWARDED_FOR, self.forwarded_for),
            (HeaderNames.TOKEN, self.token),
            (HeaderNames.X_REQUEST_CHAIN, self.request_chain.value),
            (HeaderNames.AUTHORIZATION, self.authorization),
        ]
        return [(name, value) for name, value in fixed if value is not None] + list(self.extra_headers)

    def with_extra_headers(self, *pairs: tuple[str, str]) -> RequestContext:
        return dataclasses.replace(self, extra_headers=self.extra_headers + tuple(pairs))

    def to_audit_tags(self, transaction_name: str, path: str) -> dict[str, str]:
        tags = {
            HeaderNames.X_REQUEST_ID: _or_missing(self.request_id),
            HeaderNames.X_SESSION_ID: _or_missing(self.session_id),
        }
        tags.update({EventKeys.TRANSACTION_NAME: transaction_name, EventKeys.PATH: path})
        return tags

    def to_audit_details(self, *details: tuple[str, str]) -> dict[str, str]:
        result = {
            EventKeys.IP_ADDRESS: _or_missing(self.forwarded_for),
            HeaderNames.AUTHORIZATION: _or_missing(self.authorization),
            HeaderNames.TOKEN: _or_missing(self.token),
        }
        result.update(details)
        return result

    def logging_details(self) -> dict[str, str]:
        details = {
            "request_id": self.request_id,
            "session_id": self.session_id,
            "forwarded_for": self.forwarded_for,
            "request_chain": self.request_chain.value,
        }
        return {key: value for key, value in details.items() if value is not None}

    def age(self) -> int:
        """Nanoseconds since this context was created."""

        return self.clock() - self.created_at_ns
