from __future__ import annotations

import uuid
from dataclasses import dataclass

SEGMENT_LENGTH = 8


def new_segment() -> str:
    return uuid.uuid4().hex[:SEGMENT_LENGTH]


@dataclass(frozen=True)
class RequestChain:
    """Dash-joined segment ids recording fan-out across service hops.

    Append-only: extending never reorders or drops earlier segments.
    """

    value: str

    @classmethod
    def init(cls) -> RequestChain:
        return cls(new_segment())

    def extend(self) -> RequestChain:
        return RequestChain(f"{self.value}-{new_segment()}")

    @property
    def segments(self) -> list[str]:
        return self.value.split("-")

    def __str__(self) -> str:
        return self.value


def build_request_chain(current: str | None) -> RequestChain:
    if current is None:
        return RequestChain.init()
    return RequestChain(current).extend()
