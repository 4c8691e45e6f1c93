from __future__ import annotations

import uuid
from collections.abc import Mapping
from datetime import datetime, timezone

from pydantic import BaseModel, Field

from carrier.context import RequestContext


class AuditEvent(BaseModel):
    audit_source: str
    audit_type: str
    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    tags: dict[str, str] = Field(default_factory=dict)
    detail: dict[str, str] = Field(default_factory=dict)
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def build_audit_event(
    context: RequestContext,
    *,
    audit_source: str,
    audit_type: str,
    transaction_name: str,
    path: str,
    detail: Mapping[str, str] | None = None,
) -> AuditEvent:
    """Assemble an audit event; submitting it is up to the caller."""

    return AuditEvent(
        audit_source=audit_source,
        audit_type=audit_type,
        tags=context.to_audit_tags(transaction_name, path),
        detail=context.to_audit_details(*(detail or {}).items()),
    )
