from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from src.clinicadmin.tenancy import get_current_tenant

logger = logging.getLogger("audit")

# Keys that would carry patient or staff PII if a caller put them in `extra`.
REDACTED_EXTRA_KEYS = frozenset({"name", "email", "phone", "address", "dob", "password", "token"})


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class AuditEvent:
    """One audited action against a clinic resource.

    Only identifiers, types and coarse metadata belong here. Stock adjustment
    notes are the one free-text field that is recorded.
    """

    action: str
    resource_type: str
    resource_id: Optional[str] = None
    tenant_id: Optional[str] = None
    subject: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=_utc_timestamp)

    def to_json(self) -> str:
        # Dates, enums and similar values are rendered with str().
        return json.dumps(asdict(self), default=str, sort_keys=True)


class AuditService:
    def log_event(
        self,
        *,
        action: str,
        resource_type: str,
        resource_id: Optional[Any] = None,
        tenant_id: Optional[str] = None,
        subject: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> AuditEvent:
        """Write one JSON line to the ``audit`` logger and return the event.

        ``tenant_id`` and ``subject`` default to the clinic and user bound to
        the current request by ``check_tenant`` / ``get_current_user``.
        Login and registration pass them explicitly because no request
        principal exists yet.
        """

        if subject is None:
            from src.clinicadmin.security import get_current_subject

            subject = get_current_subject()

        event = AuditEvent(
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id) if resource_id is not None else None,
            tenant_id=tenant_id or get_current_tenant(),
            subject=subject,
            extra={k: v for k, v in (extra or {}).items() if k not in REDACTED_EXTRA_KEYS},
        )
        logger.info(event.to_json())
        return event


audit_service = AuditService()
