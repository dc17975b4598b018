from __future__ import annotations

from contextvars import ContextVar
from typing import Optional


# Tenant of the in-flight request, set by ``security.check_tenant`` once the
# caller is authenticated. Services always receive tenant_id explicitly; this
# copy only feeds request-scoped consumers such as the audit logger.
_current_tenant: ContextVar[Optional[str]] = ContextVar("current_tenant", default=None)


def get_current_tenant() -> Optional[str]:
    """Return the tenant bound to the current request, if any."""

    return _current_tenant.get()


def set_current_tenant(tenant_id: Optional[str]) -> None:
    _current_tenant.set(tenant_id)
