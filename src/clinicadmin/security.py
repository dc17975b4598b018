from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Callable, Optional

import jwt
from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.clinicadmin.domain.models.user import CurrentUser, UserRole
from src.clinicadmin.services.auth.credentials import decode_access_token
from src.clinicadmin.services.users.service import user_service
from src.clinicadmin.tenancy import set_current_tenant


logger = logging.getLogger("clinicadmin.api")

# Token is expected as "Authorization: Bearer <jwt>".
_bearer_scheme = HTTPBearer(auto_error=False)

# Stable identifier of the caller for request-scoped consumers such as the
# audit logger. Never holds the raw token.
_current_subject: ContextVar[Optional[str]] = ContextVar("current_subject", default=None)


def get_current_subject() -> Optional[str]:
    return _current_subject.get()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(_bearer_scheme),
) -> CurrentUser:
    """Resolve the caller from the bearer token.

    The token only carries the user id that matters here; the row is re-read
    on every request so deactivated or deleted staff lose access at once.
    """

    _current_subject.set(None)
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Not authorized, no token")

    try:
        claims = decode_access_token(credentials.credentials)
        user_id = int(claims["id"])
    except (jwt.PyJWTError, KeyError, TypeError, ValueError):
        raise _unauthorized("Not authorized, token failed")

    user = user_service.get_active_principal(user_id)
    if user is None:
        logger.info("Rejected token for missing or inactive user %s", user_id)
        raise _unauthorized("Not authorized, token failed")

    _current_subject.set(f"user:{user.id}")
    return user


def require_roles(*roles: UserRole) -> Callable[..., CurrentUser]:
    """Build a dependency that lets only the given roles through (403 otherwise)."""

    allowed = frozenset(roles)

    async def _role_gate(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Forbidden. User role '{current_user.role.value}' is not authorized to access this resource.",
            )
        return current_user

    return _role_gate


async def check_tenant(current_user: CurrentUser = Depends(get_current_user)) -> str:
    """Return the caller's tenant and bind it to the request context."""

    if not current_user.tenant_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Tenant information is missing for this user.",
        )
    set_current_tenant(current_user.tenant_id)
    return current_user.tenant_id


ALL_STAFF = (UserRole.ADMIN, UserRole.DOCTOR, UserRole.RECEPTION)
FRONT_DESK = (UserRole.ADMIN, UserRole.RECEPTION)
ADMIN_ONLY = (UserRole.ADMIN,)
