from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import bcrypt
import jwt

from src.clinicadmin.config import settings


_EXPIRES_IN = re.compile(r"^\s*(\d+)\s*([dhm])\s*$")
_UNIT_SECONDS = {"d": 86400, "h": 3600, "m": 60}
DEFAULT_TOKEN_TTL = timedelta(days=1)


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash.
        return False


def parse_expires_in(value: str) -> timedelta:
    """Parse ``"1d"``, ``"12h"`` or ``"30m"``; anything else is one day."""

    match = _EXPIRES_IN.match(value or "")
    if not match:
        return DEFAULT_TOKEN_TTL
    amount, unit = int(match.group(1)), match.group(2)
    if amount <= 0:
        return DEFAULT_TOKEN_TTL
    return timedelta(seconds=amount * _UNIT_SECONDS[unit])


def create_access_token(*, user_id: int, email: str, role: str, tenant_id: str) -> str:
    now = datetime.now(timezone.utc)
    payload: Dict[str, Any] = {
        # PyJWT requires "sub" to be a string, so the numeric id travels as "id".
        "id": user_id,
        "email": email,
        "role": role,
        "tenantId": tenant_id,
        "iat": now,
        "exp": now + parse_expires_in(settings.jwt_expires_in),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Dict[str, Any]:
    """Return the verified claims; raises ``jwt.PyJWTError`` when invalid or expired."""

    return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
