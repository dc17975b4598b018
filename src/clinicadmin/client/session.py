from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional


logger = logging.getLogger("clinicadmin.client")


@dataclass
class AuthSession:
    """Bearer token plus the profile returned at login."""

    token: Optional[str] = None
    user: Optional[Dict[str, Any]] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    @property
    def tenant_id(self) -> Optional[str]:
        return (self.user or {}).get("tenantId")

    @property
    def role(self) -> Optional[str]:
        return (self.user or {}).get("role")


class SessionStore:
    """Persists an :class:`AuthSession` as a small JSON file."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> AuthSession:
        if not self._path.exists():
            return AuthSession()
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Ignoring unreadable session file %s", self._path)
            return AuthSession()
        if not isinstance(raw, dict):
            return AuthSession()
        return AuthSession(token=raw.get("token"), user=raw.get("user"))

    def save(self, session: AuthSession) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(asdict(session)), encoding="utf-8")

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)
