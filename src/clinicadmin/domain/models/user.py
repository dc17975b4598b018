from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import ClassVar, Optional

from pydantic import EmailStr, Field, model_validator

from src.clinicadmin.domain.models.common import ApiModel, PatchModel


class UserRole(str, Enum):
    ADMIN = "admin"
    DOCTOR = "doctor"
    RECEPTION = "reception"


class UserStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class PublicUser(ApiModel):
    id: int
    name: str
    email: str
    role: UserRole
    tenant_id: str


class CurrentUser(PublicUser):
    """Authenticated principal, re-read from storage on every request."""

    specialty: Optional[str] = None
    phone: Optional[str] = None


class UserOut(CurrentUser):
    is_active: bool
    created_at: datetime


class UserCreate(ApiModel):
    name: str = Field(min_length=2)
    email: EmailStr
    password: str = Field(min_length=8)
    role: UserRole
    specialty: Optional[str] = None
    phone: Optional[str] = Field(None, min_length=10)
    is_active: bool = True

    @model_validator(mode="after")
    def _specialty_matches_role(self) -> "UserCreate":
        if self.role == UserRole.DOCTOR and not self.specialty:
            raise ValueError("Specialty is required for the doctor role")
        if self.role != UserRole.DOCTOR:
            self.specialty = None
        return self


class UserUpdate(PatchModel):
    # Email and password are not editable here.
    non_nullable: ClassVar[frozenset[str]] = frozenset({"name", "role", "is_active"})

    name: Optional[str] = Field(None, min_length=2)
    role: Optional[UserRole] = None
    specialty: Optional[str] = None
    phone: Optional[str] = Field(None, min_length=10)
    is_active: Optional[bool] = None


class PasswordChange(ApiModel):
    new_password: str = Field(min_length=8)
