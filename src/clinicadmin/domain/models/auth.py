from __future__ import annotations

from pydantic import EmailStr, Field

from src.clinicadmin.domain.models.common import ApiModel
from src.clinicadmin.domain.models.user import PublicUser


class RegisterRequest(ApiModel):
    clinic_name: str = Field(min_length=2)
    user_name: str = Field(min_length=2)
    email: EmailStr
    password: str = Field(min_length=8)


class LoginRequest(ApiModel):
    email: EmailStr
    password: str = Field(min_length=1)


class LoginResult(ApiModel):
    token: str
    user: PublicUser
