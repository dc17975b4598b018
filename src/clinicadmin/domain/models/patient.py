from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import ClassVar, Optional

from pydantic import EmailStr, Field

from src.clinicadmin.domain.models.common import ApiModel, PatchModel


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class PatientSortField(str, Enum):
    NAME = "name"
    CREATED_AT = "createdAt"
    ID = "id"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class PatientBase(ApiModel):
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, min_length=10)
    dob: Optional[date] = None
    gender: Optional[Gender] = None
    address: Optional[str] = None
    blood_group: Optional[str] = None
    notes: Optional[str] = None


class PatientCreate(PatientBase):
    name: str = Field(min_length=3)


class PatientUpdate(PatchModel, PatientBase):
    non_nullable: ClassVar[frozenset[str]] = frozenset({"name"})

    name: Optional[str] = Field(None, min_length=3)


class PatientOut(ApiModel):
    id: int
    tenant_id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    dob: Optional[date] = None
    gender: Optional[Gender] = None
    address: Optional[str] = None
    blood_group: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
