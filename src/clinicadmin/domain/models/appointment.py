from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import ClassVar, Optional

from pydantic import Field, PositiveInt, field_validator, model_validator

from src.clinicadmin.domain.models.common import ApiModel, PatchModel, to_naive_utc


DEFAULT_APPOINTMENT_TITLE = "Appointment"


class AppointmentStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NOSHOW = "noshow"


class _TimeRangeModel(ApiModel):
    @field_validator("start", "end", mode="after", check_fields=False)
    @classmethod
    def _normalize(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(value) if value is not None else None


class AppointmentCreate(_TimeRangeModel):
    patient_id: PositiveInt
    doctor_id: PositiveInt
    title: Optional[str] = Field(None, min_length=2)
    start: datetime
    end: datetime
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _end_after_start(self) -> "AppointmentCreate":
        if self.end <= self.start:
            raise ValueError("End time must be after start time")
        return self


class AppointmentUpdate(PatchModel, _TimeRangeModel):
    """Partial update: a drag-and-drop reschedule sends only start/end."""

    non_nullable: ClassVar[frozenset[str]] = frozenset({"patient_id", "doctor_id", "start", "end", "status"})

    patient_id: Optional[PositiveInt] = None
    doctor_id: Optional[PositiveInt] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    status: Optional[AppointmentStatus] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _end_after_start(self) -> "AppointmentUpdate":
        if self.start is not None and self.end is not None and self.end <= self.start:
            raise ValueError("End time must be after start time")
        return self


class AppointmentOut(ApiModel):
    id: int
    tenant_id: str
    patient_id: int
    doctor_id: int
    receptionist_id: Optional[int] = None
    title: Optional[str] = None
    start: datetime
    end: datetime
    status: AppointmentStatus
    notes: Optional[str] = None
    created_at: datetime
    patient_name: Optional[str] = None
    doctor_name: Optional[str] = None
    doctor_specialty: Optional[str] = None


class AppointmentDetail(AppointmentOut):
    patient_email: Optional[str] = None
