from __future__ import annotations

from datetime import date
from typing import ClassVar, List, Optional

from pydantic import Field, model_validator

from src.clinicadmin.domain.models.common import ApiModel, PatchModel


_TIME_PATTERN = r"^([01]\d|2[0-3]):([0-5]\d)$"


class DayHours(ApiModel):
    open: str = Field(pattern=_TIME_PATTERN)
    close: str = Field(pattern=_TIME_PATTERN)
    is_open: bool

    @model_validator(mode="after")
    def _close_after_open(self) -> "DayHours":
        # Zero-padded HH:MM strings compare in clock order.
        if self.is_open and self.close <= self.open:
            raise ValueError("Close time must be after open time")
        return self


class OpeningHours(ApiModel):
    mon: DayHours
    tue: DayHours
    wed: DayHours
    thu: DayHours
    fri: DayHours
    sat: DayHours
    sun: DayHours

    @classmethod
    def default(cls) -> "OpeningHours":
        weekday = DayHours(open="09:00", close="17:00", is_open=True)
        weekend = DayHours(open="09:00", close="17:00", is_open=False)
        return cls(
            mon=weekday,
            tue=weekday,
            wed=weekday,
            thu=weekday,
            fri=weekday,
            sat=weekend,
            sun=weekend,
        )


class ClinicSettingsOut(ApiModel):
    id: int
    tenant_id: str
    clinic_name: str
    currency_symbol: str
    opening_hours: Optional[OpeningHours] = None
    holidays: List[date] = []


class ClinicSettingsUpdate(PatchModel):
    non_nullable: ClassVar[frozenset[str]] = frozenset({"clinic_name", "currency_symbol"})

    clinic_name: Optional[str] = Field(None, min_length=2)
    currency_symbol: Optional[str] = Field(None, max_length=5)
    opening_hours: Optional[OpeningHours] = None
    holidays: Optional[List[date]] = None
