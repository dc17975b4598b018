from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import Field

from src.clinicadmin.domain.models.common import ApiModel


class DashboardKpis(ApiModel):
    total_patients: int
    total_doctors: int
    upcoming_appointments: int
    today_sales: float
    pending_invoices: int
    low_stock_items: int


class DailyAmount(ApiModel):
    day: date = Field(alias="date")
    value: float


class DailyCount(ApiModel):
    day: date = Field(alias="date")
    value: int


class DoctorServiceCount(ApiModel):
    doctor_id: int
    name: str
    value: int
    color: str


class RecentAppointment(ApiModel):
    id: int
    start: datetime
    status: str
    patient_name: Optional[str] = None
    doctor_name: Optional[str] = None


class RecentPatient(ApiModel):
    id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    created_at: datetime


class DashboardSummary(ApiModel):
    start_date: date
    end_date: date
    kpis: DashboardKpis
    sales_report: List[DailyAmount]
    new_patients_report: List[DailyCount]
    service_report: List[DoctorServiceCount]
    recent_appointments: List[RecentAppointment]
    recent_patients: List[RecentPatient]
