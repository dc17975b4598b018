from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from src.clinicadmin.domain.models.appointment import AppointmentStatus
from src.clinicadmin.domain.models.dashboard import (
    DailyAmount,
    DailyCount,
    DashboardKpis,
    DashboardSummary,
    DoctorServiceCount,
    RecentAppointment,
    RecentPatient,
)
from src.clinicadmin.domain.models.invoice import InvoiceStatus
from src.clinicadmin.domain.models.user import CurrentUser, UserRole
from src.clinicadmin.errors import ApiError
from src.clinicadmin.infra.db.models import (
    AppointmentORM,
    InventoryItemORM,
    InvoiceORM,
    PatientORM,
    UserORM,
    utcnow,
)
from src.clinicadmin.infra.db.session import database


SERVICE_REPORT_COLORS = ["#FF6384", "#36A2EB", "#FFCE56", "#4BC0C0", "#9966FF"]
DEFAULT_RANGE_DAYS = 30
MAX_RANGE_DAYS = 366
RECENT_LIMIT = 5
UPCOMING_WINDOW = timedelta(days=7)


def resolve_range(start_date: Optional[date], end_date: Optional[date], *, today: Optional[date] = None) -> tuple[date, date]:
    """Default to the last 30 days and reject inverted or over-long ranges."""

    today = today or utcnow().date()
    end = end_date or today
    start = start_date or (end - timedelta(days=DEFAULT_RANGE_DAYS))
    if end < start:
        raise ApiError.bad_request("End date must be on or after the start date.")
    if (end - start).days > MAX_RANGE_DAYS:
        raise ApiError.bad_request(f"The date range cannot exceed {MAX_RANGE_DAYS} days.")
    return start, end


def _as_date(value) -> date:
    # SQLite returns DATE() results as strings.
    return value if isinstance(value, date) else date.fromisoformat(str(value))


class DashboardService:
    def _count(self, session: Session, stmt) -> int:
        return int(session.execute(stmt).scalar_one() or 0)

    def _kpis(self, session: Session, tenant_id: str, user: CurrentUser, now: datetime, today: date) -> DashboardKpis:
        upcoming = select(func.count(AppointmentORM.id)).where(
            AppointmentORM.tenant_id == tenant_id,
            AppointmentORM.status == AppointmentStatus.SCHEDULED.value,
            AppointmentORM.start >= now,
            AppointmentORM.start <= datetime.combine(today + UPCOMING_WINDOW, time.max),
        )
        if user.role == UserRole.DOCTOR:
            upcoming = upcoming.where(AppointmentORM.doctor_id == user.id)

        today_sales = session.execute(
            select(func.coalesce(func.sum(InvoiceORM.total_amount), 0.0)).where(
                InvoiceORM.tenant_id == tenant_id,
                InvoiceORM.status == InvoiceStatus.PAID.value,
                InvoiceORM.issue_date == today,
            )
        ).scalar_one()

        return DashboardKpis(
            total_patients=self._count(
                session, select(func.count(PatientORM.id)).where(PatientORM.tenant_id == tenant_id)
            ),
            total_doctors=self._count(
                session,
                select(func.count(UserORM.id)).where(
                    UserORM.tenant_id == tenant_id, UserORM.role == UserRole.DOCTOR.value
                ),
            ),
            upcoming_appointments=self._count(session, upcoming),
            today_sales=round(float(today_sales or 0), 2),
            pending_invoices=self._count(
                session,
                select(func.count(InvoiceORM.id)).where(
                    InvoiceORM.tenant_id == tenant_id, InvoiceORM.status == InvoiceStatus.PENDING.value
                ),
            ),
            low_stock_items=self._count(
                session,
                select(func.count(InventoryItemORM.id)).where(
                    InventoryItemORM.tenant_id == tenant_id,
                    InventoryItemORM.quantity <= InventoryItemORM.low_stock_threshold,
                ),
            ),
        )

    def _sales_report(self, session: Session, tenant_id: str, start: date, end: date) -> List[DailyAmount]:
        rows = session.execute(
            select(InvoiceORM.issue_date, func.sum(InvoiceORM.total_amount))
            .where(
                InvoiceORM.tenant_id == tenant_id,
                InvoiceORM.status == InvoiceStatus.PAID.value,
                InvoiceORM.issue_date >= start,
                InvoiceORM.issue_date <= end,
            )
            .group_by(InvoiceORM.issue_date)
            .order_by(InvoiceORM.issue_date.asc())
        ).all()
        return [DailyAmount(day=_as_date(day), value=round(float(total or 0), 2)) for day, total in rows]

    def _new_patients_report(self, session: Session, tenant_id: str, start: date, end: date) -> List[DailyCount]:
        day = func.date(PatientORM.created_at)
        rows = session.execute(
            select(day, func.count(PatientORM.id))
            .where(
                PatientORM.tenant_id == tenant_id,
                PatientORM.created_at >= datetime.combine(start, time.min),
                PatientORM.created_at <= datetime.combine(end, time.max),
            )
            .group_by(day)
            .order_by(day.asc())
        ).all()
        return [DailyCount(day=_as_date(value), value=count) for value, count in rows]

    def _service_report(self, session: Session, tenant_id: str, start: date, end: date) -> List[DoctorServiceCount]:
        completed = func.count(AppointmentORM.id).label("completed")
        rows = session.execute(
            select(UserORM.id, UserORM.name, completed)
            .join(AppointmentORM, AppointmentORM.doctor_id == UserORM.id)
            .where(
                AppointmentORM.tenant_id == tenant_id,
                AppointmentORM.status == AppointmentStatus.COMPLETED.value,
                AppointmentORM.start >= datetime.combine(start, time.min),
                AppointmentORM.start <= datetime.combine(end, time.max),
            )
            .group_by(UserORM.id, UserORM.name)
            .order_by(completed.desc(), UserORM.name.asc())
            .limit(len(SERVICE_REPORT_COLORS))
        ).all()
        return [
            DoctorServiceCount(doctor_id=doctor_id, name=name, value=count, color=SERVICE_REPORT_COLORS[index])
            for index, (doctor_id, name, count) in enumerate(rows)
        ]

    def _recent_appointments(self, session: Session, tenant_id: str) -> List[RecentAppointment]:
        rows = session.scalars(
            select(AppointmentORM)
            .where(AppointmentORM.tenant_id == tenant_id)
            .order_by(AppointmentORM.start.desc())
            .limit(RECENT_LIMIT)
        ).unique().all()
        return [RecentAppointment.model_validate(row) for row in rows]

    def _recent_patients(self, session: Session, tenant_id: str) -> List[RecentPatient]:
        rows = session.scalars(
            select(PatientORM)
            .where(PatientORM.tenant_id == tenant_id)
            .order_by(PatientORM.created_at.desc(), PatientORM.id.desc())
            .limit(RECENT_LIMIT)
        ).all()
        return [RecentPatient.model_validate(row) for row in rows]

    def get_summary(
        self,
        tenant_id: str,
        user: CurrentUser,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> DashboardSummary:
        # "Today" is the UTC calendar day, matching the naive UTC timestamps in storage.
        now = now or utcnow()
        today = now.date()
        start, end = resolve_range(start_date, end_date, today=today)

        with database.session() as session:
            return DashboardSummary(
                start_date=start,
                end_date=end,
                kpis=self._kpis(session, tenant_id, user, now, today),
                sales_report=self._sales_report(session, tenant_id, start, end),
                new_patients_report=self._new_patients_report(session, tenant_id, start, end),
                service_report=self._service_report(session, tenant_id, start, end),
                recent_appointments=self._recent_appointments(session, tenant_id),
                recent_patients=self._recent_patients(session, tenant_id),
            )


dashboard_service = DashboardService()
