from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from src.clinicadmin.domain.models.appointment import (
    DEFAULT_APPOINTMENT_TITLE,
    AppointmentCreate,
    AppointmentDetail,
    AppointmentOut,
    AppointmentStatus,
    AppointmentUpdate,
)
from src.clinicadmin.domain.models.common import DeletedResource
from src.clinicadmin.errors import ApiError
from src.clinicadmin.infra.db.models import AppointmentORM
from src.clinicadmin.infra.db.repositories import TenantRepository
from src.clinicadmin.infra.db.session import database
from src.clinicadmin.services.patients.service import patient_repository
from src.clinicadmin.services.users.service import user_service


APPOINTMENT_MUTABLE_FIELDS = frozenset({"patient_id", "doctor_id", "start", "end", "status", "notes"})


class AppointmentService:
    """Calendar scheduling for a clinic.

    Double-booking is not prevented: two appointments for the same doctor may
    overlap. ``list_appointments`` uses half-open overlap semantics, so an
    appointment ending exactly at the window start is not returned.
    """

    def __init__(self) -> None:
        self._repo: TenantRepository[AppointmentORM] = TenantRepository(
            AppointmentORM, not_found_message="Appointment not found."
        )

    def _verify_patient(self, session: Session, tenant_id: str, patient_id: int, message: str) -> None:
        patient_repository.get(session, tenant_id, patient_id, message=message)

    def _verify_doctor(self, session: Session, tenant_id: str, doctor_id: int, message: str) -> None:
        try:
            user_service.get_doctor(session, tenant_id, doctor_id)
        except ApiError as exc:
            raise ApiError.not_found(message) from exc

    def list_appointments(
        self,
        tenant_id: str,
        *,
        start: datetime,
        end: datetime,
        doctor_id: Optional[int] = None,
        patient_id: Optional[int] = None,
        status: Optional[AppointmentStatus] = None,
    ) -> List[AppointmentOut]:
        """Appointments overlapping ``[start, end)``, earliest first."""

        stmt = self._repo.scoped(tenant_id).where(AppointmentORM.start < end, AppointmentORM.end > start)
        if doctor_id is not None:
            stmt = stmt.where(AppointmentORM.doctor_id == doctor_id)
        if patient_id is not None:
            stmt = stmt.where(AppointmentORM.patient_id == patient_id)
        if status is not None:
            stmt = stmt.where(AppointmentORM.status == status.value)
        stmt = stmt.order_by(AppointmentORM.start.asc(), AppointmentORM.id.asc())

        with database.session() as session:
            return [AppointmentOut.model_validate(row) for row in self._repo.list(session, stmt)]

    def get_appointment(self, tenant_id: str, appointment_id: int) -> AppointmentDetail:
        with database.session() as session:
            return AppointmentDetail.model_validate(self._repo.get(session, tenant_id, appointment_id))

    def create_appointment(self, tenant_id: str, receptionist_id: int, payload: AppointmentCreate) -> AppointmentDetail:
        with database.session() as session:
            self._verify_patient(
                session, tenant_id, payload.patient_id, "Patient not found or does not belong to this clinic."
            )
            self._verify_doctor(
                session, tenant_id, payload.doctor_id, "Doctor not found or does not belong to this clinic."
            )
            appointment = self._repo.add(
                session,
                AppointmentORM(
                    tenant_id=tenant_id,
                    patient_id=payload.patient_id,
                    doctor_id=payload.doctor_id,
                    receptionist_id=receptionist_id,
                    title=payload.title or DEFAULT_APPOINTMENT_TITLE,
                    start=payload.start,
                    end=payload.end,
                    status=AppointmentStatus.SCHEDULED.value,
                    notes=payload.notes,
                ),
            )
            session.refresh(appointment)
            return AppointmentDetail.model_validate(appointment)

    def update_appointment(self, tenant_id: str, appointment_id: int, payload: AppointmentUpdate) -> AppointmentDetail:
        patch = payload.patch()
        if "status" in patch:
            patch["status"] = patch["status"].value

        with database.session() as session:
            appointment = self._repo.get(session, tenant_id, appointment_id)
            if not patch:
                raise ApiError.bad_request("No fields provided for update.")

            if "patient_id" in patch and patch["patient_id"] != appointment.patient_id:
                self._verify_patient(session, tenant_id, patch["patient_id"], "New patient not found.")
            if "doctor_id" in patch and patch["doctor_id"] != appointment.doctor_id:
                self._verify_doctor(session, tenant_id, patch["doctor_id"], "New doctor not found.")

            # A one-sided reschedule must still leave end after start.
            new_start = patch.get("start", appointment.start)
            new_end = patch.get("end", appointment.end)
            if new_end <= new_start:
                raise ApiError.bad_request("End time must be after start time.")

            self._repo.apply_patch(appointment, patch, APPOINTMENT_MUTABLE_FIELDS)
            session.flush()
            session.refresh(appointment)
            return AppointmentDetail.model_validate(appointment)

    def delete_appointment(self, tenant_id: str, appointment_id: int) -> DeletedResource:
        with database.session() as session:
            self._repo.delete(session, tenant_id, appointment_id)
        return DeletedResource(id=appointment_id)


appointment_service = AppointmentService()
