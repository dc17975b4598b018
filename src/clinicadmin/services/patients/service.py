from __future__ import annotations

from typing import Optional

from sqlalchemy import func, or_

from src.clinicadmin.domain.models.common import DeletedResource, Page
from src.clinicadmin.domain.models.patient import (
    PatientCreate,
    PatientOut,
    PatientSortField,
    PatientUpdate,
    SortOrder,
)
from src.clinicadmin.errors import ApiError
from src.clinicadmin.infra.db.models import PatientORM
from src.clinicadmin.infra.db.repositories import TenantRepository
from src.clinicadmin.infra.db.session import database


PATIENT_MUTABLE_FIELDS = frozenset(
    {"name", "email", "phone", "dob", "gender", "address", "blood_group", "notes"}
)

_SORT_COLUMNS = {
    PatientSortField.NAME: PatientORM.name,
    PatientSortField.CREATED_AT: PatientORM.created_at,
    PatientSortField.ID: PatientORM.id,
}

DUPLICATE_PATIENT_MESSAGE = "A patient with this email already exists in this clinic."


patient_repository: TenantRepository[PatientORM] = TenantRepository(
    PatientORM, not_found_message="Patient not found."
)


def _column_values(data: dict) -> dict:
    if data.get("gender") is not None:
        data["gender"] = data["gender"].value
    return data


class PatientService:
    def __init__(self, repository: TenantRepository[PatientORM] = patient_repository) -> None:
        self._repo = repository

    def _ensure_email_free(self, session, tenant_id: str, email: Optional[str], exclude_id: Optional[int] = None) -> None:
        if not email:
            return
        criteria = [func.lower(PatientORM.email) == email.lower()]
        if exclude_id is not None:
            criteria.append(PatientORM.id != exclude_id)
        if self._repo.exists(session, tenant_id, *criteria):
            raise ApiError.conflict(DUPLICATE_PATIENT_MESSAGE)

    def list_patients(
        self,
        tenant_id: str,
        *,
        page: int,
        limit: int,
        search: Optional[str] = None,
        sort_by: PatientSortField = PatientSortField.NAME,
        sort_order: SortOrder = SortOrder.ASC,
    ) -> Page[PatientOut]:
        stmt = self._repo.scoped(tenant_id)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(
                or_(PatientORM.name.ilike(pattern), PatientORM.email.ilike(pattern), PatientORM.phone.ilike(pattern))
            )
        column = _SORT_COLUMNS[sort_by]
        stmt = stmt.order_by(column.desc() if sort_order == SortOrder.DESC else column.asc(), PatientORM.id.asc())

        with database.session() as session:
            rows, total = self._repo.paginate(session, stmt, page=page, limit=limit)
            items = [PatientOut.model_validate(row) for row in rows]
        return Page[PatientOut].build(items, total=total, page=page, limit=limit)

    def get_patient(self, tenant_id: str, patient_id: int) -> PatientOut:
        with database.session() as session:
            return PatientOut.model_validate(self._repo.get(session, tenant_id, patient_id))

    def create_patient(self, tenant_id: str, payload: PatientCreate) -> PatientOut:
        data = _column_values(payload.model_dump())
        with database.session() as session:
            self._ensure_email_free(session, tenant_id, data.get("email"))
            patient = self._repo.add(session, PatientORM(tenant_id=tenant_id, **data))
            return PatientOut.model_validate(patient)

    def update_patient(self, tenant_id: str, patient_id: int, payload: PatientUpdate) -> PatientOut:
        patch = _column_values(payload.patch())
        with database.session() as session:
            patient = self._repo.get(session, tenant_id, patient_id)
            if patch.get("email"):
                self._ensure_email_free(session, tenant_id, patch["email"], exclude_id=patient.id)
            self._repo.apply_patch(patient, patch, PATIENT_MUTABLE_FIELDS)
            session.flush()
            return PatientOut.model_validate(patient)

    def delete_patient(self, tenant_id: str, patient_id: int) -> DeletedResource:
        """Hard delete; appointments and invoices go with it via the schema."""

        with database.session() as session:
            self._repo.delete(session, tenant_id, patient_id)
        return DeletedResource(id=patient_id)


patient_service = PatientService()
