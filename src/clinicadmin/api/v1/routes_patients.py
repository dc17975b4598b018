from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from src.clinicadmin.api.v1.responses import ApiResponse
from src.clinicadmin.config import settings
from src.clinicadmin.domain.models.common import DeletedResource, Page
from src.clinicadmin.domain.models.patient import (
    PatientCreate,
    PatientOut,
    PatientSortField,
    PatientUpdate,
    SortOrder,
)
from src.clinicadmin.domain.models.user import CurrentUser
from src.clinicadmin.security import ADMIN_ONLY, ALL_STAFF, FRONT_DESK, check_tenant, get_current_user, require_roles
from src.clinicadmin.services.audit.service import audit_service
from src.clinicadmin.services.patients.service import patient_service


router = APIRouter(
    prefix="/patients",
    tags=["patients"],
    dependencies=[Depends(get_current_user), Depends(check_tenant)],
)


@router.get("", response_model=ApiResponse[Page[PatientOut]])
async def list_patients(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    search: Optional[str] = None,
    sort_by: PatientSortField = Query(PatientSortField.NAME, alias="sortBy"),
    sort_order: SortOrder = Query(SortOrder.ASC, alias="sortOrder"),
    tenant_id: str = Depends(check_tenant),
    current_user: CurrentUser = Depends(require_roles(*ALL_STAFF)),
) -> ApiResponse[Page[PatientOut]]:
    result = patient_service.list_patients(
        tenant_id,
        page=page,
        limit=limit,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return ApiResponse.ok(result, "Patients fetched successfully.")


@router.post("", response_model=ApiResponse[PatientOut], status_code=status.HTTP_201_CREATED)
async def create_patient(
    payload: PatientCreate,
    tenant_id: str = Depends(check_tenant),
    current_user: CurrentUser = Depends(require_roles(*FRONT_DESK)),
) -> ApiResponse[PatientOut]:
    patient = patient_service.create_patient(tenant_id, payload)

    audit_service.log_event(
        action="create_patient",
        resource_type="patient",
        resource_id=patient.id,
        extra={"role": current_user.role.value},
    )

    return ApiResponse.ok(patient, "Patient created successfully.")


@router.get("/{patient_id}", response_model=ApiResponse[PatientOut])
async def get_patient(
    patient_id: int,
    tenant_id: str = Depends(check_tenant),
    current_user: CurrentUser = Depends(require_roles(*ALL_STAFF)),
) -> ApiResponse[PatientOut]:
    return ApiResponse.ok(patient_service.get_patient(tenant_id, patient_id), "Patient fetched successfully.")


@router.put("/{patient_id}", response_model=ApiResponse[PatientOut])
async def update_patient(
    patient_id: int,
    payload: PatientUpdate,
    tenant_id: str = Depends(check_tenant),
    current_user: CurrentUser = Depends(require_roles(*FRONT_DESK)),
) -> ApiResponse[PatientOut]:
    patient = patient_service.update_patient(tenant_id, patient_id, payload)

    audit_service.log_event(
        action="update_patient",
        resource_type="patient",
        resource_id=patient_id,
        extra={"role": current_user.role.value, "fields": sorted(payload.model_fields_set)},
    )

    return ApiResponse.ok(patient, "Patient updated successfully.")


@router.delete("/{patient_id}", response_model=ApiResponse[DeletedResource])
async def delete_patient(
    patient_id: int,
    tenant_id: str = Depends(check_tenant),
    current_user: CurrentUser = Depends(require_roles(*ADMIN_ONLY)),
) -> ApiResponse[DeletedResource]:
    deleted = patient_service.delete_patient(tenant_id, patient_id)

    audit_service.log_event(
        action="delete_patient",
        resource_type="patient",
        resource_id=patient_id,
        extra={"role": current_user.role.value},
    )

    return ApiResponse.ok(deleted, "Patient deleted successfully.")
