from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from src.clinicadmin.api.v1.responses import ApiResponse
from src.clinicadmin.domain.models.appointment import (
    AppointmentCreate,
    AppointmentDetail,
    AppointmentOut,
    AppointmentStatus,
    AppointmentUpdate,
)
from src.clinicadmin.domain.models.common import DeletedResource, parse_calendar_bound
from src.clinicadmin.domain.models.user import CurrentUser
from src.clinicadmin.errors import ApiError
from src.clinicadmin.security import ALL_STAFF, FRONT_DESK, check_tenant, get_current_user, require_roles
from src.clinicadmin.services.appointments.service import appointment_service
from src.clinicadmin.services.audit.service import audit_service


router = APIRouter(
    prefix="/appointments",
    tags=["appointments"],
    dependencies=[Depends(get_current_user), Depends(check_tenant)],
)


def _calendar_bound(name: str, value: str) -> datetime:
    try:
        return parse_calendar_bound(value)
    except ValueError:
        raise ApiError.bad_request(
            f"Validation failed: query.{name}: Start/End must be YYYY-MM-DD or ISO DateTime string"
        )


@router.get("", response_model=ApiResponse[List[AppointmentOut]])
async def list_appointments(
    start: str = Query(..., description="YYYY-MM-DD or ISO 8601 date-time"),
    end: str = Query(..., description="YYYY-MM-DD or ISO 8601 date-time"),
    doctor_id: Optional[int] = Query(None, alias="doctorId", ge=1),
    patient_id: Optional[int] = Query(None, alias="patientId", ge=1),
    status_filter: Optional[AppointmentStatus] = Query(None, alias="status"),
    tenant_id: str = Depends(check_tenant),
    current_user: CurrentUser = Depends(require_roles(*ALL_STAFF)),
) -> ApiResponse[List[AppointmentOut]]:
    appointments = appointment_service.list_appointments(
        tenant_id,
        start=_calendar_bound("start", start),
        end=_calendar_bound("end", end),
        doctor_id=doctor_id,
        patient_id=patient_id,
        status=status_filter,
    )
    return ApiResponse.ok(appointments, "Appointments fetched successfully.")


@router.post("", response_model=ApiResponse[AppointmentDetail], status_code=status.HTTP_201_CREATED)
async def create_appointment(
    payload: AppointmentCreate,
    tenant_id: str = Depends(check_tenant),
    current_user: CurrentUser = Depends(require_roles(*FRONT_DESK)),
) -> ApiResponse[AppointmentDetail]:
    appointment = appointment_service.create_appointment(tenant_id, current_user.id, payload)

    audit_service.log_event(
        action="create_appointment",
        resource_type="appointment",
        resource_id=appointment.id,
        extra={"role": current_user.role.value, "doctor_id": appointment.doctor_id},
    )

    return ApiResponse.ok(appointment, "Appointment created successfully.")


@router.get("/{appointment_id}", response_model=ApiResponse[AppointmentDetail])
async def get_appointment(
    appointment_id: int,
    tenant_id: str = Depends(check_tenant),
    current_user: CurrentUser = Depends(require_roles(*ALL_STAFF)),
) -> ApiResponse[AppointmentDetail]:
    return ApiResponse.ok(
        appointment_service.get_appointment(tenant_id, appointment_id),
        "Appointment fetched successfully.",
    )


@router.put("/{appointment_id}", response_model=ApiResponse[AppointmentDetail])
async def update_appointment(
    appointment_id: int,
    payload: AppointmentUpdate,
    tenant_id: str = Depends(check_tenant),
    current_user: CurrentUser = Depends(require_roles(*FRONT_DESK)),
) -> ApiResponse[AppointmentDetail]:
    appointment = appointment_service.update_appointment(tenant_id, appointment_id, payload)

    audit_service.log_event(
        action="update_appointment",
        resource_type="appointment",
        resource_id=appointment_id,
        extra={
            "role": current_user.role.value,
            "fields": sorted(payload.model_fields_set),
            "status": appointment.status.value,
        },
    )

    return ApiResponse.ok(appointment, "Appointment updated successfully.")


@router.delete("/{appointment_id}", response_model=ApiResponse[DeletedResource])
async def delete_appointment(
    appointment_id: int,
    tenant_id: str = Depends(check_tenant),
    current_user: CurrentUser = Depends(require_roles(*FRONT_DESK)),
) -> ApiResponse[DeletedResource]:
    deleted = appointment_service.delete_appointment(tenant_id, appointment_id)

    audit_service.log_event(
        action="delete_appointment",
        resource_type="appointment",
        resource_id=appointment_id,
        extra={"role": current_user.role.value},
    )

    return ApiResponse.ok(deleted, "Appointment deleted successfully.")
