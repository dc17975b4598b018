from __future__ import annotations

from fastapi import APIRouter, Depends

from src.clinicadmin.api.v1.responses import ApiResponse
from src.clinicadmin.domain.models.settings import ClinicSettingsOut, ClinicSettingsUpdate
from src.clinicadmin.domain.models.user import CurrentUser
from src.clinicadmin.security import ADMIN_ONLY, FRONT_DESK, check_tenant, get_current_user, require_roles
from src.clinicadmin.services.audit.service import audit_service
from src.clinicadmin.services.settings.service import settings_service


router = APIRouter(
    prefix="/settings",
    tags=["settings"],
    dependencies=[Depends(get_current_user), Depends(check_tenant)],
)


@router.get("", response_model=ApiResponse[ClinicSettingsOut])
async def get_settings(
    tenant_id: str = Depends(check_tenant),
    current_user: CurrentUser = Depends(require_roles(*FRONT_DESK)),
) -> ApiResponse[ClinicSettingsOut]:
    return ApiResponse.ok(settings_service.get_settings(tenant_id), "Settings fetched successfully.")


@router.put("", response_model=ApiResponse[ClinicSettingsOut])
async def update_settings(
    payload: ClinicSettingsUpdate,
    tenant_id: str = Depends(check_tenant),
    current_user: CurrentUser = Depends(require_roles(*ADMIN_ONLY)),
) -> ApiResponse[ClinicSettingsOut]:
    updated = settings_service.update_settings(tenant_id, payload)

    audit_service.log_event(
        action="update_settings",
        resource_type="clinic_settings",
        resource_id=updated.id,
        extra={"fields": sorted(payload.model_fields_set)},
    )

    return ApiResponse.ok(updated, "Settings updated successfully.")
