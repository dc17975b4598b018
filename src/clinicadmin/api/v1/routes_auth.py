from __future__ import annotations

from fastapi import APIRouter, Depends, status

from src.clinicadmin.api.v1.responses import ApiResponse
from src.clinicadmin.domain.models.auth import LoginRequest, LoginResult, RegisterRequest
from src.clinicadmin.domain.models.user import CurrentUser, PublicUser
from src.clinicadmin.security import check_tenant, get_current_user
from src.clinicadmin.services.audit.service import audit_service
from src.clinicadmin.services.auth.service import auth_service


router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/register",
    response_model=ApiResponse[PublicUser],
    status_code=status.HTTP_201_CREATED,
)
def register(payload: RegisterRequest) -> ApiResponse[PublicUser]:
    user = auth_service.register(payload)

    audit_service.log_event(
        action="register_clinic",
        resource_type="clinic",
        resource_id=user.tenant_id,
        tenant_id=user.tenant_id,
        subject=f"user:{user.id}",
    )

    return ApiResponse.ok(user, "Clinic and admin user registered successfully.")


@router.post("/login", response_model=ApiResponse[LoginResult])
def login(payload: LoginRequest) -> ApiResponse[LoginResult]:
    result = auth_service.login(payload.email, payload.password)

    audit_service.log_event(
        action="login",
        resource_type="user",
        resource_id=result.user.id,
        tenant_id=result.user.tenant_id,
        subject=f"user:{result.user.id}",
    )

    return ApiResponse.ok(result, "Login successful.")


@router.get(
    "/me",
    response_model=ApiResponse[CurrentUser],
    dependencies=[Depends(check_tenant)],
)
async def me(current_user: CurrentUser = Depends(get_current_user)) -> ApiResponse[CurrentUser]:
    return ApiResponse.ok(auth_service.get_profile(current_user), "User profile fetched successfully.")
