from __future__ import annotations

import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from src.clinicadmin.api.v1.responses import ApiResponse
from src.clinicadmin.config import settings
from src.clinicadmin.domain.models.common import DeletedResource, Page
from src.clinicadmin.domain.models.user import (
    CurrentUser,
    PasswordChange,
    UserCreate,
    UserOut,
    UserRole,
    UserStatus,
    UserUpdate,
)
from src.clinicadmin.security import ADMIN_ONLY, check_tenant, get_current_user, require_roles
from src.clinicadmin.services.audit.service import audit_service
from src.clinicadmin.services.users.service import user_service


# Staff management is admin-only, so the role check sits on the router.
router = APIRouter(
    prefix="/users",
    tags=["users"],
    dependencies=[Depends(get_current_user), Depends(check_tenant), Depends(require_roles(*ADMIN_ONLY))],
)


@router.get("", response_model=ApiResponse[Page[UserOut]])
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    search: Optional[str] = None,
    role: Optional[UserRole] = None,
    status_filter: Optional[UserStatus] = Query(None, alias="status"),
    tenant_id: str = Depends(check_tenant),
) -> ApiResponse[Page[UserOut]]:
    result = user_service.list_users(
        tenant_id,
        page=page,
        limit=limit,
        search=search,
        role=role,
        status=status_filter,
    )
    return ApiResponse.ok(result, "Users fetched successfully.")


@router.post("", response_model=ApiResponse[UserOut], status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: UserCreate,
    tenant_id: str = Depends(check_tenant),
    current_user: CurrentUser = Depends(get_current_user),
) -> ApiResponse[UserOut]:
    # Password hashing runs off the event loop.
    user = await asyncio.to_thread(user_service.create_user, tenant_id, payload)

    audit_service.log_event(
        action="create_user",
        resource_type="user",
        resource_id=user.id,
        extra={"role": user.role.value},
    )

    return ApiResponse.ok(user, "User created successfully.")


@router.get("/{user_id}", response_model=ApiResponse[UserOut])
async def get_user(user_id: int, tenant_id: str = Depends(check_tenant)) -> ApiResponse[UserOut]:
    return ApiResponse.ok(user_service.get_user(tenant_id, user_id), "User fetched successfully.")


@router.put("/{user_id}", response_model=ApiResponse[UserOut])
async def update_user(
    user_id: int,
    payload: UserUpdate,
    tenant_id: str = Depends(check_tenant),
) -> ApiResponse[UserOut]:
    user = user_service.update_user(tenant_id, user_id, payload)

    audit_service.log_event(
        action="update_user",
        resource_type="user",
        resource_id=user_id,
        extra={"fields": sorted(payload.model_fields_set), "role": user.role.value},
    )

    return ApiResponse.ok(user, "User updated successfully.")


@router.put("/{user_id}/password", response_model=ApiResponse[None])
async def change_password(
    user_id: int,
    payload: PasswordChange,
    tenant_id: str = Depends(check_tenant),
) -> ApiResponse[None]:
    await asyncio.to_thread(user_service.change_password, tenant_id, user_id, payload.new_password)

    audit_service.log_event(action="change_password", resource_type="user", resource_id=user_id)

    return ApiResponse.ok(None, "Password updated successfully.")


@router.delete("/{user_id}", response_model=ApiResponse[DeletedResource])
async def delete_user(user_id: int, tenant_id: str = Depends(check_tenant)) -> ApiResponse[DeletedResource]:
    deleted = user_service.delete_user(tenant_id, user_id)

    audit_service.log_event(action="delete_user", resource_type="user", resource_id=user_id)

    return ApiResponse.ok(deleted, "User deleted successfully.")
