from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from src.clinicadmin.api.v1.responses import ApiResponse
from src.clinicadmin.config import settings
from src.clinicadmin.domain.models.common import DeletedResource, Page
from src.clinicadmin.domain.models.inventory import (
    InventoryItemCreate,
    InventoryItemOut,
    InventoryItemUpdate,
    StockAdjustment,
)
from src.clinicadmin.domain.models.user import CurrentUser
from src.clinicadmin.security import ADMIN_ONLY, FRONT_DESK, check_tenant, get_current_user, require_roles
from src.clinicadmin.services.audit.service import audit_service
from src.clinicadmin.services.inventory.service import inventory_service


router = APIRouter(
    prefix="/inventory",
    tags=["inventory"],
    dependencies=[Depends(get_current_user), Depends(check_tenant)],
)


@router.get("", response_model=ApiResponse[Page[InventoryItemOut]])
async def list_items(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    search: Optional[str] = None,
    low_stock: Optional[bool] = Query(None, alias="lowStock"),
    tenant_id: str = Depends(check_tenant),
    current_user: CurrentUser = Depends(require_roles(*FRONT_DESK)),
) -> ApiResponse[Page[InventoryItemOut]]:
    result = inventory_service.list_items(tenant_id, page=page, limit=limit, search=search, low_stock=low_stock)
    return ApiResponse.ok(result, "Inventory items fetched successfully.")


@router.post("", response_model=ApiResponse[InventoryItemOut], status_code=status.HTTP_201_CREATED)
async def create_item(
    payload: InventoryItemCreate,
    tenant_id: str = Depends(check_tenant),
    current_user: CurrentUser = Depends(require_roles(*FRONT_DESK)),
) -> ApiResponse[InventoryItemOut]:
    item = inventory_service.create_item(tenant_id, payload)

    audit_service.log_event(
        action="create_inventory_item",
        resource_type="inventory_item",
        resource_id=item.id,
        extra={"role": current_user.role.value, "quantity": item.quantity},
    )

    return ApiResponse.ok(item, "Inventory item created successfully.")


@router.get("/{item_id}", response_model=ApiResponse[InventoryItemOut])
async def get_item(
    item_id: int,
    tenant_id: str = Depends(check_tenant),
    current_user: CurrentUser = Depends(require_roles(*FRONT_DESK)),
) -> ApiResponse[InventoryItemOut]:
    return ApiResponse.ok(inventory_service.get_item(tenant_id, item_id), "Inventory item fetched successfully.")


@router.put("/{item_id}", response_model=ApiResponse[InventoryItemOut])
async def update_item(
    item_id: int,
    payload: InventoryItemUpdate,
    tenant_id: str = Depends(check_tenant),
    current_user: CurrentUser = Depends(require_roles(*FRONT_DESK)),
) -> ApiResponse[InventoryItemOut]:
    item = inventory_service.update_item(tenant_id, item_id, payload)

    audit_service.log_event(
        action="update_inventory_item",
        resource_type="inventory_item",
        resource_id=item_id,
        extra={"role": current_user.role.value, "fields": sorted(payload.model_fields_set)},
    )

    return ApiResponse.ok(item, "Inventory item updated successfully.")


@router.post("/{item_id}/adjust", response_model=ApiResponse[InventoryItemOut])
async def adjust_stock(
    item_id: int,
    payload: StockAdjustment,
    tenant_id: str = Depends(check_tenant),
    current_user: CurrentUser = Depends(require_roles(*FRONT_DESK)),
) -> ApiResponse[InventoryItemOut]:
    item = inventory_service.adjust_stock(tenant_id, item_id, payload.amount, payload.notes)
    return ApiResponse.ok(item, "Stock adjusted successfully.")


@router.delete("/{item_id}", response_model=ApiResponse[DeletedResource])
async def delete_item(
    item_id: int,
    tenant_id: str = Depends(check_tenant),
    current_user: CurrentUser = Depends(require_roles(*ADMIN_ONLY)),
) -> ApiResponse[DeletedResource]:
    deleted = inventory_service.delete_item(tenant_id, item_id)

    audit_service.log_event(
        action="delete_inventory_item",
        resource_type="inventory_item",
        resource_id=item_id,
        extra={"role": current_user.role.value},
    )

    return ApiResponse.ok(deleted, "Inventory item deleted successfully.")
