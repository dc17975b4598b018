from __future__ import annotations

from datetime import date
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from src.clinicadmin.domain.models.common import DeletedResource, Page
from src.clinicadmin.domain.models.inventory import (
    InventoryItemCreate,
    InventoryItemOut,
    InventoryItemUpdate,
)
from src.clinicadmin.errors import ApiError
from src.clinicadmin.infra.db.models import InventoryItemORM
from src.clinicadmin.infra.db.repositories import TenantRepository
from src.clinicadmin.infra.db.session import database
from src.clinicadmin.services.audit.service import audit_service


# quantity is deliberately absent: stock only moves through adjust_stock.
INVENTORY_MUTABLE_FIELDS = frozenset({"name", "category", "low_stock_threshold", "supplier"})


class InventoryService:
    def __init__(self) -> None:
        self._repo: TenantRepository[InventoryItemORM] = TenantRepository(
            InventoryItemORM, not_found_message="Inventory item not found."
        )

    def _name_taken(self, session, tenant_id: str, name: str, exclude_id: Optional[int] = None) -> bool:
        criteria = [InventoryItemORM.name == name]
        if exclude_id is not None:
            criteria.append(InventoryItemORM.id != exclude_id)
        return self._repo.exists(session, tenant_id, *criteria)

    def list_items(
        self,
        tenant_id: str,
        *,
        page: int,
        limit: int,
        search: Optional[str] = None,
        low_stock: Optional[bool] = None,
    ) -> Page[InventoryItemOut]:
        stmt = self._repo.scoped(tenant_id)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(
                or_(
                    InventoryItemORM.name.ilike(pattern),
                    InventoryItemORM.category.ilike(pattern),
                    InventoryItemORM.supplier.ilike(pattern),
                )
            )
        if low_stock:
            stmt = stmt.where(InventoryItemORM.quantity <= InventoryItemORM.low_stock_threshold)
        stmt = stmt.order_by(InventoryItemORM.name.asc())

        with database.session() as session:
            rows, total = self._repo.paginate(session, stmt, page=page, limit=limit)
            items = [InventoryItemOut.model_validate(row) for row in rows]
        return Page[InventoryItemOut].build(items, total=total, page=page, limit=limit)

    def get_item(self, tenant_id: str, item_id: int) -> InventoryItemOut:
        with database.session() as session:
            return InventoryItemOut.model_validate(self._repo.get(session, tenant_id, item_id))

    def create_item(self, tenant_id: str, payload: InventoryItemCreate) -> InventoryItemOut:
        try:
            with database.session() as session:
                if self._name_taken(session, tenant_id, payload.name):
                    raise ApiError.conflict("An item with this name already exists.")
                item = self._repo.add(session, InventoryItemORM(tenant_id=tenant_id, **payload.model_dump()))
                return InventoryItemOut.model_validate(item)
        except IntegrityError as exc:
            raise ApiError.conflict("Item name must be unique.") from exc

    def update_item(self, tenant_id: str, item_id: int, payload: InventoryItemUpdate) -> InventoryItemOut:
        patch = payload.patch()
        try:
            with database.session() as session:
                item = self._repo.get(session, tenant_id, item_id)
                if "quantity" in patch:
                    raise ApiError.bad_request("Quantity cannot be updated directly. Use the /adjust endpoint.")
                if patch.get("name") and self._name_taken(session, tenant_id, patch["name"], exclude_id=item.id):
                    raise ApiError.conflict("Update failed: An item with this name already exists.")
                self._repo.apply_patch(item, patch, INVENTORY_MUTABLE_FIELDS)
                session.flush()
                return InventoryItemOut.model_validate(item)
        except IntegrityError as exc:
            raise ApiError.conflict("Update failed: An item with this name already exists.") from exc

    def adjust_stock(
        self,
        tenant_id: str,
        item_id: int,
        amount: int,
        notes: Optional[str] = None,
        *,
        today: Optional[date] = None,
    ) -> InventoryItemOut:
        """Move stock by ``amount`` (positive restock, negative usage).

        The resulting quantity may not go below zero. Only a restock updates
        ``last_restock_date``. ``notes`` go to the audit log only.
        """

        if amount == 0:
            raise ApiError.bad_request("Amount cannot be zero.")

        with database.session() as session:
            item = self._repo.get(session, tenant_id, item_id)
            new_quantity = item.quantity + amount
            if new_quantity < 0:
                raise ApiError.bad_request(
                    f"Adjustment failed. Cannot have negative stock. Current stock: {item.quantity}."
                )
            item.quantity = new_quantity
            if amount > 0:
                item.last_restock_date = today or date.today()
            session.flush()
            result = InventoryItemOut.model_validate(item)

        audit_service.log_event(
            action="adjust_stock",
            resource_type="inventory_item",
            resource_id=item_id,
            tenant_id=tenant_id,
            extra={"amount": amount, "quantity": result.quantity, "notes": notes},
        )
        return result

    def delete_item(self, tenant_id: str, item_id: int) -> DeletedResource:
        with database.session() as session:
            self._repo.delete(session, tenant_id, item_id)
        return DeletedResource(id=item_id)


inventory_service = InventoryService()
