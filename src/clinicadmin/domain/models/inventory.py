from __future__ import annotations

from datetime import date, datetime
from typing import ClassVar, Optional

from pydantic import Field, field_validator

from src.clinicadmin.domain.models.common import ApiModel, PatchModel


class InventoryItemCreate(ApiModel):
    name: str = Field(min_length=2)
    category: Optional[str] = None
    quantity: int = Field(ge=0)
    low_stock_threshold: int = Field(10, ge=0)
    supplier: Optional[str] = None


class InventoryItemUpdate(PatchModel):
    non_nullable: ClassVar[frozenset[str]] = frozenset({"name", "low_stock_threshold"})

    name: Optional[str] = Field(None, min_length=2)
    category: Optional[str] = None
    # Accepted here only so the service can refuse it with a clear message.
    quantity: Optional[int] = Field(None, ge=0)
    low_stock_threshold: Optional[int] = Field(None, ge=0)
    supplier: Optional[str] = None


class StockAdjustment(ApiModel):
    amount: int
    notes: Optional[str] = None

    @field_validator("amount")
    @classmethod
    def _non_zero(cls, value: int) -> int:
        if value == 0:
            raise ValueError("Amount cannot be zero")
        return value


class InventoryItemOut(ApiModel):
    id: int
    tenant_id: str
    name: str
    category: Optional[str] = None
    quantity: int
    low_stock_threshold: int
    supplier: Optional[str] = None
    last_restock_date: Optional[date] = None
    created_at: datetime
