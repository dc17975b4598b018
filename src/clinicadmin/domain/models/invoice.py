from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import ClassVar, List, Optional

from pydantic import Field, PositiveFloat, PositiveInt

from src.clinicadmin.domain.models.common import ApiModel, PatchModel


class InvoiceStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"


class InvoiceItemIn(ApiModel):
    description: str = Field(min_length=2)
    quantity: PositiveInt
    unit_price: PositiveFloat


class InvoiceCreate(ApiModel):
    patient_id: PositiveInt
    issue_date: date
    due_date: date
    status: InvoiceStatus = InvoiceStatus.PENDING
    notes: Optional[str] = None
    items: List[InvoiceItemIn] = Field(min_length=1)


class InvoiceUpdate(PatchModel):
    non_nullable: ClassVar[frozenset[str]] = frozenset({"issue_date", "due_date", "status", "items"})

    # patient_id is fixed once the invoice exists.
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    status: Optional[InvoiceStatus] = None
    notes: Optional[str] = None
    items: Optional[List[InvoiceItemIn]] = Field(None, min_length=1)


class InvoiceItemOut(ApiModel):
    id: int
    invoice_id: int
    description: str
    quantity: int
    unit_price: float
    total: float


class InvoiceOut(ApiModel):
    id: int
    tenant_id: str
    patient_id: int
    invoice_number: str
    issue_date: date
    due_date: date
    total_amount: float
    status: InvoiceStatus
    notes: Optional[str] = None
    created_at: datetime
    patient_name: Optional[str] = None


class InvoiceDetail(InvoiceOut):
    patient_email: Optional[str] = None
    patient_address: Optional[str] = None
    items: List[InvoiceItemOut] = []


class ClinicDetails(ApiModel):
    """Header block used when rendering an invoice."""

    name: str
    address: Optional[str] = None
    phone: Optional[str] = None
    currency_symbol: str = "$"
