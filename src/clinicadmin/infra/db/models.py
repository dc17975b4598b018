from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, List, Optional
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column, relationship


def utcnow() -> datetime:
    """Naive UTC timestamp; all stored date-times are naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_clinic_id() -> str:
    return f"clinic_{uuid4()}"


class Base(DeclarativeBase):
    pass


class TenantScopedMixin:
    """Adds the ``tenant_id`` column every clinic-owned table carries."""

    @declared_attr
    def tenant_id(cls) -> Mapped[str]:
        return mapped_column(
            String,
            ForeignKey("clinics.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )


class ClinicORM(Base):
    __tablename__ = "clinics"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=new_clinic_id)
    name: Mapped[str] = mapped_column(String, nullable=False)
    address: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


class UserORM(TenantScopedMixin, Base):
    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("email", "tenant_id", name="uq_users_email_tenant"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str] = mapped_column(String, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String, nullable=False)
    role: Mapped[str] = mapped_column(String, nullable=False)
    # Only meaningful for doctors.
    specialty: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


class PatientORM(TenantScopedMixin, Base):
    __tablename__ = "patients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False, index=True)
    email: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    dob: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    gender: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    blood_group: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


class AppointmentORM(TenantScopedMixin, Base):
    __tablename__ = "appointments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    patient_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    doctor_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    receptionist_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    title: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    start: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    end: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="scheduled")
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    patient: Mapped[PatientORM] = relationship(lazy="joined", foreign_keys=[patient_id])
    doctor: Mapped[UserORM] = relationship(lazy="joined", foreign_keys=[doctor_id])

    @property
    def patient_name(self) -> Optional[str]:
        return self.patient.name if self.patient is not None else None

    @property
    def patient_email(self) -> Optional[str]:
        return self.patient.email if self.patient is not None else None

    @property
    def doctor_name(self) -> Optional[str]:
        return self.doctor.name if self.doctor is not None else None

    @property
    def doctor_specialty(self) -> Optional[str]:
        return self.doctor.specialty if self.doctor is not None else None


class InvoiceORM(TenantScopedMixin, Base):
    __tablename__ = "invoices"
    __table_args__ = (UniqueConstraint("tenant_id", "invoice_number", name="uq_invoices_tenant_number"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    patient_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    invoice_number: Mapped[str] = mapped_column(String, nullable=False)
    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    patient: Mapped[PatientORM] = relationship(lazy="joined")
    items: Mapped[List["InvoiceItemORM"]] = relationship(
        back_populates="invoice",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="InvoiceItemORM.id",
        lazy="selectin",
    )

    @property
    def patient_name(self) -> Optional[str]:
        return self.patient.name if self.patient is not None else None

    @property
    def patient_email(self) -> Optional[str]:
        return self.patient.email if self.patient is not None else None

    @property
    def patient_address(self) -> Optional[str]:
        return self.patient.address if self.patient is not None else None


class InvoiceItemORM(Base):
    __tablename__ = "invoice_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    invoice_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    description: Mapped[str] = mapped_column(String, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[float] = mapped_column(Float, nullable=False)
    total: Mapped[float] = mapped_column(Float, nullable=False)

    invoice: Mapped[InvoiceORM] = relationship(back_populates="items")


class InventoryItemORM(TenantScopedMixin, Base):
    __tablename__ = "inventory_items"
    __table_args__ = (UniqueConstraint("name", "tenant_id", name="uq_inventory_name_tenant"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    low_stock_threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    supplier: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    last_restock_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)


class ClinicSettingsORM(Base):
    __tablename__ = "clinic_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # One row per clinic, so the tenant column is unique here.
    tenant_id: Mapped[str] = mapped_column(
        String, ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    clinic_name: Mapped[str] = mapped_column(String, nullable=False)
    currency_symbol: Mapped[str] = mapped_column(String, nullable=False, default="$")
    opening_hours: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    holidays: Mapped[Optional[list[str]]] = mapped_column(JSON, nullable=True)
