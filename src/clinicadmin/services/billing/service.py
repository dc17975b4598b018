from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.clinicadmin.config import settings
from src.clinicadmin.domain.models.common import DeletedResource, Page
from src.clinicadmin.domain.models.invoice import (
    ClinicDetails,
    InvoiceCreate,
    InvoiceDetail,
    InvoiceItemIn,
    InvoiceOut,
    InvoiceStatus,
    InvoiceUpdate,
)
from src.clinicadmin.errors import ApiError
from src.clinicadmin.infra.db.models import (
    ClinicORM,
    ClinicSettingsORM,
    InvoiceItemORM,
    InvoiceORM,
    PatientORM,
)
from src.clinicadmin.infra.db.repositories import TenantRepository
from src.clinicadmin.infra.db.session import database
from src.clinicadmin.services.billing.pdf import render_invoice_pdf
from src.clinicadmin.services.patients.service import patient_repository


logger = logging.getLogger("clinicadmin.api")

INVOICE_SCALAR_FIELDS = frozenset({"issue_date", "due_date", "status", "notes"})


def line_total(quantity: int, unit_price: float) -> float:
    return round(quantity * unit_price, 2)


def build_items(items: Iterable[InvoiceItemIn]) -> Tuple[List[InvoiceItemORM], float]:
    """Return item rows plus the invoice total (sum of the rounded line totals)."""

    rows = [
        InvoiceItemORM(
            description=item.description,
            quantity=item.quantity,
            unit_price=item.unit_price,
            total=line_total(item.quantity, item.unit_price),
        )
        for item in items
    ]
    return rows, round(sum(row.total for row in rows), 2)


class BillingService:
    """Invoices and their line items.

    Invoice numbers are ``INV-<year>-<seq>`` with a 4-digit sequence per
    clinic and year. Number generation reads the current maximum, so two
    concurrent creates can pick the same number; the per-clinic unique
    constraint turns the loser into a 409.
    """

    def __init__(self) -> None:
        self._repo: TenantRepository[InvoiceORM] = TenantRepository(
            InvoiceORM, not_found_message="Invoice not found."
        )

    def next_invoice_number(self, session: Session, tenant_id: str, today: Optional[date] = None) -> str:
        prefix = f"INV-{(today or date.today()).year}-"
        stmt = (
            self._repo.scoped(tenant_id, select(InvoiceORM.invoice_number))
            .where(InvoiceORM.invoice_number.like(f"{prefix}%"))
            # Longer suffixes are later numbers once a year passes 9999 invoices.
            .order_by(func.length(InvoiceORM.invoice_number).desc(), InvoiceORM.invoice_number.desc())
            .limit(1)
        )
        last = session.execute(stmt).scalar_one_or_none()
        suffix = last[len(prefix):] if last else ""
        sequence = int(suffix) + 1 if suffix.isdigit() else 1
        return f"{prefix}{sequence:04d}"

    def list_invoices(
        self,
        tenant_id: str,
        *,
        page: int,
        limit: int,
        search: Optional[str] = None,
        status: Optional[InvoiceStatus] = None,
        patient_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Page[InvoiceOut]:
        stmt = self._repo.scoped(tenant_id)
        if search:
            pattern = f"%{search}%"
            matching_patients = select(PatientORM.id).where(
                PatientORM.tenant_id == tenant_id, PatientORM.name.ilike(pattern)
            )
            stmt = stmt.where(
                or_(InvoiceORM.patient_id.in_(matching_patients), InvoiceORM.invoice_number.ilike(pattern))
            )
        if status is not None:
            stmt = stmt.where(InvoiceORM.status == status.value)
        if patient_id is not None:
            stmt = stmt.where(InvoiceORM.patient_id == patient_id)
        if start_date is not None:
            stmt = stmt.where(InvoiceORM.issue_date >= start_date)
        if end_date is not None:
            stmt = stmt.where(InvoiceORM.issue_date <= end_date)
        stmt = stmt.order_by(InvoiceORM.issue_date.desc(), InvoiceORM.id.desc())

        with database.session() as session:
            rows, total = self._repo.paginate(session, stmt, page=page, limit=limit)
            items = [InvoiceOut.model_validate(row) for row in rows]
        return Page[InvoiceOut].build(items, total=total, page=page, limit=limit)

    def get_invoice(self, tenant_id: str, invoice_id: int) -> InvoiceDetail:
        with database.session() as session:
            return InvoiceDetail.model_validate(self._repo.get(session, tenant_id, invoice_id))

    def get_clinic_details(self, tenant_id: str) -> ClinicDetails:
        with database.session() as session:
            clinic = session.get(ClinicORM, tenant_id)
            if clinic is None:
                raise ApiError.not_found("Clinic details not found.")
            currency = session.execute(
                select(ClinicSettingsORM.currency_symbol).where(ClinicSettingsORM.tenant_id == tenant_id)
            ).scalar_one_or_none()
            return ClinicDetails(
                name=clinic.name,
                address=clinic.address,
                phone=clinic.phone,
                currency_symbol=currency or settings.default_currency_symbol,
            )

    def create_invoice(self, tenant_id: str, payload: InvoiceCreate) -> InvoiceDetail:
        """Patient check, numbering, totals and every row in one transaction."""

        try:
            with database.session() as session:
                patient_repository.get(
                    session, tenant_id, payload.patient_id, message="Patient not found or does not belong to this clinic."
                )
                items, total = build_items(payload.items)
                invoice = self._repo.add(
                    session,
                    InvoiceORM(
                        tenant_id=tenant_id,
                        patient_id=payload.patient_id,
                        invoice_number=self.next_invoice_number(session, tenant_id),
                        issue_date=payload.issue_date,
                        due_date=payload.due_date,
                        total_amount=total,
                        status=payload.status.value,
                        notes=payload.notes,
                        items=items,
                    ),
                )
                session.refresh(invoice)
                return InvoiceDetail.model_validate(invoice)
        except IntegrityError as exc:
            logger.warning("Invoice number collision for tenant %s", tenant_id)
            raise ApiError.conflict("Invoice number is already taken. Please retry.") from exc

    def update_invoice(self, tenant_id: str, invoice_id: int, payload: InvoiceUpdate) -> InvoiceDetail:
        """Scalar fields are patched; ``items`` replaces every line and the total."""

        patch = payload.patch()
        new_items = patch.pop("items", None)
        if "status" in patch:
            patch["status"] = patch["status"].value

        with database.session() as session:
            invoice = self._repo.get(session, tenant_id, invoice_id)
            if patch:
                self._repo.apply_patch(invoice, patch, INVOICE_SCALAR_FIELDS)
            if new_items is not None:
                items, total = build_items(payload.items or [])
                invoice.items = items
                invoice.total_amount = total
            session.flush()
            session.refresh(invoice)
            return InvoiceDetail.model_validate(invoice)

    def delete_invoice(self, tenant_id: str, invoice_id: int) -> DeletedResource:
        with database.session() as session:
            self._repo.delete(session, tenant_id, invoice_id)
        return DeletedResource(id=invoice_id)

    def export_pdf(self, tenant_id: str, invoice_id: int) -> Tuple[str, bytes]:
        """Return ``(filename, pdf_bytes)`` for an invoice."""

        invoice = self.get_invoice(tenant_id, invoice_id)
        clinic = self.get_clinic_details(tenant_id)
        return f"Invoice-{invoice.invoice_number}.pdf", render_invoice_pdf(invoice, clinic)


billing_service = BillingService()
