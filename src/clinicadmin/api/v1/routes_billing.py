from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from src.clinicadmin.api.v1.responses import ApiResponse
from src.clinicadmin.config import settings
from src.clinicadmin.domain.models.common import DeletedResource, Page
from src.clinicadmin.domain.models.invoice import (
    InvoiceCreate,
    InvoiceDetail,
    InvoiceOut,
    InvoiceStatus,
    InvoiceUpdate,
)
from src.clinicadmin.domain.models.user import CurrentUser
from src.clinicadmin.security import ADMIN_ONLY, FRONT_DESK, check_tenant, get_current_user, require_roles
from src.clinicadmin.services.audit.service import audit_service
from src.clinicadmin.services.billing.service import billing_service


router = APIRouter(
    prefix="/billing",
    tags=["billing"],
    dependencies=[Depends(get_current_user), Depends(check_tenant)],
)


@router.get("", response_model=ApiResponse[Page[InvoiceOut]])
async def list_invoices(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    search: Optional[str] = None,
    status_filter: Optional[InvoiceStatus] = Query(None, alias="status"),
    patient_id: Optional[int] = Query(None, alias="patientId", ge=1),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    tenant_id: str = Depends(check_tenant),
    current_user: CurrentUser = Depends(require_roles(*FRONT_DESK)),
) -> ApiResponse[Page[InvoiceOut]]:
    result = billing_service.list_invoices(
        tenant_id,
        page=page,
        limit=limit,
        search=search,
        status=status_filter,
        patient_id=patient_id,
        start_date=start_date,
        end_date=end_date,
    )
    return ApiResponse.ok(result, "Invoices fetched successfully.")


@router.post("", response_model=ApiResponse[InvoiceDetail], status_code=status.HTTP_201_CREATED)
async def create_invoice(
    payload: InvoiceCreate,
    tenant_id: str = Depends(check_tenant),
    current_user: CurrentUser = Depends(require_roles(*FRONT_DESK)),
) -> ApiResponse[InvoiceDetail]:
    invoice = billing_service.create_invoice(tenant_id, payload)

    audit_service.log_event(
        action="create_invoice",
        resource_type="invoice",
        resource_id=invoice.id,
        extra={"role": current_user.role.value, "items": len(invoice.items), "status": invoice.status.value},
    )

    return ApiResponse.ok(invoice, "Invoice created successfully.")


@router.get("/{invoice_id}", response_model=ApiResponse[InvoiceDetail])
async def get_invoice(
    invoice_id: int,
    tenant_id: str = Depends(check_tenant),
    current_user: CurrentUser = Depends(require_roles(*FRONT_DESK)),
) -> ApiResponse[InvoiceDetail]:
    return ApiResponse.ok(billing_service.get_invoice(tenant_id, invoice_id), "Invoice fetched successfully.")


@router.get(
    "/{invoice_id}/pdf",
    response_class=Response,
    responses={200: {"content": {"application/pdf": {}}}},
)
async def get_invoice_pdf(
    invoice_id: int,
    tenant_id: str = Depends(check_tenant),
    current_user: CurrentUser = Depends(require_roles(*FRONT_DESK)),
) -> Response:
    filename, content = billing_service.export_pdf(tenant_id, invoice_id)

    audit_service.log_event(
        action="export_invoice_pdf",
        resource_type="invoice",
        resource_id=invoice_id,
        extra={"role": current_user.role.value, "bytes": len(content)},
    )

    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.put("/{invoice_id}", response_model=ApiResponse[InvoiceDetail])
async def update_invoice(
    invoice_id: int,
    payload: InvoiceUpdate,
    tenant_id: str = Depends(check_tenant),
    current_user: CurrentUser = Depends(require_roles(*FRONT_DESK)),
) -> ApiResponse[InvoiceDetail]:
    invoice = billing_service.update_invoice(tenant_id, invoice_id, payload)

    audit_service.log_event(
        action="update_invoice",
        resource_type="invoice",
        resource_id=invoice_id,
        extra={
            "role": current_user.role.value,
            "fields": sorted(payload.model_fields_set),
            "status": invoice.status.value,
        },
    )

    return ApiResponse.ok(invoice, "Invoice updated successfully.")


@router.delete("/{invoice_id}", response_model=ApiResponse[DeletedResource])
async def delete_invoice(
    invoice_id: int,
    tenant_id: str = Depends(check_tenant),
    current_user: CurrentUser = Depends(require_roles(*ADMIN_ONLY)),
) -> ApiResponse[DeletedResource]:
    deleted = billing_service.delete_invoice(tenant_id, invoice_id)

    audit_service.log_event(
        action="delete_invoice",
        resource_type="invoice",
        resource_id=invoice_id,
        extra={"role": current_user.role.value},
    )

    return ApiResponse.ok(deleted, "Invoice deleted successfully.")
