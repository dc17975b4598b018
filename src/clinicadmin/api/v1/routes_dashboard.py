from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from src.clinicadmin.api.v1.responses import ApiResponse
from src.clinicadmin.domain.models.dashboard import DashboardSummary
from src.clinicadmin.domain.models.user import CurrentUser
from src.clinicadmin.security import ALL_STAFF, check_tenant, get_current_user, require_roles
from src.clinicadmin.services.dashboard.service import dashboard_service


router = APIRouter(
    prefix="/dashboard",
    tags=["dashboard"],
    dependencies=[Depends(get_current_user), Depends(check_tenant)],
)


@router.get("", response_model=ApiResponse[DashboardSummary])
async def get_dashboard(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    tenant_id: str = Depends(check_tenant),
    current_user: CurrentUser = Depends(require_roles(*ALL_STAFF)),
) -> ApiResponse[DashboardSummary]:
    """KPIs and chart series for the home screen.

    Doctors get the same payload; only ``upcomingAppointments`` is narrowed
    to their own schedule.
    """

    summary = dashboard_service.get_summary(tenant_id, current_user, start_date=start_date, end_date=end_date)
    return ApiResponse.ok(summary, "Dashboard data fetched successfully.")
