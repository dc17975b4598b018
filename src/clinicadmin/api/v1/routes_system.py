from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from src.clinicadmin.api.v1.responses import ApiResponse
from src.clinicadmin.domain.models.common import ApiModel
from src.clinicadmin.infra.db.session import database


logger = logging.getLogger("clinicadmin.api")

router = APIRouter(prefix="", tags=["system"])


class HealthStatus(ApiModel):
    status: str
    version: Optional[str] = None
    database: Optional[str] = None


@router.get("/health", response_model=ApiResponse[HealthStatus], response_model_exclude_none=True)
async def health_check_v1() -> ApiResponse[HealthStatus]:
    """API v1 health endpoint, including a database round trip."""

    try:
        with database.engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        db_status = "ok"
    except SQLAlchemyError:
        logger.exception("Health check could not reach the database")
        db_status = "unavailable"

    health = HealthStatus(
        status="ok" if db_status == "ok" else "degraded",
        version="v1",
        database=db_status,
    )
    return ApiResponse.ok(health, "Service is healthy." if db_status == "ok" else "Database is unavailable.")
