from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.clinicadmin.api.v1.responses import ApiResponse
from src.clinicadmin.api.v1.routes_appointments import router as appointments_router_v1
from src.clinicadmin.api.v1.routes_auth import router as auth_router_v1
from src.clinicadmin.api.v1.routes_billing import router as billing_router_v1
from src.clinicadmin.api.v1.routes_dashboard import router as dashboard_router_v1
from src.clinicadmin.api.v1.routes_inventory import router as inventory_router_v1
from src.clinicadmin.api.v1.routes_patients import router as patients_router_v1
from src.clinicadmin.api.v1.routes_settings import router as settings_router_v1
from src.clinicadmin.api.v1.routes_system import HealthStatus
from src.clinicadmin.api.v1.routes_system import router as system_router_v1
from src.clinicadmin.api.v1.routes_users import router as users_router_v1
from src.clinicadmin.config import settings
from src.clinicadmin.errors import register_exception_handlers
from src.clinicadmin.infra.db.bootstrap import init_database


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Configure logging and make sure the schema exists before serving."""

    logging.basicConfig(level=settings.log_level)
    init_database()
    yield


app = FastAPI(title="ClinicAdmin API", lifespan=lifespan)

register_exception_handlers(app)

# Tighten via CORS_ALLOW_ORIGINS in production deployments.
allow_origins = [origin.strip() for origin in settings.cors_allow_origins.split(",") if origin.strip()] or ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get(
    "/health",
    tags=["system"],
    response_model=ApiResponse[HealthStatus],
    response_model_exclude_none=True,
)
async def health_check() -> ApiResponse[HealthStatus]:
    """Basic liveness check for the API root."""
    return ApiResponse.ok(HealthStatus(status="ok"), "Service is healthy.")


# Versioned API routers
app.include_router(system_router_v1, prefix="/api/v1")
app.include_router(auth_router_v1, prefix="/api/v1")
app.include_router(patients_router_v1, prefix="/api/v1")
app.include_router(appointments_router_v1, prefix="/api/v1")
app.include_router(billing_router_v1, prefix="/api/v1")
app.include_router(inventory_router_v1, prefix="/api/v1")
app.include_router(users_router_v1, prefix="/api/v1")
app.include_router(settings_router_v1, prefix="/api/v1")
app.include_router(dashboard_router_v1, prefix="/api/v1")
