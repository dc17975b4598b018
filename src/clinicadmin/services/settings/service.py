from __future__ import annotations

import logging
from typing import Callable, Optional, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.clinicadmin.config import settings
from src.clinicadmin.domain.models.settings import (
    ClinicSettingsOut,
    ClinicSettingsUpdate,
    OpeningHours,
)
from src.clinicadmin.errors import ApiError
from src.clinicadmin.infra.db.models import ClinicORM, ClinicSettingsORM
from src.clinicadmin.infra.db.session import database


logger = logging.getLogger("clinicadmin.api")

FALLBACK_CLINIC_NAME = "My Clinic"

T = TypeVar("T")


class SettingsService:
    """One settings row per clinic, created with defaults on first access."""

    def _find(self, session: Session, tenant_id: str) -> Optional[ClinicSettingsORM]:
        return session.scalars(select(ClinicSettingsORM).where(ClinicSettingsORM.tenant_id == tenant_id)).first()

    def _get_or_create(self, session: Session, tenant_id: str) -> ClinicSettingsORM:
        row = self._find(session, tenant_id)
        if row is not None:
            return row

        clinic = session.get(ClinicORM, tenant_id)
        row = ClinicSettingsORM(
            tenant_id=tenant_id,
            clinic_name=clinic.name if clinic is not None else FALLBACK_CLINIC_NAME,
            currency_symbol=settings.default_currency_symbol,
            opening_hours=OpeningHours.default().model_dump(by_alias=True),
            holidays=[],
        )
        session.add(row)
        session.flush()
        return row

    def _with_row(self, tenant_id: str, work: Callable[[Session, ClinicSettingsORM], T]) -> T:
        try:
            with database.session() as session:
                return work(session, self._get_or_create(session, tenant_id))
        except IntegrityError:
            # A concurrent first access inserted the defaults; the retry finds that row.
            logger.info("Settings row for tenant %s was created concurrently; retrying", tenant_id)
            with database.session() as session:
                return work(session, self._get_or_create(session, tenant_id))

    def get_settings(self, tenant_id: str) -> ClinicSettingsOut:
        return self._with_row(tenant_id, lambda session, row: ClinicSettingsOut.model_validate(row))

    def update_settings(self, tenant_id: str, payload: ClinicSettingsUpdate) -> ClinicSettingsOut:
        patch = payload.patch()
        if not patch:
            raise ApiError.bad_request("At least one field must be provided to update settings.")

        def apply(session: Session, row: ClinicSettingsORM) -> ClinicSettingsOut:
            if "clinic_name" in patch:
                row.clinic_name = payload.clinic_name
                # The clinic row carries the same name (login/PDF header).
                clinic = session.get(ClinicORM, tenant_id)
                if clinic is not None:
                    clinic.name = payload.clinic_name
            if "currency_symbol" in patch:
                row.currency_symbol = payload.currency_symbol
            if "opening_hours" in patch:
                row.opening_hours = (
                    payload.opening_hours.model_dump(by_alias=True) if payload.opening_hours is not None else None
                )
            if "holidays" in patch:
                row.holidays = [day.isoformat() for day in payload.holidays] if payload.holidays is not None else []

            session.flush()
            return ClinicSettingsOut.model_validate(row)

        return self._with_row(tenant_id, apply)


settings_service = SettingsService()
