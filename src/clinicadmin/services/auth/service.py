from __future__ import annotations

import logging

from sqlalchemy import func, select

from src.clinicadmin.domain.models.auth import LoginResult, RegisterRequest
from src.clinicadmin.domain.models.user import CurrentUser, PublicUser, UserRole
from src.clinicadmin.errors import ApiError
from src.clinicadmin.infra.db.models import ClinicORM, UserORM
from src.clinicadmin.infra.db.session import database
from src.clinicadmin.services.auth.credentials import create_access_token, hash_password, verify_password
from src.clinicadmin.services.users.service import user_service


logger = logging.getLogger("clinicadmin.api")

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password."


class AuthService:
    def register(self, payload: RegisterRequest) -> PublicUser:
        """Create a clinic together with its first admin account.

        Both rows are written in one transaction; the new clinic id becomes
        the admin's tenant.
        """

        email = payload.email.lower()
        with database.session() as session:
            if user_service.email_in_use(session, email):
                raise ApiError.conflict("Email address is already in use.")

            clinic = ClinicORM(name=payload.clinic_name)
            session.add(clinic)
            session.flush()

            admin = UserORM(
                tenant_id=clinic.id,
                name=payload.user_name,
                email=email,
                password_hash=hash_password(payload.password),
                role=UserRole.ADMIN.value,
            )
            session.add(admin)
            session.flush()
            result = PublicUser.model_validate(admin)

        logger.info("Registered clinic %s", result.tenant_id)
        return result

    def login(self, email: str, password: str) -> LoginResult:
        with database.session() as session:
            user = session.scalars(
                select(UserORM).where(
                    func.lower(UserORM.email) == email.lower(),
                    UserORM.is_active.is_(True),
                )
            ).first()
            if user is None or not verify_password(password, user.password_hash):
                raise ApiError(401, INVALID_CREDENTIALS_MESSAGE)
            public = PublicUser.model_validate(user)

        token = create_access_token(
            user_id=public.id,
            email=public.email,
            role=public.role.value,
            tenant_id=public.tenant_id,
        )
        return LoginResult(token=token, user=public)

    def get_profile(self, current_user: CurrentUser) -> CurrentUser:
        profile = user_service.get_active_principal(current_user.id)
        if profile is None or profile.tenant_id != current_user.tenant_id:
            raise ApiError.not_found("User profile not found.")
        return profile


auth_service = AuthService()
