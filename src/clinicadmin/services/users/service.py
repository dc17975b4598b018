from __future__ import annotations

from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.clinicadmin.domain.models.common import DeletedResource, Page
from src.clinicadmin.domain.models.user import (
    CurrentUser,
    UserCreate,
    UserOut,
    UserRole,
    UserStatus,
    UserUpdate,
)
from src.clinicadmin.errors import ApiError
from src.clinicadmin.infra.db.models import UserORM
from src.clinicadmin.infra.db.repositories import TenantRepository
from src.clinicadmin.infra.db.session import database
from src.clinicadmin.services.auth.credentials import hash_password


USER_MUTABLE_FIELDS = frozenset({"name", "role", "specialty", "phone", "is_active"})

DUPLICATE_USER_MESSAGE = "A user with this email already exists."


class UserService:
    """Staff accounts of a clinic (admin-managed)."""

    def __init__(self) -> None:
        self._repo: TenantRepository[UserORM] = TenantRepository(UserORM, not_found_message="User not found.")

    # -- lookups shared with other services -------------------------------

    def get_active_principal(self, user_id: int) -> Optional[CurrentUser]:
        """Load an active user by id across all clinics (token subject lookup)."""

        with database.session() as session:
            user = session.scalars(
                select(UserORM).where(UserORM.id == user_id, UserORM.is_active.is_(True))
            ).first()
            return CurrentUser.model_validate(user) if user is not None else None

    @staticmethod
    def email_in_use(session: Session, email: str) -> bool:
        """Login is keyed by email alone, so addresses are unique across clinics."""

        stmt = select(UserORM.id).where(func.lower(UserORM.email) == email.lower()).limit(1)
        return session.execute(stmt).first() is not None

    def get_doctor(self, session: Session, tenant_id: str, doctor_id: int) -> UserORM:
        doctor = session.scalars(
            self._repo.scoped(tenant_id).where(UserORM.id == doctor_id, UserORM.role == UserRole.DOCTOR.value)
        ).first()
        if doctor is None:
            raise ApiError.not_found("Doctor not found.")
        return doctor

    # -- CRUD ---------------------------------------------------------------

    def list_users(
        self,
        tenant_id: str,
        *,
        page: int,
        limit: int,
        search: Optional[str] = None,
        role: Optional[UserRole] = None,
        status: Optional[UserStatus] = None,
    ) -> Page[UserOut]:
        stmt = self._repo.scoped(tenant_id)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(
                or_(UserORM.name.ilike(pattern), UserORM.email.ilike(pattern), UserORM.specialty.ilike(pattern))
            )
        if role is not None:
            stmt = stmt.where(UserORM.role == role.value)
        if status is not None:
            stmt = stmt.where(UserORM.is_active.is_(status == UserStatus.ACTIVE))
        stmt = stmt.order_by(UserORM.name.asc(), UserORM.id.asc())

        with database.session() as session:
            rows, total = self._repo.paginate(session, stmt, page=page, limit=limit)
            items = [UserOut.model_validate(row) for row in rows]

        return Page[UserOut].build(items, total=total, page=page, limit=limit)

    def get_user(self, tenant_id: str, user_id: int) -> UserOut:
        with database.session() as session:
            return UserOut.model_validate(self._repo.get(session, tenant_id, user_id))

    def create_user(self, tenant_id: str, payload: UserCreate) -> UserOut:
        email = payload.email.lower()
        try:
            with database.session() as session:
                if self.email_in_use(session, email):
                    raise ApiError.conflict(DUPLICATE_USER_MESSAGE)
                user = self._repo.add(
                    session,
                    UserORM(
                        tenant_id=tenant_id,
                        name=payload.name,
                        email=email,
                        password_hash=hash_password(payload.password),
                        role=payload.role.value,
                        specialty=payload.specialty if payload.role == UserRole.DOCTOR else None,
                        phone=payload.phone,
                        is_active=payload.is_active,
                    ),
                )
                return UserOut.model_validate(user)
        except IntegrityError as exc:
            raise ApiError.conflict(DUPLICATE_USER_MESSAGE) from exc

    def update_user(self, tenant_id: str, user_id: int, payload: UserUpdate) -> UserOut:
        patch = payload.patch()
        if "role" in patch and patch["role"] is not None:
            patch["role"] = patch["role"].value

        with database.session() as session:
            user = self._repo.get(session, tenant_id, user_id)
            if not patch:
                raise ApiError.bad_request("No fields provided for update.")

            new_role = patch.get("role")
            if new_role is not None and new_role != UserRole.DOCTOR.value:
                patch["specialty"] = None
            elif patch.get("specialty") and new_role is None and user.role != UserRole.DOCTOR.value:
                raise ApiError.bad_request("Cannot add specialty to a non-doctor user.")

            self._repo.apply_patch(user, patch, USER_MUTABLE_FIELDS)
            session.flush()
            return UserOut.model_validate(user)

    def change_password(self, tenant_id: str, user_id: int, new_password: str) -> None:
        with database.session() as session:
            user = self._repo.get(session, tenant_id, user_id)
            user.password_hash = hash_password(new_password)

    def delete_user(self, tenant_id: str, user_id: int) -> DeletedResource:
        with database.session() as session:
            self._repo.delete(session, tenant_id, user_id)
        return DeletedResource(id=user_id)


user_service = UserService()
