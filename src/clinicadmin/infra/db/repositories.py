from __future__ import annotations

from typing import Any, Generic, Mapping, Optional, Sequence, Tuple, Type, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from src.clinicadmin.errors import ApiError
from src.clinicadmin.infra.db.models import Base


ModelT = TypeVar("ModelT", bound=Base)


class TenantRepository(Generic[ModelT]):
    """Data access for one clinic-owned table.

    Every statement built here carries ``tenant_id = :tenant``; a row that
    belongs to another clinic is indistinguishable from a missing one.
    Sessions are owned by the caller so several repositories can take part in
    one transaction.
    """

    def __init__(self, model: Type[ModelT], *, not_found_message: str) -> None:
        self.model = model
        self.not_found_message = not_found_message

    def scoped(self, tenant_id: str, stmt: Optional[Select] = None) -> Select:
        if stmt is None:
            stmt = select(self.model)
        return stmt.where(self.model.tenant_id == tenant_id)  # type: ignore[attr-defined]

    def find(self, session: Session, tenant_id: str, entity_id: Any) -> Optional[ModelT]:
        stmt = self.scoped(tenant_id).where(self.model.id == entity_id)  # type: ignore[attr-defined]
        return session.scalars(stmt).unique().first()

    def get(self, session: Session, tenant_id: str, entity_id: Any, *, message: Optional[str] = None) -> ModelT:
        entity = self.find(session, tenant_id, entity_id)
        if entity is None:
            raise ApiError.not_found(message or self.not_found_message)
        return entity

    def exists(self, session: Session, tenant_id: str, *criteria: Any) -> bool:
        stmt = self.scoped(tenant_id, select(self.model.id)).where(*criteria).limit(1)  # type: ignore[attr-defined]
        return session.execute(stmt).first() is not None

    def add(self, session: Session, entity: ModelT) -> ModelT:
        session.add(entity)
        session.flush()
        return entity

    def apply_patch(
        self,
        entity: ModelT,
        patch: Mapping[str, Any],
        allowed: frozenset[str],
    ) -> ModelT:
        """Write only the allow-listed fields present in ``patch``.

        An empty patch is rejected; callers that tolerate one check first.
        """

        if not patch:
            raise ApiError.bad_request("No fields provided for update.")
        unknown = set(patch) - allowed
        if unknown:
            raise ApiError.bad_request(f"Fields cannot be updated: {', '.join(sorted(unknown))}.")
        for field, value in patch.items():
            setattr(entity, field, value)
        return entity

    def delete(self, session: Session, tenant_id: str, entity_id: Any) -> ModelT:
        entity = self.get(session, tenant_id, entity_id)
        session.delete(entity)
        session.flush()
        return entity

    def list(self, session: Session, stmt: Select) -> Sequence[ModelT]:
        return session.scalars(stmt).unique().all()

    def paginate(self, session: Session, stmt: Select, *, page: int, limit: int) -> Tuple[Sequence[ModelT], int]:
        """Return one page of ``stmt`` plus the total row count before paging."""

        count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
        total = session.execute(count_stmt).scalar_one()
        offset = (page - 1) * limit
        rows = session.scalars(stmt.limit(limit).offset(offset)).unique().all()
        return rows, total
