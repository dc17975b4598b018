from __future__ import annotations

import math
import re
from datetime import date, datetime, timezone
from typing import Any, ClassVar, Generic, List, TypeVar

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


T = TypeVar("T")

_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class ApiModel(BaseModel):
    """Base for request/response bodies.

    JSON uses camelCase keys; snake_case field names are accepted on input
    too. ``from_attributes`` lets ORM rows validate straight into these.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Pagination(ApiModel):
    total_items: int
    total_pages: int
    current_page: int
    page_size: int


class Page(ApiModel, Generic[T]):
    items: List[T]
    pagination: Pagination

    @classmethod
    def build(cls, items: List[T], *, total: int, page: int, limit: int) -> "Page[T]":
        return cls(
            items=items,
            pagination=Pagination(
                total_items=total,
                total_pages=math.ceil(total / limit) if limit else 0,
                current_page=page,
                page_size=limit,
            ),
        )


class DeletedResource(ApiModel):
    id: Any


class PatchModel(ApiModel):
    """Partial-update body.

    Fields named in ``non_nullable`` may be omitted but not sent as null.
    """

    non_nullable: ClassVar[frozenset[str]] = frozenset()

    @model_validator(mode="after")
    def _reject_nulls(self) -> "PatchModel":
        for name in sorted(self.non_nullable & self.model_fields_set):
            if getattr(self, name) is None:
                raise ValueError(f"{to_camel(name)} cannot be null")
        return self

    def patch(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


def to_naive_utc(value: datetime) -> datetime:
    """Stored date-times are naive UTC; aware inputs are converted first."""

    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_calendar_bound(value: str) -> datetime:
    """Parse a ``YYYY-MM-DD`` (midnight) or ISO 8601 date-time query bound."""

    value = value.strip()
    if _DATE_ONLY.match(value):
        return datetime.combine(date.fromisoformat(value), datetime.min.time())
    # fromisoformat accepts a trailing "Z" from Python 3.11 on.
    return to_naive_utc(datetime.fromisoformat(value))
