from __future__ import annotations

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel


T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Envelope shared by every JSON endpoint: ``{success, message, data}``."""

    success: bool = True
    message: str
    data: Optional[T] = None

    @classmethod
    def ok(cls, data: Optional[T] = None, message: str = "OK") -> "ApiResponse[T]":
        return cls(success=True, message=message, data=data)
