"""Response envelope shared by every /api/v1 endpoint."""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel

DataT = TypeVar("DataT")


class Envelope(BaseModel, Generic[DataT]):
    success: bool = True
    message: str = ""
    data: DataT | None = None


def ok(data: DataT, message: str = "") -> Envelope[DataT]:
    return Envelope(success=True, message=message, data=data)


def error_body(message: str, **extra: object) -> dict[str, object]:
    """JSON body for a failed request."""
    return {"success": False, "message": message, "data": None, **extra}
