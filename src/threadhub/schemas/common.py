"""Shared Pydantic schemas for common API elements."""
from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """One page of an offset-paginated listing."""

    items: list[T] = Field(default_factory=list)
    total: int = Field(..., ge=0, description="Rows matched by the listing filter")
    current_page: int = Field(..., ge=1)
    total_pages: int = Field(..., ge=0, description="ceil(total / limit)")


class ErrorResponse(BaseModel):
    """Body of every error response."""

    status: int
    error: str = Field(..., description="Stable error kind, e.g. NotFound")
    message: str
    details: Any | None = None



def error_responses(*status_codes: int) -> dict[int | str, dict[str, Any]]:
    """Return an OpenAPI ``responses`` mapping documenting ``ErrorResponse`` bodies."""
    return {code: {"model": ErrorResponse} for code in status_codes}
