"""One page of results from a paginated listing call."""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, field_validator

T = TypeVar("T")


class FetchPage(BaseModel, Generic[T]):
    """Items of one page plus the token for the next, if any."""

    items: list[T] = []
    continuation: str | None = None

    @field_validator("continuation")
    @classmethod
    def normalize_continuation(cls, value: str | None) -> str | None:
        """An empty token means there is no next page."""
        return value or None
