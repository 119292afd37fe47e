"""Service protocols defining interfaces for dependency injection."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from src.models.fetch_page import FetchPage


class PageFetchProtocol(Protocol):
    """Fetch one page of a listing; ``None`` requests the first page."""

    def __call__(self, continuation: str | None) -> FetchPage[Any]: ...


class DirectoryClientProtocol(Protocol):
    """Directory operations the batch actions need from a Graph client."""

    def get_user(self, user: str, select: str = ...) -> dict[str, Any]: ...

    def add_group_member(self, group_id: str, directory_object_id: str) -> None: ...

    def set_account_enabled(self, user: str, enabled: bool) -> None: ...
