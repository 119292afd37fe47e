"""Exception hierarchy for paging, batching and Graph calls."""

from __future__ import annotations

import requests


class ToolkitError(Exception):
    """Base class for errors raised by the toolkit."""


class PaginationCycleError(ToolkitError):
    """Raised when a continuation token repeats one already seen."""

    def __init__(self, token: str, page_number: int) -> None:
        self.token = token
        self.page_number = page_number
        super().__init__(f"continuation token repeated at page {page_number}: {token[:80]}")


class PageFetchError(ToolkitError):
    """Raised when a page could not be fetched within the retry policy."""

    def __init__(self, page_number: int, attempts: int, cause: BaseException) -> None:
        self.page_number = page_number
        self.attempts = attempts
        super().__init__(
            f"page {page_number} failed after {attempts} attempt(s): {cause or type(cause).__name__}"
        )


class DeadlineExceededError(ToolkitError):
    """Raised when the overall deadline expires or cancellation is requested."""


class GraphAPIError(ToolkitError):
    """Raised when Microsoft Graph returns a non-success response."""

    def __init__(
        self,
        status_code: int,
        message: str,
        code: str | None = None,
        retry_after: float | None = None,
    ) -> None:
        self.status_code = status_code
        self.code = code
        self.retry_after = retry_after
        super().__init__(f"Graph API error {status_code}: {message}")


_TRANSIENT_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})


def is_transient_error(exc: BaseException) -> bool:
    """Classify rate limiting, server-side unavailability and dropped connections as transient."""
    if isinstance(exc, GraphAPIError):
        return exc.status_code in _TRANSIENT_STATUS_CODES
    return isinstance(exc, (requests.ConnectionError, requests.Timeout))
