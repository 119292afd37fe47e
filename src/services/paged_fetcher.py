"""Lazy retrieval of a complete result set from a paginated, rate-limited API."""

from __future__ import annotations

import time
from collections import deque
from typing import TYPE_CHECKING, Any, Generic, TypeVar

import structlog

from src.core.errors import DeadlineExceededError, PageFetchError, PaginationCycleError
from src.models.retry_policy import RetryPolicy
from src.utils.retry import build_retrying

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from src.models.fetch_page import FetchPage
    from src.services.protocols import PageFetchProtocol
    from src.utils.deadline import Deadline

T = TypeVar("T")

logger = structlog.get_logger(__name__)


class PagedFetcher(Generic[T]):
    """Follow continuation tokens until the last page, retrying transient failures.

    ``fetch_page`` is called with ``None`` for the first page and with the previous
    page's continuation token afterwards. Iterating the fetcher yields items lazily;
    each new iteration starts the fetch over from the first page.

    Items yielded before a failure stay yielded: a ``PageFetchError``,
    ``PaginationCycleError`` or ``DeadlineExceededError`` ends the sequence early.
    """

    def __init__(
        self,
        fetch_page: PageFetchProtocol | Callable[[str | None], FetchPage[T]],
        policy: RetryPolicy | None = None,
        *,
        deadline: Deadline | None = None,
        sleep: Callable[[float], Any] = time.sleep,
        history_size: int = 1000,
    ) -> None:
        if history_size < 1:
            msg = "history_size must be at least 1"
            raise ValueError(msg)
        self.fetch_page = fetch_page
        self.policy = policy or RetryPolicy()
        self.deadline = deadline
        self.sleep = sleep
        self.history_size = history_size

    def __iter__(self) -> Iterator[T]:
        seen: deque[str] = deque(maxlen=self.history_size)
        continuation: str | None = None
        page_number = 0
        total = 0

        while True:
            page_number += 1
            if self.deadline is not None:
                self.deadline.check()

            page = self._fetch_with_retry(continuation, page_number)
            logger.debug(
                "page_fetched",
                page=page_number,
                items=len(page.items),
                has_more=page.continuation is not None,
            )
            total += len(page.items)
            yield from page.items

            if page.continuation is None:
                logger.info("pagination_complete", pages=page_number, items=total)
                return
            if page.continuation in seen:
                raise PaginationCycleError(page.continuation, page_number)
            seen.append(page.continuation)
            continuation = page.continuation

    def _fetch_with_retry(self, continuation: str | None, page_number: int) -> FetchPage[T]:
        retrying = build_retrying(
            self.policy,
            operation="fetch_page",
            deadline=self.deadline,
            sleep=self.sleep,
        )
        attempts = 0
        try:
            for attempt in retrying:
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    if self.deadline is not None:
                        self.deadline.check()
                    page = self.fetch_page(continuation)
                if not attempt.retry_state.outcome.failed:  # type: ignore[union-attr]
                    return page
        except DeadlineExceededError:
            raise
        except Exception as exc:
            logger.error(
                "page_fetch_failed",
                page=page_number,
                attempts=attempts,
                error=str(exc),
            )
            raise PageFetchError(page_number, attempts, exc) from exc
        raise AssertionError("unreachable: tenacity re-raises on the final attempt")  # pragma: no cover


def fetch_all(
    fetch_page: Callable[[str | None], FetchPage[T]],
    policy: RetryPolicy | None = None,
    **kwargs: Any,
) -> list[T]:
    """Materialize every item of a paged listing."""
    return list(PagedFetcher(fetch_page, policy, **kwargs))
