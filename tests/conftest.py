"""Shared test fixtures for the tenant batch toolkit."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import pytest

from src.models.fetch_page import FetchPage
from src.models.retry_policy import RetryPolicy

if TYPE_CHECKING:
    from collections.abc import Callable


FIXED_NOW = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)


class RecordingSleep:
    """Stand-in for time.sleep that records requested delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(float(seconds))


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fixed_now() -> Callable[[], datetime]:
    """Wall clock for BatchResult timestamps."""
    return lambda: FIXED_NOW


@pytest.fixture
def fast_policy() -> RetryPolicy:
    """Retry policy with small, distinct delays (1, 2, 3 capped)."""
    return RetryPolicy(max_attempts=4, base_delay=1.0, max_delay=3.0)


def make_paged_source(page_sizes: list[int]) -> tuple[Callable[[str | None], FetchPage[str]], list[str | None]]:
    """Build a fake listing with the given page sizes.

    Returns the page-fetch function and the list of continuation tokens it was called with.
    Items are named ``p<page>-<n>`` so ordering is easy to assert.
    """
    calls: list[str | None] = []

    def fetch_page(continuation: str | None) -> FetchPage[str]:
        calls.append(continuation)
        page = 0 if continuation is None else int(continuation.removeprefix("token-"))
        items = [f"p{page}-{n}" for n in range(page_sizes[page])] if page_sizes else []
        next_token = f"token-{page + 1}" if page + 1 < len(page_sizes) else None
        return FetchPage(items=items, continuation=next_token)

    return fetch_page, calls


@pytest.fixture
def sample_users() -> list[dict[str, Any]]:
    """Graph user records as returned by /users."""
    return [
        {
            "id": "11111111-1111-1111-1111-111111111111",
            "displayName": "Ada Lovelace",
            "userPrincipalName": "ada@contoso.com",
            "accountEnabled": True,
        },
        {
            "id": "22222222-2222-2222-2222-222222222222",
            "displayName": "Alan Turing",
            "userPrincipalName": "alan@contoso.com",
            "accountEnabled": False,
        },
    ]


@pytest.fixture
def paged_source() -> Callable[[list[int]], tuple[Callable[[str | None], FetchPage[str]], list[str | None]]]:
    """Factory fixture for fake paged listings, see make_paged_source."""
    return make_paged_source
