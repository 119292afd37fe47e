"""Contract tests for PagedFetcher against fake paged sources.

Sleeps are recorded rather than performed, so backoff timing is asserted exactly.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from src.core.errors import DeadlineExceededError, GraphAPIError, PageFetchError, PaginationCycleError
from src.models.fetch_page import FetchPage
from src.models.retry_policy import RetryPolicy
from src.services.paged_fetcher import PagedFetcher, fetch_all
from src.utils.deadline import Deadline

if TYPE_CHECKING:
    from collections.abc import Callable

    from tests.conftest import FakeClock, RecordingSleep


class TestPaginationCompleteness:
    """Every item of every page, in page-then-within-page order."""

    @pytest.mark.parametrize("sizes", [[3], [2, 0, 4], [1, 1, 1, 1, 1], [0, 5]])
    def test_yields_sum_of_page_sizes_in_order(
        self, paged_source: Callable[..., Any], sizes: list[int]
    ) -> None:
        fetch_page, calls = paged_source(sizes)
        items = fetch_all(fetch_page, RetryPolicy())
        expected = [f"p{page}-{n}" for page, size in enumerate(sizes) for n in range(size)]
        assert items == expected
        assert len(calls) == len(sizes)

    def test_follows_continuation_tokens(self, paged_source: Callable[..., Any]) -> None:
        fetch_page, calls = paged_source([1, 1, 1])
        list(PagedFetcher(fetch_page))
        assert calls == [None, "token-1", "token-2"]

    def test_empty_first_page_is_empty_sequence(self) -> None:
        assert fetch_all(lambda _token: FetchPage(items=[])) == []

    def test_lazy_fetches_pages_on_demand(self, paged_source: Callable[..., Any]) -> None:
        fetch_page, calls = paged_source([2, 2])
        iterator = iter(PagedFetcher(fetch_page))
        assert calls == []
        assert next(iterator) == "p0-0"
        assert calls == [None]

    def test_reiterating_restarts_from_first_page(self, paged_source: Callable[..., Any]) -> None:
        fetch_page, calls = paged_source([1, 1])
        fetcher = PagedFetcher(fetch_page)
        assert list(fetcher) == list(fetcher)
        assert calls == [None, "token-1", None, "token-1"]


class FlakyPages:
    """Single-page source that raises ``errors`` in order before answering."""

    def __init__(self, errors: list[BaseException]) -> None:
        self.errors = list(errors)
        self.attempts = 0

    def __call__(self, continuation: str | None) -> FetchPage[str]:
        self.attempts += 1
        if self.errors:
            raise self.errors.pop(0)
        return FetchPage(items=["a", "b"])


class TestRetryAndBackoff:
    """Transient failures are retried with capped exponential backoff."""

    def test_succeeds_after_max_attempts_minus_one_failures(
        self, fast_policy: RetryPolicy, recording_sleep: RecordingSleep
    ) -> None:
        source = FlakyPages([GraphAPIError(503, "busy")] * (fast_policy.max_attempts - 1))
        items = list(PagedFetcher(source, fast_policy, sleep=recording_sleep))

        assert items == ["a", "b"]
        assert source.attempts == fast_policy.max_attempts
        delays = recording_sleep.delays
        assert delays == [1.0, 2.0, 3.0]
        assert delays == sorted(delays)
        assert max(delays) <= fast_policy.max_delay

    def test_always_failing_raises_after_max_attempts(
        self, fast_policy: RetryPolicy, recording_sleep: RecordingSleep
    ) -> None:
        source = FlakyPages([GraphAPIError(429, "throttled")] * 10)

        with pytest.raises(PageFetchError) as excinfo:
            list(PagedFetcher(source, fast_policy, sleep=recording_sleep))

        assert source.attempts == fast_policy.max_attempts
        assert excinfo.value.attempts == fast_policy.max_attempts
        assert excinfo.value.page_number == 1
        assert isinstance(excinfo.value.__cause__, GraphAPIError)
        assert len(recording_sleep.delays) == fast_policy.max_attempts - 1

    def test_non_retryable_short_circuits(self, fast_policy: RetryPolicy, recording_sleep: RecordingSleep) -> None:
        source = FlakyPages([GraphAPIError(403, "forbidden")])

        with pytest.raises(PageFetchError) as excinfo:
            list(PagedFetcher(source, fast_policy, sleep=recording_sleep))

        assert source.attempts == 1
        assert excinfo.value.attempts == 1
        assert recording_sleep.delays == []

    def test_single_attempt_policy(self, recording_sleep: RecordingSleep) -> None:
        source = FlakyPages([GraphAPIError(503, "busy")])
        with pytest.raises(PageFetchError):
            list(PagedFetcher(source, RetryPolicy(max_attempts=1), sleep=recording_sleep))
        assert source.attempts == 1

    def test_partial_results_kept_when_later_page_fails(self, recording_sleep: RecordingSleep) -> None:
        def fetch_page(continuation: str | None) -> FetchPage[str]:
            if continuation is None:
                return FetchPage(items=["first", "second"], continuation="next")
            raise GraphAPIError(500, "boom")

        policy = RetryPolicy(max_attempts=2, base_delay=0, max_delay=0)
        collected: list[str] = []
        with pytest.raises(PageFetchError) as excinfo:
            for item in PagedFetcher(fetch_page, policy, sleep=recording_sleep):
                collected.append(item)

        assert collected == ["first", "second"]
        assert excinfo.value.page_number == 2


class TestCycleDetection:
    """A repeated continuation token is a fatal protocol error."""

    def test_self_referencing_token(self, fast_policy: RetryPolicy, recording_sleep: RecordingSleep) -> None:
        calls: list[str | None] = []

        def fetch_page(continuation: str | None) -> FetchPage[str]:
            calls.append(continuation)
            return FetchPage(items=["x"], continuation="same")

        with pytest.raises(PaginationCycleError) as excinfo:
            list(PagedFetcher(fetch_page, fast_policy, sleep=recording_sleep))

        assert excinfo.value.token == "same"
        assert calls == [None, "same"]
        assert recording_sleep.delays == []

    def test_longer_cycle(self) -> None:
        chain = {None: "a", "a": "b", "b": "c", "c": "a"}

        def fetch_page(continuation: str | None) -> FetchPage[str]:
            return FetchPage(items=[continuation or "start"], continuation=chain[continuation])

        with pytest.raises(PaginationCycleError):
            list(PagedFetcher(fetch_page))

    def test_invalid_history_size(self) -> None:
        with pytest.raises(ValueError, match="history_size"):
            PagedFetcher(lambda _token: FetchPage(), history_size=0)


class TestDeadline:
    """Deadline expiry stops further pages and retries."""

    def test_stops_before_next_page(self, fake_clock: FakeClock) -> None:
        deadline = Deadline(5, clock=fake_clock)
        calls: list[str | None] = []

        def fetch_page(continuation: str | None) -> FetchPage[str]:
            calls.append(continuation)
            fake_clock.advance(6)
            return FetchPage(items=[f"item-{len(calls)}"], continuation=f"t{len(calls)}")

        collected: list[str] = []
        with pytest.raises(DeadlineExceededError):
            for item in PagedFetcher(fetch_page, deadline=deadline):
                collected.append(item)

        assert collected == ["item-1"]
        assert calls == [None]

    def test_stops_retrying_when_deadline_passes(
        self, fast_policy: RetryPolicy, recording_sleep: RecordingSleep, fake_clock: FakeClock
    ) -> None:
        deadline = Deadline(2.5, clock=fake_clock)

        def fetch_page(continuation: str | None) -> FetchPage[str]:
            fake_clock.advance(1)
            raise GraphAPIError(503, "busy")

        with pytest.raises(DeadlineExceededError):
            list(PagedFetcher(fetch_page, fast_policy, deadline=deadline, sleep=recording_sleep))

        assert len(recording_sleep.delays) < fast_policy.max_attempts - 1

    def test_cancelled_before_start(self) -> None:
        deadline = Deadline()
        deadline.cancel()
        calls: list[str | None] = []

        def fetch_page(continuation: str | None) -> FetchPage[str]:
            calls.append(continuation)
            return FetchPage(items=["x"])

        with pytest.raises(DeadlineExceededError):
            list(PagedFetcher(fetch_page, deadline=deadline))
        assert calls == []
