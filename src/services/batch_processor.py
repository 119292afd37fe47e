"""Failure-isolating batch processor with an ordered per-item result log."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog

from src.core.outcomes import Fail, Skip, Success
from src.models.batch_result import BatchItem, BatchResult, BatchStatus, make_batch_items
from src.utils.progress import ProgressTracker

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from src.utils.deadline import Deadline

logger = structlog.get_logger(__name__)

NOT_ATTEMPTED_DETAIL = "deadline exceeded; not attempted"


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _error_message(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class BatchProcessor:
    """Apply an action to every item, recording exactly one result per item.

    Action exceptions become ``failed`` results and never escape ``run``.
    Retrying is the action's concern; wrap it with ``src.utils.retry.with_retry``.

    With ``max_workers > 1`` items run on a thread pool, but results and progress
    callbacks are still delivered in input order.
    """

    def __init__(
        self,
        *,
        max_workers: int = 1,
        deadline: Deadline | None = None,
        clock: Callable[[], datetime] | None = None,
        progress_every: int = 10,
    ) -> None:
        if max_workers < 1:
            msg = "max_workers must be at least 1"
            raise ValueError(msg)
        if progress_every < 1:
            msg = "progress_every must be at least 1"
            raise ValueError(msg)
        self.max_workers = max_workers
        self.deadline = deadline
        self.clock = clock or _utc_now
        self.progress_every = progress_every

    def run(
        self,
        items: Iterable[BatchItem[Any]],
        action: Callable[[Any], Any],
        on_progress: Callable[[int, BatchResult], None] | None = None,
    ) -> list[BatchResult]:
        """Process ``items`` with ``action`` and return their results in input order."""
        batch = list(items)
        tracker = ProgressTracker(total=len(batch))

        if self.max_workers == 1 or len(batch) <= 1:
            results = self._run_sequential(batch, action, tracker, on_progress)
        else:
            results = self._run_parallel(batch, action, tracker, on_progress)

        logger.info("batch_complete", **{k: v for k, v in tracker.summary().items() if k != "errors"})
        return results

    # ------------------------------------------------------------------ #

    def _run_sequential(
        self,
        batch: list[BatchItem[Any]],
        action: Callable[[Any], Any],
        tracker: ProgressTracker,
        on_progress: Callable[[int, BatchResult], None] | None,
    ) -> list[BatchResult]:
        results: list[BatchResult] = []
        for item in batch:
            if self._deadline_passed():
                result = self._record(item, BatchStatus.SKIPPED, NOT_ATTEMPTED_DETAIL)
            else:
                result = self._process_one(item, action)
            results.append(result)
            self._report(len(results), result, tracker, on_progress)
        return results

    def _run_parallel(
        self,
        batch: list[BatchItem[Any]],
        action: Callable[[Any], Any],
        tracker: ProgressTracker,
        on_progress: Callable[[int, BatchResult], None] | None,
    ) -> list[BatchResult]:
        def guarded(item: BatchItem[Any]) -> BatchResult:
            if self._deadline_passed():
                return self._record(item, BatchStatus.SKIPPED, NOT_ATTEMPTED_DETAIL)
            return self._process_one(item, action)

        results: list[BatchResult] = []
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [executor.submit(guarded, item) for item in batch]
            # Collect in submission order so the log matches the input order.
            for item, future in zip(batch, futures, strict=True):
                try:
                    result = future.result()
                except Exception as exc:
                    result = self._record(item, BatchStatus.FAILED, _error_message(exc))
                results.append(result)
                self._report(len(results), result, tracker, on_progress)
        return results

    def _process_one(self, item: BatchItem[Any], action: Callable[[Any], Any]) -> BatchResult:
        try:
            outcome = action(item.input)
        except Exception as exc:
            logger.error(
                "batch_item_failed",
                index=item.index,
                item=str(item.input)[:100],
                error=_error_message(exc),
            )
            return self._record(item, BatchStatus.FAILED, _error_message(exc))

        if outcome is None:
            return self._record(item, BatchStatus.SUCCESS, "")
        if isinstance(outcome, Success):
            return self._record(item, BatchStatus.SUCCESS, outcome.detail)
        if isinstance(outcome, Skip):
            return self._record(item, BatchStatus.SKIPPED, outcome.reason)
        if isinstance(outcome, Fail):
            logger.error(
                "batch_item_failed",
                index=item.index,
                item=str(item.input)[:100],
                error=outcome.message,
            )
            return self._record(item, BatchStatus.FAILED, outcome.message)
        return self._record(
            item,
            BatchStatus.FAILED,
            f"unexpected action outcome: {type(outcome).__name__}",
        )

    def _record(self, item: BatchItem[Any], status: BatchStatus, detail: str) -> BatchResult:
        return BatchResult(
            input=item.input,
            index=item.index,
            status=status,
            detail=detail,
            timestamp=self.clock(),
        )

    def _deadline_passed(self) -> bool:
        return self.deadline is not None and self.deadline.expired()

    def _report(
        self,
        count: int,
        result: BatchResult,
        tracker: ProgressTracker,
        on_progress: Callable[[int, BatchResult], None] | None,
    ) -> None:
        tracker.record(result.status, result.detail)
        tracker.log_progress(every_n=self.progress_every)
        if on_progress is None:
            return
        try:
            on_progress(count, result)
        except Exception as exc:
            logger.warning("progress_callback_failed", count=count, error=str(exc))


def process_batch(
    inputs: Iterable[Any],
    action: Callable[[Any], Any],
    **kwargs: Any,
) -> list[BatchResult]:
    """Index raw inputs and run them through a BatchProcessor."""
    return BatchProcessor(**kwargs).run(make_batch_items(inputs), action)
