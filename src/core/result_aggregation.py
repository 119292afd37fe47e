"""Batch result aggregation functions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from src.models.batch_result import BatchStatus, BatchSummary

if TYPE_CHECKING:
    from collections.abc import Iterable

    from src.models.batch_result import BatchResult


def summarize(results: Iterable[BatchResult], duration_seconds: float = 0.0) -> BatchSummary:
    """Count results by status.

    Failure details are kept as ``"<input>: <detail>"`` so reports can name the item.
    """
    successful = failed = skipped = 0
    errors: list[str] = []

    for result in results:
        if result.status is BatchStatus.SUCCESS:
            successful += 1
        elif result.status is BatchStatus.SKIPPED:
            skipped += 1
        else:
            failed += 1
            errors.append(f"{result.input}: {result.detail}")

    return BatchSummary(
        processed=successful + failed + skipped,
        successful=successful,
        failed=failed,
        skipped=skipped,
        duration_seconds=duration_seconds,
        errors=errors,
    )


def format_batch_summary(summary: BatchSummary) -> str:
    """Format batch statistics as a human-readable summary string."""
    lines = [
        f"[SUMMARY] Processed: {summary.processed}",
        f"  Successful: {summary.successful}",
        f"  Failed: {summary.failed}",
        f"  Skipped: {summary.skipped}",
    ]

    errors = summary.errors
    if errors:
        lines.append(f"  Errors ({len(errors)}):")
        for error in errors[:10]:
            lines.append(f"    - {error}")
        if len(errors) > 10:
            lines.append(f"    ... and {len(errors) - 10} more")

    return "\n".join(lines)
