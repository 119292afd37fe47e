"""Progress tracking utilities for batch operations."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field

from src.models.batch_result import BatchStatus
from src.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class ProgressTracker:
    """Track progress of batch operations."""

    total: int
    processed: int = 0
    successful: int = 0
    failed: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)
    start_time: float = field(default_factory=time.monotonic)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record_success(self) -> None:
        """Record a successful operation."""
        with self._lock:
            self.processed += 1
            self.successful += 1

    def record_failure(self, error: str) -> None:
        """Record a failed operation."""
        with self._lock:
            self.processed += 1
            self.failed += 1
            self.errors.append(error)

    def record_skip(self) -> None:
        """Record a skipped operation."""
        with self._lock:
            self.processed += 1
            self.skipped += 1

    def record(self, status: BatchStatus, detail: str = "") -> None:
        """Record one item by its terminal status."""
        if status is BatchStatus.SUCCESS:
            self.record_success()
        elif status is BatchStatus.SKIPPED:
            self.record_skip()
        else:
            self.record_failure(detail)

    @property
    def elapsed_seconds(self) -> float:
        """Time elapsed since start."""
        return time.monotonic() - self.start_time

    @property
    def progress_percentage(self) -> float:
        """Percentage of total items processed."""
        if self.total == 0:
            return 100.0
        return (self.processed / self.total) * 100.0

    def log_progress(self, every_n: int = 10) -> None:
        """Log progress every N items."""
        if self.processed % every_n == 0 or self.processed == self.total:
            logger.info(
                "batch_progress",
                processed=self.processed,
                total=self.total,
                successful=self.successful,
                failed=self.failed,
                skipped=self.skipped,
                percentage=f"{self.progress_percentage:.1f}%",
                elapsed=f"{self.elapsed_seconds:.1f}s",
            )

    def summary(self) -> dict[str, int | float | list[str]]:
        """Return summary statistics."""
        return {
            "processed": self.processed,
            "successful": self.successful,
            "failed": self.failed,
            "skipped": self.skipped,
            "duration_seconds": round(self.elapsed_seconds, 2),
            "errors": self.errors,
        }
