"""Batch item, per-item result and aggregate summary models."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class BatchStatus(StrEnum):
    """Terminal state of one batch item."""

    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


class BatchOutcome(StrEnum):
    """Overall shape of a batch run, for reporting."""

    EMPTY = "empty"
    NO_FAILURES = "no_failures"
    ALL_FAILED = "all_failed"
    MIXED = "mixed"


class BatchItem(BaseModel, Generic[T]):
    """One unit of work and its position in the submitted sequence."""

    model_config = ConfigDict(frozen=True)

    input: T
    index: int = Field(ge=0)


class BatchResult(BaseModel):
    """Outcome recorded for one batch item."""

    model_config = ConfigDict(frozen=True)

    input: Any
    index: int
    status: BatchStatus
    detail: str = ""
    timestamp: datetime


class BatchSummary(BaseModel):
    """Statistics from a batch processing operation."""

    processed: int
    successful: int
    failed: int
    skipped: int
    duration_seconds: float = 0.0
    errors: list[str] = []

    @property
    def outcome(self) -> BatchOutcome:
        """Distinguish nothing attempted from everything failed from mixed results."""
        if self.processed == 0:
            return BatchOutcome.EMPTY
        if self.failed == self.processed:
            return BatchOutcome.ALL_FAILED
        if self.failed == 0:
            return BatchOutcome.NO_FAILURES
        return BatchOutcome.MIXED


def make_batch_items(inputs: Any) -> list[BatchItem[Any]]:
    """Wrap raw inputs as batch items indexed in submission order."""
    return [BatchItem(input=value, index=index) for index, value in enumerate(inputs)]
