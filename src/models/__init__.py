"""Pydantic data models for the tenant batch toolkit."""

from src.models.batch_result import (
    BatchItem,
    BatchOutcome,
    BatchResult,
    BatchStatus,
    BatchSummary,
    make_batch_items,
)
from src.models.config import Config
from src.models.fetch_page import FetchPage
from src.models.retry_policy import RetryPolicy

__all__ = [
    "BatchItem",
    "BatchOutcome",
    "BatchResult",
    "BatchStatus",
    "BatchSummary",
    "Config",
    "FetchPage",
    "RetryPolicy",
    "make_batch_items",
]
