"""Retry policy model shared by page fetches and batch actions."""

from __future__ import annotations

from collections.abc import Callable

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.core.errors import is_transient_error


class RetryPolicy(BaseModel):
    """How many times to attempt one remote call and how long to back off.

    The wait before attempt ``n + 1`` is ``min(base_delay * 2 ** (n - 1), max_delay)``.
    """

    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(default=4, ge=1)
    base_delay: float = Field(default=1.0, ge=0)
    max_delay: float = Field(default=30.0, ge=0)
    is_retryable: Callable[[BaseException], bool] = is_transient_error

    @model_validator(mode="after")
    def validate_delays(self) -> RetryPolicy:
        """base_delay must not exceed max_delay."""
        if self.base_delay > self.max_delay:
            msg = "base_delay must be less than or equal to max_delay"
            raise ValueError(msg)
        return self

    def delay_for(self, attempt: int) -> float:
        """Backoff to wait after failed attempt number ``attempt`` (1-based)."""
        return min(self.base_delay * 2 ** (attempt - 1), self.max_delay)
