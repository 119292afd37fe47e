"""Retry logic with structured logging using tenacity."""

from __future__ import annotations

import functools
import time
from typing import TYPE_CHECKING, Any, ParamSpec, TypeVar

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from src.core.errors import DeadlineExceededError, PaginationCycleError
from src.utils.logger import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

    from src.models.retry_policy import RetryPolicy
    from src.utils.deadline import Deadline

P = ParamSpec("P")
T = TypeVar("T")

logger = get_logger(__name__)

# Never retried, whatever the policy predicate says.
_FATAL_EXCEPTIONS: tuple[type[BaseException], ...] = (
    DeadlineExceededError,
    PaginationCycleError,
)


def _should_retry(policy: RetryPolicy) -> Callable[[BaseException], bool]:
    def predicate(exc: BaseException) -> bool:
        if isinstance(exc, _FATAL_EXCEPTIONS):
            return False
        return bool(policy.is_retryable(exc))

    return predicate


def _log_retry(operation: str, deadline: Deadline | None) -> Callable[[RetryCallState], None]:
    def before_sleep(retry_state: RetryCallState) -> None:
        """Log retry attempt with structured context, then honour the deadline."""
        logger.warning(
            "retrying_operation",
            operation=operation,
            attempt=retry_state.attempt_number,
            delay=retry_state.next_action.sleep if retry_state.next_action else None,
            error=str(retry_state.outcome.exception()) if retry_state.outcome else "unknown",
        )
        if deadline is not None:
            deadline.check()

    return before_sleep


def build_retrying(
    policy: RetryPolicy,
    *,
    operation: str = "remote_call",
    deadline: Deadline | None = None,
    sleep: Callable[[float], Any] = time.sleep,
) -> Retrying:
    """Build a tenacity Retrying controller from a RetryPolicy.

    The wait before attempt n + 1 is min(base_delay * 2 ** (n - 1), max_delay).
    The last error is re-raised once attempts run out.
    """
    return Retrying(
        stop=stop_after_attempt(policy.max_attempts),
        wait=wait_exponential(multiplier=policy.base_delay, exp_base=2, min=0, max=policy.max_delay),
        retry=retry_if_exception(_should_retry(policy)),
        before_sleep=_log_retry(operation, deadline),
        sleep=sleep,
        reraise=True,
    )


def call_with_retry(
    func: Callable[[], T],
    policy: RetryPolicy,
    *,
    operation: str = "remote_call",
    deadline: Deadline | None = None,
    sleep: Callable[[float], Any] = time.sleep,
) -> T:
    """Call ``func`` under ``policy`` and return its value.

    The deadline is checked before every attempt and before every backoff wait.
    """
    retrying = build_retrying(policy, operation=operation, deadline=deadline, sleep=sleep)
    for attempt in retrying:
        with attempt:
            if deadline is not None:
                deadline.check()
            value = func()
        if not attempt.retry_state.outcome.failed:  # type: ignore[union-attr]
            return value
    raise AssertionError("unreachable: tenacity re-raises on the final attempt")  # pragma: no cover


def with_retry(
    func: Callable[P, T],
    policy: RetryPolicy,
    *,
    deadline: Deadline | None = None,
    sleep: Callable[[float], Any] = time.sleep,
) -> Callable[P, T]:
    """Wrap a batch action so each invocation is retried under ``policy``.

    Exhausted or non-retryable errors propagate, so the batch processor records them
    as failed items.
    """

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        return call_with_retry(
            lambda: func(*args, **kwargs),
            policy,
            operation=getattr(func, "__name__", "action"),
            deadline=deadline,
            sleep=sleep,
        )

    return wrapper
