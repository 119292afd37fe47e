"""Values a batch action returns to report how one item went."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Success:
    """The action did its work."""

    detail: str = ""


@dataclass(frozen=True)
class Skip:
    """The action decided nothing needed doing, e.g. the member already exists."""

    reason: str


@dataclass(frozen=True)
class Fail:
    """The action detected a failure without raising."""

    error: str | BaseException

    @property
    def message(self) -> str:
        if isinstance(self.error, BaseException):
            return str(self.error) or type(self.error).__name__
        return self.error


ActionOutcome = Success | Skip | Fail
