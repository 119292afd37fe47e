"""Per-item batch actions for directory administration commands.

Each factory closes over an explicit GraphClient and RetryPolicy; retrying happens
per remote call, and business rules such as "already a member" become Skip outcomes.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

from src.core.errors import GraphAPIError
from src.core.outcomes import Skip, Success
from src.utils.retry import call_with_retry

if TYPE_CHECKING:
    from collections.abc import Callable

    from src.core.outcomes import ActionOutcome
    from src.models.retry_policy import RetryPolicy
    from src.services.protocols import DirectoryClientProtocol
    from src.utils.deadline import Deadline


def _is_already_member(exc: GraphAPIError) -> bool:
    # Graph answers a duplicate $ref add with 400 "One or more added object
    # references already exist for the following modified properties: 'members'."
    return exc.status_code == 400 and "already exist" in str(exc)


def add_group_member_action(
    client: DirectoryClientProtocol,
    group_id: str,
    policy: RetryPolicy,
    *,
    deadline: Deadline | None = None,
    sleep: Callable[[float], Any] = time.sleep,
) -> Callable[[str], ActionOutcome]:
    """Resolve a user by UPN or id and add them to ``group_id``."""

    def add_member(user: str) -> ActionOutcome:
        profile = call_with_retry(
            lambda: client.get_user(user, select="id,userPrincipalName"),
            policy,
            operation="get_user",
            deadline=deadline,
            sleep=sleep,
        )
        try:
            call_with_retry(
                lambda: client.add_group_member(group_id, profile["id"]),
                policy,
                operation="add_group_member",
                deadline=deadline,
                sleep=sleep,
            )
        except GraphAPIError as exc:
            if _is_already_member(exc):
                return Skip("already a member")
            raise
        return Success(f"added to group {group_id}")

    return add_member


def disable_user_action(
    client: DirectoryClientProtocol,
    policy: RetryPolicy,
    *,
    deadline: Deadline | None = None,
    sleep: Callable[[float], Any] = time.sleep,
) -> Callable[[str], ActionOutcome]:
    """Block sign-in for a user; users already disabled are skipped."""

    def disable_user(user: str) -> ActionOutcome:
        profile = call_with_retry(
            lambda: client.get_user(user),
            policy,
            operation="get_user",
            deadline=deadline,
            sleep=sleep,
        )
        if profile.get("accountEnabled") is False:
            return Skip("account already disabled")
        call_with_retry(
            lambda: client.set_account_enabled(profile["id"], False),
            policy,
            operation="set_account_enabled",
            deadline=deadline,
            sleep=sleep,
        )
        return Success("account disabled")

    return disable_user
