"""Microsoft Graph client exposing paged listings and single mutation calls."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import requests
import structlog

from src.core.errors import GraphAPIError
from src.models.fetch_page import FetchPage
from src.services.paged_fetcher import PagedFetcher

if TYPE_CHECKING:
    from collections.abc import Callable

    from src.models.retry_policy import RetryPolicy
    from src.utils.deadline import Deadline

logger = structlog.get_logger(__name__)

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"


def _parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


def _error_from_response(response: requests.Response) -> GraphAPIError:
    code: str | None = None
    message = response.reason or "request failed"
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        code = body["error"].get("code")
        message = body["error"].get("message") or message
    return GraphAPIError(
        response.status_code,
        message,
        code=code,
        retry_after=_parse_retry_after(response.headers.get("Retry-After")),
    )


class GraphClient:
    """Thin wrapper over a requests session authenticated with a bearer token.

    Every method issues exactly one HTTP request. Retrying is layered on top with a
    RetryPolicy, by PagedFetcher for listings or ``with_retry`` for batch actions.
    """

    def __init__(
        self,
        access_token: str,
        base_url: str = GRAPH_BASE_URL,
        timeout: int = 30,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {access_token}",
                "Accept": "application/json",
                "ConsistencyLevel": "eventual",
            }
        )

    def _url(self, path: str) -> str:
        if path.startswith("https://"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Issue one request and return the decoded body ({} for empty responses)."""
        response = self.session.request(
            method,
            self._url(path),
            params=params,
            json=json,
            timeout=self.timeout,
        )
        if not response.ok:
            error = _error_from_response(response)
            logger.debug(
                "graph_request_failed",
                method=method,
                path=path,
                status=response.status_code,
                code=error.code,
            )
            raise error
        if response.status_code == 204 or not response.content:
            return {}
        return response.json()

    def get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        return self.request("GET", path, params=params)

    def page_fetcher(
        self,
        path: str,
        params: dict[str, Any] | None = None,
    ) -> Callable[[str | None], FetchPage[dict[str, Any]]]:
        """Build a page-fetch function for a collection endpoint.

        The first call requests ``path`` with ``params``; later calls follow the
        ``@odata.nextLink`` URL, which already carries the query string.
        """

        def fetch_page(continuation: str | None) -> FetchPage[dict[str, Any]]:
            if continuation is None:
                body = self.request("GET", path, params=params)
            else:
                body = self.request("GET", continuation)
            return FetchPage(
                items=body.get("value", []),
                continuation=body.get("@odata.nextLink"),
            )

        return fetch_page

    def list_all(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        policy: RetryPolicy | None = None,
        deadline: Deadline | None = None,
    ) -> PagedFetcher[dict[str, Any]]:
        """Lazily iterate every record of a collection endpoint."""
        return PagedFetcher(self.page_fetcher(path, params), policy, deadline=deadline)

    # --- Directory mutations used by the batch commands ---

    def get_user(self, user: str, select: str = "id,userPrincipalName,accountEnabled") -> dict[str, Any]:
        return self.get(f"users/{quote(user, safe='@')}", params={"$select": select})

    def add_group_member(self, group_id: str, directory_object_id: str) -> None:
        self.request(
            "POST",
            f"groups/{group_id}/members/$ref",
            json={"@odata.id": f"{self.base_url}/directoryObjects/{directory_object_id}"},
        )

    def set_account_enabled(self, user: str, enabled: bool) -> None:
        self.request("PATCH", f"users/{quote(user, safe='@')}", json={"accountEnabled": enabled})
