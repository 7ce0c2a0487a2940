"""Microsoft Graph implementation of DirectoryClient.

One instance wraps a bearer token and a shared httpx.AsyncClient; instances
are cheap and handed out by GraphClientProvider.acquire().

Error translation:
- 404 -> EntityNotFoundError (also what replication lag looks like)
- 429, 5xx, timeouts, connection errors -> TransientUnavailableError
- other 4xx -> DirectoryOperationError carrying the OData error message
"""

import logging
from typing import Any
from urllib.parse import quote

import httpx

from adapter.graph.mapping import user_from_dict, user_to_payload
from domain.model.errors import (
    DirectoryOperationError,
    EntityNotFoundError,
    TransientUnavailableError,
)
from domain.model.filter import FilterExpression
from domain.model.page import UserPage
from domain.model.user import User

logger = logging.getLogger(__name__)

EVENTUAL_CONSISTENCY_HEADERS = {"ConsistencyLevel": "eventual"}


def _error_details(response: httpx.Response) -> tuple[str | None, str]:
    """Return (code, message) from an OData error body."""
    try:
        error = response.json().get("error") or {}
    except ValueError:
        return None, response.text[:500] or response.reason_phrase
    return error.get("code"), error.get("message") or response.reason_phrase


def raise_for_directory_status(response: httpx.Response) -> None:
    """Raise the domain error matching an unsuccessful Graph response."""
    if response.is_success:
        return

    code, message = _error_details(response)
    status_code = response.status_code

    if status_code == 404:
        raise EntityNotFoundError(message)
    if status_code == 429 or status_code >= 500:
        raise TransientUnavailableError(f"[{status_code}] {message}")
    raise DirectoryOperationError(message, status_code=status_code, code=code)


class GraphDirectoryClient:
    """Graph ``/users`` collection access with a fixed bearer token."""

    def __init__(self, http: httpx.AsyncClient, base_url: str, access_token: str):
        self._http = http
        self._base_url = base_url.rstrip("/")
        self._auth = {"Authorization": f"Bearer {access_token}"}

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        if not url.startswith("http"):
            url = f"{self._base_url}{url}"
        try:
            response = await self._http.request(
                method, url, params=params, json=json, headers={**self._auth, **(headers or {})},
            )
        except httpx.TimeoutException as e:
            raise TransientUnavailableError(f"Graph request timed out: {method} {url}") from e
        except httpx.TransportError as e:
            raise TransientUnavailableError(f"Graph request failed: {type(e).__name__}: {e}") from e

        if not response.is_success:
            logger.debug(
                "Graph request failed",
                extra={"method": method, "url": url, "status_code": response.status_code},
            )
        raise_for_directory_status(response)
        return response

    @staticmethod
    def _to_page(response: httpx.Response) -> UserPage:
        data = response.json()
        return UserPage(
            users=[user_from_dict(item) for item in data.get("value") or []],
            next_link=data.get("@odata.nextLink"),
        )

    # ── DirectoryClient implementation ───────────────────────

    async def create_user(self, user: User) -> User:
        response = await self._request(
            "POST",
            "/users",
            json=user_to_payload(user),
            headers={**EVENTUAL_CONSISTENCY_HEADERS, "Prefer": "return=representation"},
        )
        if response.status_code == 204 or not response.content:
            location = response.headers.get("Location", "")
            return User(id=location.rstrip("/").rsplit("/", 1)[-1] or None)
        return user_from_dict(response.json())

    async def get_user(self, user_id: str, select: list[str] | None = None) -> User:
        params = {"$select": ",".join(select)} if select else None
        response = await self._request(
            "GET",
            f"/users/{quote(user_id, safe='')}",
            params=params,
            headers=EVENTUAL_CONSISTENCY_HEADERS,
        )
        return user_from_dict(response.json())

    async def list_users(
        self,
        select: list[str] | None = None,
        filter: FilterExpression | None = None,
        top: int | None = None,
    ) -> UserPage:
        params: dict[str, Any] = {}
        if select:
            params["$select"] = ",".join(select)
        if filter is not None:
            params["$filter"] = filter.to_odata()
            # Advanced queries need $count alongside ConsistencyLevel: eventual
            params["$count"] = "true"
        if top is not None:
            params["$top"] = top
        response = await self._request("GET", "/users", params=params, headers=EVENTUAL_CONSISTENCY_HEADERS)
        return self._to_page(response)

    async def next_page(self, next_link: str) -> UserPage:
        response = await self._request("GET", next_link, headers=EVENTUAL_CONSISTENCY_HEADERS)
        return self._to_page(response)

    async def update_user(self, user: User) -> User | None:
        response = await self._request(
            "PATCH",
            f"/users/{quote(user.id, safe='')}",
            json=user_to_payload(user),
            headers=EVENTUAL_CONSISTENCY_HEADERS,
        )
        if response.status_code == 204 or not response.content:
            return None
        return user_from_dict(response.json())

    async def delete_user(self, user_id: str) -> None:
        await self._request("DELETE", f"/users/{quote(user_id, safe='')}")
