"""Gateway backed by a hosted Supabase project.

Table access goes through the PostgREST endpoint at ``/rest/v1`` and the
session identity comes from the auth endpoint at ``/auth/v1/user``.
"""

import logging
from typing import Any

import httpx

from biodiversityhub.gateway.base import (
    DataGateway,
    Filters,
    GatewayError,
    RecordNotFoundError,
    Row,
)

logger = logging.getLogger(__name__)

SINGLE_OBJECT_MEDIA_TYPE = "application/vnd.pgrst.object+json"


def _format_value(value: Any) -> str:  # noqa: ANN401
    """Render a filter value the way PostgREST expects it in a query string."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def _equality_params(filters: Filters | None) -> dict[str, str]:
    """Convert equality filters into PostgREST query parameters."""
    params = {}
    for column, value in (filters or {}).items():
        operator = "is" if value is None else "eq"
        params[column] = f"{operator}.{_format_value(value)}"
    return params


def _compact_columns(columns: str) -> str:
    """Strip whitespace from a select list; PostgREST rejects spaces inside it."""
    return "".join(columns.split())


def _error_message(response: httpx.Response) -> str:
    """Extract the most useful error message from a failed response."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "msg", "error_description", "error"):
            if body.get(key):
                return str(body[key])
    return response.text or response.reason_phrase or f"HTTP {response.status_code}"


class SupabaseGateway(DataGateway):
    """DataGateway implementation speaking to Supabase over HTTP."""

    def __init__(
        self,
        url: str,
        anon_key: str,
        access_token: str = "",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the gateway.

        Args:
            url: Project URL, e.g. https://abc123.supabase.co
            anon_key: Public API key of the project
            access_token: JWT of the signed-in user; empty means anonymous
            transport: Optional httpx transport, used to substitute the network in tests
        """
        if not url:
            raise ValueError("Supabase URL is not configured")
        self.url = url.rstrip("/")
        self.anon_key = anon_key
        self.access_token = access_token
        self.client = httpx.AsyncClient(
            base_url=self.url,
            headers=self._headers(),
            transport=transport,
        )

    def _headers(self) -> dict[str, str]:
        bearer = self.access_token or self.anon_key
        return {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {bearer}",
        }

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,  # noqa: ANN401
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        try:
            response = await self.client.request(
                method, path, params=params, json=json, headers=headers
            )
        except httpx.HTTPError as e:
            logger.error("Gateway request %s %s failed: %s", method, path, e)
            raise GatewayError(str(e) or e.__class__.__name__) from e

        if response.status_code == 406 and headers and headers.get("Accept") == (
            SINGLE_OBJECT_MEDIA_TYPE
        ):
            raise RecordNotFoundError(_error_message(response), status_code=406)
        if response.is_error:
            message = _error_message(response)
            logger.warning(
                "Gateway rejected %s %s (%d): %s", method, path, response.status_code, message
            )
            raise GatewayError(message, status_code=response.status_code)
        return response

    async def get_session(self) -> str | None:
        """Return the signed-in user id, or None when the token is missing or rejected."""
        if not self.access_token:
            return None
        try:
            response = await self.client.get("/auth/v1/user")
        except httpx.HTTPError as e:
            raise GatewayError(str(e) or e.__class__.__name__) from e
        if response.status_code in (401, 403):
            return None
        if response.is_error:
            raise GatewayError(_error_message(response), status_code=response.status_code)
        return response.json().get("id")

    async def select(
        self,
        table: str,
        columns: str = "*",
        filters: Filters | None = None,
        order_by: str | None = None,
        ascending: bool = True,
    ) -> list[Row]:
        """Fetch rows matching all equality filters."""
        params = {"select": _compact_columns(columns), **_equality_params(filters)}
        if order_by:
            params["order"] = f"{order_by}.{'asc' if ascending else 'desc'}"
        response = await self._request("GET", f"/rest/v1/{table}", params=params)
        return response.json()

    async def select_single(
        self, table: str, columns: str = "*", filters: Filters | None = None
    ) -> Row:
        """Fetch exactly one row."""
        params = {"select": _compact_columns(columns), **_equality_params(filters)}
        response = await self._request(
            "GET",
            f"/rest/v1/{table}",
            params=params,
            headers={"Accept": SINGLE_OBJECT_MEDIA_TYPE},
        )
        return response.json()

    async def insert(self, table: str, payload: Row, returning: str | None = None) -> Row | None:
        """Insert one row, optionally returning its representation."""
        if returning is None:
            await self._request(
                "POST", f"/rest/v1/{table}", json=payload, headers={"Prefer": "return=minimal"}
            )
            return None

        response = await self._request(
            "POST",
            f"/rest/v1/{table}",
            params={"select": _compact_columns(returning)},
            json=payload,
            headers={"Prefer": "return=representation", "Accept": SINGLE_OBJECT_MEDIA_TYPE},
        )
        return response.json()

    async def update(self, table: str, payload: Row, filters: Filters) -> None:
        """Update rows matching all equality filters."""
        await self._request(
            "PATCH",
            f"/rest/v1/{table}",
            params=_equality_params(filters),
            json=payload,
            headers={"Prefer": "return=minimal"},
        )

    async def delete(self, table: str, filters: Filters) -> None:
        """Delete rows matching all equality filters."""
        await self._request(
            "DELETE",
            f"/rest/v1/{table}",
            params=_equality_params(filters),
            headers={"Prefer": "return=minimal"},
        )
