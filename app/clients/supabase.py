# app/clients/supabase.py

import logging
from typing import Any, Iterable

import httpx

from app.core.config import settings
from app.core.exceptions import (
    ConflictError,
    NotFoundError,
    PersistenceError,
    PersistenceUnavailableError,
)

logger = logging.getLogger(__name__)

# Postgres / PostgREST error codes we translate into domain errors
UNIQUE_VIOLATION = "23505"
NO_ROWS_FOR_SINGLE = "PGRST116"


def _filter_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_query_params(
    columns: str | None = None,
    eq: dict[str, Any] | None = None,
    not_null: Iterable[str] | None = None,
    order_by: str | None = None,
    ascending: bool = True,
    limit: int | None = None,
) -> dict[str, str]:
    """
    Translates filter arguments into PostgREST query parameters:
    `col=eq.value`, `col=not.is.null`, `order=col.desc`, `limit=N`.
    """
    params: dict[str, str] = {}
    if columns:
        params["select"] = columns
    for column, value in (eq or {}).items():
        params[column] = f"eq.{_filter_value(value)}"
    for column in not_null or ():
        params[column] = "not.is.null"
    if order_by:
        params["order"] = f"{order_by}.{'asc' if ascending else 'desc'}"
    if limit is not None:
        params["limit"] = str(limit)
    return params


class SupabaseClient:
    """
    Asynchronous client for the hosted database REST interface (PostgREST).
    Exposes table-scoped select/insert/update/delete plus named procedure calls;
    failures are logged and re-raised as domain errors from app.core.exceptions.
    """
    def __init__(self, base_url: str, api_key: str, transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = base_url
        headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        timeouts = httpx.Timeout(10.0, read=30.0)
        self.async_client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeouts,
            transport=transport,
        )

    async def _request(self, method: str, endpoint: str, **kwargs) -> Any:
        try:
            response = await self.async_client.request(method, endpoint, **kwargs)
            response.raise_for_status()
        except httpx.RequestError as e:
            logger.error(f"Network error during {method} request to {e.request.url!r}.", exc_info=True)
            raise PersistenceUnavailableError(f"Database service is unreachable: {e}") from e
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error during {method} request to {e.request.url!r}: {e.response.text}")
            raise self._translate_error(e.response) from e

        if not response.content:
            return None
        return response.json()

    @staticmethod
    def _translate_error(response: httpx.Response) -> PersistenceError:
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        code = body.get("code")
        message = body.get("message") or response.text or f"HTTP {response.status_code}"

        if response.status_code == 409 or code == UNIQUE_VIOLATION:
            return ConflictError(message, code=code)
        if response.status_code == 404 or code == NO_ROWS_FOR_SINGLE:
            return NotFoundError(message, code=code)
        if response.status_code >= 500:
            return PersistenceUnavailableError(message, code=code)
        return PersistenceError(message, code=code)

    async def select(
        self,
        table: str,
        columns: str = "*",
        eq: dict[str, Any] | None = None,
        not_null: Iterable[str] | None = None,
        order_by: str | None = None,
        ascending: bool = True,
        limit: int | None = None,
    ) -> list[dict]:
        params = build_query_params(columns, eq, not_null, order_by, ascending, limit)
        return await self._request("GET", f"/{table}", params=params) or []

    async def insert(self, table: str, rows: list[dict], columns: str = "*") -> list[dict]:
        return await self._request(
            "POST",
            f"/{table}",
            params=build_query_params(columns),
            json=rows,
            headers={"Prefer": "return=representation"},
        ) or []

    async def update(self, table: str, values: dict, eq: dict[str, Any], columns: str = "*") -> list[dict]:
        if not eq:
            raise ValueError("update() requires at least one filter")
        return await self._request(
            "PATCH",
            f"/{table}",
            params=build_query_params(columns, eq),
            json=values,
            headers={"Prefer": "return=representation"},
        ) or []

    async def delete(self, table: str, eq: dict[str, Any]) -> list[dict]:
        if not eq:
            raise ValueError("delete() requires at least one filter")
        return await self._request(
            "DELETE",
            f"/{table}",
            params=build_query_params(eq=eq),
            headers={"Prefer": "return=representation"},
        ) or []

    async def rpc(self, function: str, params: dict | None = None) -> Any:
        return await self._request("POST", f"/rpc/{function}", json=params or {})

    async def close(self):
        await self.async_client.aclose()


# Singleton shared by the whole process
supabase_client = SupabaseClient(
    base_url=settings.SUPABASE_REST_URL,
    api_key=settings.SUPABASE_KEY,
)


async def get_store() -> SupabaseClient:
    """Dependency that provides the database gateway to endpoints."""
    return supabase_client
