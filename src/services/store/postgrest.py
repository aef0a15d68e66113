"""Record store backed by a PostgREST endpoint (Supabase REST API).

Talks to ``{SUPABASE_URL}/rest/v1`` with the service-role key.  Each
method issues exactly one HTTP request, which PostgREST executes as one
SQL statement, so writes are atomic per call.

Error mapping
-------------
PostgREST reports Postgres SQLSTATE codes and its own ``PGRST*`` codes in
the JSON error body.  Two of them are meaningful to callers:

* ``23505`` (unique_violation) -> :class:`UniqueViolation`
* ``PGRST116`` (singular response requested, zero or many rows) ->
  :class:`NoRowFound`

Everything else, including transport failures, becomes
:class:`StoreError`.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Final

import httpx
import structlog

from src.services.store.base import NoRowFound, Row, StoreError, UniqueViolation

logger = structlog.get_logger(__name__)

_UNIQUE_VIOLATION: Final[str] = "23505"
_NO_SINGLE_ROW: Final[str] = "PGRST116"
_SINGLE_OBJECT: Final[str] = "application/vnd.pgrst.object+json"


def _format_filter_value(value: Any) -> str:
    if value is None:
        return "is.null"
    if isinstance(value, bool):
        return f"eq.{str(value).lower()}"
    return f"eq.{value}"


class PostgrestRecordStore:
    """``httpx``-based implementation of :class:`RecordStore`.

    Parameters
    ----------
    base_url:
        Project URL, e.g. ``https://abc.supabase.co``.
    service_key:
        Supabase service-role key, sent as both ``apikey`` and bearer token.
    timeout:
        Per-request timeout in seconds.
    transport:
        Optional ``httpx`` transport, used by tests to stub the server.
    """

    def __init__(
        self,
        base_url: str,
        service_key: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not base_url:
            raise ValueError("base_url is required for the PostgREST store")
        self._client = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/rest/v1",
            timeout=timeout,
            transport=transport,
            headers={
                "apikey": service_key,
                "Authorization": f"Bearer {service_key}",
                "Accept": "application/json",
            },
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def ping(self) -> bool:
        """Return *True* if the REST endpoint answers a trivial query."""
        try:
            response = await self._client.get("/complaints", params={"select": "id", "limit": "1"})
        except httpx.HTTPError:
            return False
        return response.is_success

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _params(
        *,
        columns: Sequence[str] | None = None,
        filters: Mapping[str, Any] | None = None,
    ) -> dict[str, str]:
        params: dict[str, str] = {}
        if columns:
            params["select"] = ",".join(columns)
        for column, value in (filters or {}).items():
            params[column] = _format_filter_value(value)
        return params

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: Mapping[str, str] | None = None,
        json: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        try:
            response = await self._client.request(
                method,
                f"/{table}",
                params=params,
                json=json,
                headers=headers,
            )
        except httpx.HTTPError as exc:
            logger.error("store.postgrest.transport_error", table=table, method=method, error=str(exc))
            raise StoreError(f"PostgREST request to {table} failed: {exc}") from exc

        if response.is_success:
            return response

        try:
            body = response.json()
        except ValueError:
            body = {}
        code = str(body.get("code", "")) if isinstance(body, dict) else ""
        message = (body.get("message") if isinstance(body, dict) else None) or response.text

        if code == _UNIQUE_VIOLATION:
            raise UniqueViolation(message)
        if code == _NO_SINGLE_ROW:
            raise NoRowFound(message)

        logger.error(
            "store.postgrest.error",
            table=table,
            method=method,
            status=response.status_code,
            code=code,
        )
        raise StoreError(f"PostgREST {method} {table} failed ({response.status_code}, {code or 'no code'}): {message}")

    # ------------------------------------------------------------------
    # RecordStore interface
    # ------------------------------------------------------------------

    async def upsert(
        self,
        table: str,
        row: Mapping[str, Any],
        *,
        on_conflict: Sequence[str],
        returning: Sequence[str] | None = None,
    ) -> Row:
        params = self._params(columns=returning)
        params["on_conflict"] = ",".join(on_conflict)
        response = await self._request(
            "POST",
            table,
            params=params,
            json=dict(row),
            headers={
                "Prefer": "resolution=merge-duplicates,return=representation",
                "Accept": _SINGLE_OBJECT,
            },
        )
        return response.json()

    async def insert(
        self,
        table: str,
        rows: Sequence[Mapping[str, Any]],
        *,
        returning: Sequence[str] | None = None,
    ) -> list[Row]:
        if not rows:
            return []
        params = self._params(columns=returning)
        prefer = "return=representation" if returning is not None else "return=minimal"
        response = await self._request(
            "POST",
            table,
            params=params,
            json=[dict(row) for row in rows],
            headers={"Prefer": prefer},
        )
        if returning is None:
            return []
        return response.json()

    async def select(
        self,
        table: str,
        *,
        columns: Sequence[str] | None = None,
        filters: Mapping[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[Row]:
        params = self._params(columns=columns, filters=filters)
        if order_by is not None:
            params["order"] = f"{order_by}.{'desc' if descending else 'asc'}"
        response = await self._request("GET", table, params=params)
        return response.json()

    async def select_one(
        self,
        table: str,
        *,
        columns: Sequence[str] | None = None,
        filters: Mapping[str, Any] | None = None,
    ) -> Row:
        response = await self._request(
            "GET",
            table,
            params=self._params(columns=columns, filters=filters),
            headers={"Accept": _SINGLE_OBJECT},
        )
        return response.json()

    async def delete(self, table: str, *, filters: Mapping[str, Any]) -> int:
        params = self._params(columns=("id",), filters=filters)
        response = await self._request(
            "DELETE",
            table,
            params=params,
            headers={"Prefer": "return=representation"},
        )
        return len(response.json())
