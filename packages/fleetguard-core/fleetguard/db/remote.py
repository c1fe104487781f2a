"""
Supabase backend over the PostgREST API.

Requests go to {SUPABASE_URL}/rest/v1/{table}. Filters become query
parameters, counts come from the Content-Range header and writes ask for
the affected rows back with Prefer: return=representation.
"""

import logging
from typing import TYPE_CHECKING, Any, List, Mapping, Optional, Sequence, Tuple

import httpx

from fleetguard.db.filters import render
from fleetguard.db.interface import BackendStrategy
from fleetguard.models.query import (
    ClientType,
    Columns,
    CountResult,
    MutationResult,
    QueryOptions,
    Row,
    SelectResult,
)

if TYPE_CHECKING:
    from fleetguard.db.connection import ConnectionManager

logger = logging.getLogger(__name__)


class PostgrestError(Exception):
    """
    Error payload returned by PostgREST.

    Attributes:
        message: Error message
        code: PostgREST (PGRSTxxx) or PostgreSQL SQLSTATE code
        details: Optional detail text
        hint: Optional hint text
        status_code: HTTP status of the response
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[str] = None,
        hint: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details
        self.hint = hint
        self.status_code = status_code


def raise_for_response(response: httpx.Response) -> None:
    """Raise PostgrestError for a non-2xx response."""
    if response.is_success:
        return

    payload: Any = {}
    if response.content:
        try:
            payload = response.json()
        except ValueError:
            payload = {}
    if not isinstance(payload, dict):
        payload = {}

    message = payload.get("message") or response.text or response.reason_phrase or f"HTTP {response.status_code}"
    raise PostgrestError(
        message,
        code=payload.get("code"),
        details=payload.get("details"),
        hint=payload.get("hint"),
        status_code=response.status_code,
    )


def parse_content_range(header: Optional[str]) -> Optional[int]:
    """Total from a Content-Range header such as "0-24/3573" or "*/0"."""
    if not header or "/" not in header:
        return None
    total = header.rsplit("/", 1)[1].strip()
    return int(total) if total.isdigit() else None


def _select_param(columns: Columns) -> str:
    if isinstance(columns, str):
        return columns
    return ",".join(columns)


class RemoteStrategy(BackendStrategy):
    """Backend strategy for Supabase."""

    client_type = ClientType.SUPABASE

    def __init__(self, manager: "ConnectionManager"):
        self.manager = manager

    def _filter_params(self, filter: Optional[Mapping[str, Any]]) -> List[Tuple[str, str]]:
        return render(filter, self.client_type).params

    async def _request(
        self,
        method: str,
        table: str,
        params: List[Tuple[str, str]],
        headers: Optional[dict] = None,
        json: Any = None,
    ) -> httpx.Response:
        logger.debug(f"{method} /{table} {params}")

        async def send(http: httpx.AsyncClient) -> httpx.Response:
            return await http.request(method, f"/{table}", params=params, headers=headers, json=json)

        response = await self.manager.run(send)
        raise_for_response(response)
        return response

    async def count(self, table: str, filter: Optional[Mapping[str, Any]] = None) -> CountResult:
        params = [("select", "*")] + self._filter_params(filter)
        response = await self._request("HEAD", table, params, headers={"Prefer": "count=exact"})
        return CountResult(count=parse_content_range(response.headers.get("content-range")) or 0)

    async def select(
        self,
        table: str,
        columns: Columns,
        filter: Optional[Mapping[str, Any]],
        options: QueryOptions,
    ) -> SelectResult:
        params = [("select", _select_param(columns))] + self._filter_params(filter)

        if options.order_by is not None:
            params.append(("order", f"{options.order_by.column}.{options.order_by.direction}"))
        if options.limit is not None:
            params.append(("limit", str(options.limit)))
        if options.offset is not None:
            params.append(("offset", str(options.offset)))

        headers = {"Prefer": "count=exact"} if options.with_count else None
        response = await self._request("GET", table, params, headers=headers)

        count = None
        if options.with_count:
            count = parse_content_range(response.headers.get("content-range")) or 0

        return SelectResult(data=response.json() or [], count=count)

    async def insert(self, table: str, rows: Sequence[Row]) -> MutationResult:
        # One bulk request; PostgREST runs it as a single statement
        response = await self._request(
            "POST",
            table,
            [],
            headers={"Prefer": "return=representation"},
            json=list(rows),
        )
        data = response.json() or []
        return MutationResult(data=data, affected=len(data))

    async def update(self, table: str, values: Row, filter: Mapping[str, Any]) -> MutationResult:
        response = await self._request(
            "PATCH",
            table,
            self._filter_params(filter),
            headers={"Prefer": "return=representation"},
            json=dict(values),
        )
        data = response.json() or []
        return MutationResult(data=data, affected=len(data))

    async def delete(self, table: str, filter: Mapping[str, Any]) -> MutationResult:
        response = await self._request(
            "DELETE",
            table,
            self._filter_params(filter),
            headers={"Prefer": "return=representation"},
        )
        data = response.json() if response.content else []
        return MutationResult(data=data or [], affected=len(data or []))
