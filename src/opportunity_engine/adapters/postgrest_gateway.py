"""
PostgREST Persistence Gateway.

Talks to a PostgREST (Supabase-style) REST endpoint with httpx.
Principals are organizations too, so both lookups hit the
organizations table.

Design Notes:
    - One AsyncClient per gateway; pass one in to share a pool or to
      inject a mock transport
    - Every non-2xx response becomes a PersistenceError carrying the
      backend's error code when it sends one
    - Row-level access control is enforced by the backend
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import httpx

from opportunity_engine.config.models import GatewayConfig
from opportunity_engine.domain.entities import PrincipalRef
from opportunity_engine.domain.value_objects import OpportunityFilters
from opportunity_engine.interfaces.persistence_gateway import PersistenceError

logger = logging.getLogger(__name__)


QueryParams = Union[Dict[str, str], Sequence[Tuple[str, str]]]


def _in_list(values: Sequence[str]) -> str:
    """PostgREST ``in.()`` operand; values are quoted since stages contain spaces."""
    quoted = ",".join('"' + v.replace('"', '\\"') + '"' for v in values)
    return f"in.({quoted})"


def filter_params(filters: OpportunityFilters) -> List[Tuple[str, str]]:
    """Translate OpportunityFilters into PostgREST query parameters."""
    params: List[Tuple[str, str]] = [("select", "*"), ("deleted_at", "is.null")]
    if filters.search:
        params.append(("name", f"ilike.*{filters.search}*"))
    if filters.stages:
        params.append(("stage", _in_list([s.value for s in filters.stages])))
    if filters.contexts:
        params.append(("context", _in_list([c.value for c in filters.contexts])))
    for field in ("organization_id", "principal_id", "product_id", "deal_owner"):
        value = getattr(filters, field)
        if value is not None:
            params.append((field, f"eq.{value}"))
    if filters.probability_min is not None:
        params.append(("probability_percent", f"gte.{filters.probability_min}"))
    if filters.probability_max is not None:
        params.append(("probability_percent", f"lte.{filters.probability_max}"))
    if filters.is_won is not None:
        params.append(("is_won", f"eq.{str(filters.is_won).lower()}"))
    params.append(("order", f"{filters.sort_by}.{filters.sort_order}"))
    return params


class PostgrestGateway:
    """PersistenceGateway backed by a PostgREST API."""

    def __init__(
        self,
        config: GatewayConfig,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        Initialize the gateway.

        Args:
            config: Base URL, API key, timeout and table names
            client: Preconfigured client (built from config if omitted)

        Raises:
            ValueError: If no base URL is configured
        """
        if not config.base_url:
            raise ValueError("gateway.base_url is required for the REST gateway")

        self.config = config
        self._client = client or httpx.AsyncClient(
            base_url=config.base_url.rstrip("/"),
            headers=self._default_headers(config.api_key),
            timeout=config.timeout_seconds,
        )

    @staticmethod
    def _default_headers(api_key: Optional[str]) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["apikey"] = api_key
            headers["Authorization"] = f"Bearer {api_key}"
        return headers

    async def __aenter__(self) -> "PostgrestGateway":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _table(self, name: str) -> str:
        return f"/rest/v1/{name}"

    async def lookup_organization_name(self, organization_id: str) -> Optional[str]:
        rows = await self._request(
            "GET",
            self._table(self.config.organizations_table),
            params={"select": "name", "id": f"eq.{organization_id}"},
        )
        if not rows:
            return None
        return rows[0].get("name")

    async def lookup_principal_names(self, principal_ids: List[str]) -> List[PrincipalRef]:
        if not principal_ids:
            return []
        rows = await self._request(
            "GET",
            self._table(self.config.organizations_table),
            params={"select": "id,name", "id": f"in.({','.join(principal_ids)})"},
        )
        return [PrincipalRef(id=row["id"], name=row.get("name") or "") for row in rows]

    async def insert_record(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        rows = await self._request(
            "POST",
            self._table(self.config.opportunities_table),
            json=payload,
            headers={"Prefer": "return=representation"},
        )
        return self._single(rows, "insert")

    async def update_record(self, record_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        rows = await self._request(
            "PATCH",
            self._table(self.config.opportunities_table),
            params={"id": f"eq.{record_id}"},
            json=fields,
            headers={"Prefer": "return=representation"},
        )
        if not rows:
            raise PersistenceError(f"Opportunity {record_id} not found", code="not_found")
        return rows[0]

    async def fetch_record(self, record_id: str) -> Optional[Dict[str, Any]]:
        rows = await self._request(
            "GET",
            self._table(self.config.opportunities_table),
            params={"select": "*", "id": f"eq.{record_id}"},
        )
        return rows[0] if rows else None

    async def list_records(
        self, filters: Optional[OpportunityFilters] = None
    ) -> List[Dict[str, Any]]:
        filters = filters or OpportunityFilters()
        headers = None
        if filters.limit:
            last = filters.offset + filters.limit - 1
            headers = {"Range-Unit": "items", "Range": f"{filters.offset}-{last}"}
        return await self._request(
            "GET",
            self._table(self.config.opportunities_table),
            params=filter_params(filters),
            headers=headers,
        )

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[QueryParams] = None,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> List[Dict[str, Any]]:
        try:
            response = await self._client.request(
                method, path, params=params, json=json, headers=headers
            )
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise PersistenceError(f"Backend unreachable: {e}", code="transport_error") from e

        if response.is_error:
            raise self._to_error(response)

        if not response.content:
            return []
        body = response.json()
        return body if isinstance(body, list) else [body]

    def _to_error(self, response: httpx.Response) -> PersistenceError:
        code: Optional[str] = None
        message = response.text or response.reason_phrase
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            code = body.get("code")
            message = body.get("message") or message
        logger.warning(
            f"Backend rejected {response.request.method} {response.request.url.path}: "
            f"{response.status_code} {message}"
        )
        return PersistenceError(
            f"Backend error {response.status_code}: {message}",
            code=code or str(response.status_code),
        )

    def _single(self, rows: List[Dict[str, Any]], operation: str) -> Dict[str, Any]:
        if not rows:
            raise PersistenceError(f"Backend returned no row for {operation}", code="empty_response")
        return rows[0]
