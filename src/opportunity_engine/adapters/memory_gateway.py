"""
In-Memory Persistence Gateway.

A dict-backed gateway for development and testing. Enforces the same
row constraints the relational backend does (non-empty name, probability
range, known organization) and supports failure injection so partial
batch outcomes can be reproduced deterministically.
"""

from __future__ import annotations

import copy
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from opportunity_engine.domain.entities import PrincipalRef
from opportunity_engine.domain.value_objects import OpportunityFilters
from opportunity_engine.interfaces.persistence_gateway import PersistenceError


class InMemoryPersistenceGateway:
    """Fake relational backend for development and testing."""

    # Sample reference data
    SAMPLE_ORGANIZATIONS = {
        "org-acme": "Acme Foods",
        "org-harbor": "Harbor Grill",
    }

    SAMPLE_PRINCIPALS = {
        "prin-kaufholds": "Kaufholds",
        "prin-ressler": "Mrs Ressler's",
        "prin-annasea": "Annasea",
    }

    def __init__(
        self,
        organizations: Optional[Dict[str, str]] = None,
        principals: Optional[Dict[str, str]] = None,
        fail_on_call: Optional[Iterable[int]] = None,
        fail_on_names: Optional[Iterable[str]] = None,
        transient_lookup_failures: int = 0,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """
        Initialize the gateway.

        Args:
            organizations: id -> name (sample data if omitted)
            principals: id -> name (sample data if omitted)
            fail_on_call: 1-based insert call numbers that are rejected
            fail_on_names: Record names whose insert is rejected
            transient_lookup_failures: Number of lookup calls that fail
                before lookups start succeeding
            clock: Timestamp source for created_at/updated_at
        """
        self.organizations = dict(
            self.SAMPLE_ORGANIZATIONS if organizations is None else organizations
        )
        self.principals = dict(self.SAMPLE_PRINCIPALS if principals is None else principals)
        self.fail_on_call = set(fail_on_call or ())
        self.fail_on_names = set(fail_on_names or ())
        self._transient_lookup_failures = transient_lookup_failures
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._rows: Dict[str, Dict[str, Any]] = {}
        self._insert_calls = 0
        self.calls: List[str] = []

    @property
    def rows(self) -> List[Dict[str, Any]]:
        """All stored rows, soft-deleted included, in insertion order."""
        return [copy.deepcopy(row) for row in self._rows.values()]

    async def lookup_organization_name(self, organization_id: str) -> Optional[str]:
        self.calls.append("lookup_organization_name")
        self._maybe_fail_lookup()
        return self.organizations.get(organization_id)

    async def lookup_principal_names(self, principal_ids: List[str]) -> List[PrincipalRef]:
        self.calls.append("lookup_principal_names")
        self._maybe_fail_lookup()
        return [
            PrincipalRef(id=pid, name=self.principals[pid])
            for pid in principal_ids
            if pid in self.principals
        ]

    async def insert_record(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append("insert_record")
        self._insert_calls += 1

        if self._insert_calls in self.fail_on_call:
            raise PersistenceError(
                f"Insert call {self._insert_calls} rejected", code="injected_failure"
            )
        name = payload.get("name")
        if name in self.fail_on_names:
            raise PersistenceError(f"Insert of {name!r} rejected", code="injected_failure")

        self._check_constraints(payload)

        now = self._clock().isoformat()
        row = dict(payload)
        row["id"] = str(uuid.uuid4())
        row["created_at"] = now
        row["updated_at"] = now
        row.setdefault("deleted_at", None)
        self._rows[row["id"]] = row
        return copy.deepcopy(row)

    async def update_record(self, record_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append("update_record")
        row = self._rows.get(record_id)
        if row is None:
            raise PersistenceError(f"Opportunity {record_id} not found", code="not_found")

        updated = {**row, **fields}
        self._check_constraints(updated)
        updated["updated_at"] = self._clock().isoformat()
        self._rows[record_id] = updated
        return copy.deepcopy(updated)

    async def fetch_record(self, record_id: str) -> Optional[Dict[str, Any]]:
        self.calls.append("fetch_record")
        row = self._rows.get(record_id)
        return copy.deepcopy(row) if row is not None else None

    async def list_records(
        self, filters: Optional[OpportunityFilters] = None
    ) -> List[Dict[str, Any]]:
        self.calls.append("list_records")
        filters = filters or OpportunityFilters()
        rows = [
            row
            for row in self._rows.values()
            if row.get("deleted_at") is None and _matches(row, filters)
        ]

        # Nulls last ascending, first descending, as Postgres orders them
        rows.sort(
            key=lambda row: _sort_key(row, filters.sort_by),
            reverse=filters.sort_order == "desc",
        )
        if filters.limit:
            rows = rows[filters.offset : filters.offset + filters.limit]
        return [copy.deepcopy(row) for row in rows]

    def _maybe_fail_lookup(self) -> None:
        if self._transient_lookup_failures > 0:
            self._transient_lookup_failures -= 1
            raise PersistenceError("Lookup temporarily unavailable", code="unavailable")

    def _check_constraints(self, row: Dict[str, Any]) -> None:
        if not str(row.get("name") or "").strip():
            raise PersistenceError("name must not be empty", code="check_violation")

        probability = row.get("probability_percent")
        if probability is not None and not 0 <= probability <= 100:
            raise PersistenceError(
                "probability_percent must be between 0 and 100", code="check_violation"
            )

        if row.get("organization_id") not in self.organizations:
            raise PersistenceError(
                f"Organization {row.get('organization_id')} does not exist",
                code="foreign_key_violation",
            )


def _matches(row: Dict[str, Any], filters: OpportunityFilters) -> bool:
    if filters.search and filters.search.lower() not in str(row.get("name") or "").lower():
        return False
    if filters.stages and row.get("stage") not in {s.value for s in filters.stages}:
        return False
    if filters.contexts and row.get("context") not in {c.value for c in filters.contexts}:
        return False
    for field in ("organization_id", "principal_id", "product_id", "deal_owner"):
        wanted = getattr(filters, field)
        if wanted is not None and row.get(field) != wanted:
            return False
    if filters.is_won is not None and bool(row.get("is_won")) is not filters.is_won:
        return False

    probability = row.get("probability_percent")
    if filters.probability_min is not None and (
        probability is None or probability < filters.probability_min
    ):
        return False
    if filters.probability_max is not None and (
        probability is None or probability > filters.probability_max
    ):
        return False
    return True


def _sort_key(row: Dict[str, Any], field: str) -> tuple:
    value = row.get(field)
    return (value is None, 0 if value is None else value)
