"""
Persistence Gateway Protocol.

Defines the abstract interface to the relational backend. Everything
the engine persists or looks up goes through this port; concrete
adapters (in-memory, REST) live in ``opportunity_engine.adapters``.

The gateway is responsible for:
    - Resolving organization and principal display names
    - Inserting and updating opportunity rows
    - Fetching and listing opportunity rows

Design Notes:
    - All methods are coroutines: each call is one suspend point
    - Rows are plain JSON-compatible dicts; the domain layer parses them
    - Failures are raised as PersistenceError, never returned
    - Access control is the backend's concern, not the gateway's
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from opportunity_engine.domain.entities import PrincipalRef
    from opportunity_engine.domain.value_objects import OpportunityFilters


class PersistenceError(Exception):
    """Raised when the backend rejects or fails an operation."""

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


@runtime_checkable
class PersistenceGateway(Protocol):
    """Abstract interface for the relational backend."""

    async def lookup_organization_name(self, organization_id: str) -> Optional[str]:
        """
        Resolve an organization's display name.

        Returns:
            The name, or None if no such organization exists
        """
        ...

    async def lookup_principal_names(self, principal_ids: List[str]) -> List[PrincipalRef]:
        """
        Resolve display names for a set of principals.

        Unknown ids are omitted; order of the result is unspecified.
        """
        ...

    async def insert_record(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert an opportunity row.

        Returns:
            The stored row, including its assigned ``id``
        """
        ...

    async def update_record(self, record_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """
        Update fields of an existing row.

        Returns:
            The row after the update
        """
        ...

    async def fetch_record(self, record_id: str) -> Optional[Dict[str, Any]]:
        """Fetch a single row, or None if it does not exist."""
        ...

    async def list_records(
        self, filters: Optional[OpportunityFilters] = None
    ) -> List[Dict[str, Any]]:
        """
        List rows that are not soft-deleted.

        With ``filters``, only matching rows are returned, sorted and
        paged as requested. Without, every live row, newest first.
        """
        ...
