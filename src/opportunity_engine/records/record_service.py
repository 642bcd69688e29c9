"""
Opportunity Record Service - Single-Record Operations.

Thin layer over the persistence gateway used directly by the UI and by
the batch orchestrator:
    - create with stage-derived default probability
    - general field update (never touches stage or won flag); a context
      change re-renders an auto-generated name
    - stage transition (always resets probability to the stage default)
    - soft delete (marks ``deleted_at``, nothing is removed)
    - filtered, sorted, paged listing

Soft-deleted records are invisible: reads, updates and a second delete
all fail with ``not_found``.

Single-record operations fail loudly: ValidationError before any
gateway call, PersistenceError from the gateway, UnknownError for
anything else.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar, Union

from pydantic import ValidationError as PydanticValidationError

from opportunity_engine.domain.entities import ContextTag, Opportunity, OpportunityStage
from opportunity_engine.domain.value_objects import (
    OpportunityCreate,
    OpportunityFilters,
    OpportunityUpdate,
    RecordPayload,
    StageTransition,
)
from opportunity_engine.interfaces.persistence_gateway import (
    PersistenceError,
    PersistenceGateway,
)
from opportunity_engine.naming.name_generator import NameGenerator, is_auto_generated_name
from opportunity_engine.resilience.error_handler import wrap_unexpected
from opportunity_engine.validation.payload_validator import (
    PayloadValidator,
    ValidationError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OpportunityService:
    """Create, update, transition and soft-delete opportunities."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        validator: Optional[PayloadValidator] = None,
        clock: Optional[Callable[[], datetime]] = None,
        name_generator: Optional[NameGenerator] = None,
    ) -> None:
        """
        Initialize the service.

        Args:
            gateway: Persistence gateway (passed in, never a global client)
            validator: Payload validator (default limits if omitted)
            clock: Timestamp source for soft deletes
            name_generator: Renames auto-named records on context change
        """
        self.gateway = gateway
        self.validator = validator or PayloadValidator()
        self._clock = clock or _utcnow
        self.name_generator = name_generator or NameGenerator()

    async def create_opportunity(self, payload: OpportunityCreate) -> Opportunity:
        """
        Insert a single opportunity.

        Probability defaults to the stage default when not supplied; the
        won flag follows the stage.

        Raises:
            ValidationError: Payload is invalid (no gateway call is made)
            PersistenceError: Gateway rejected the insert
            UnknownError: Any other failure
        """
        self.validator.validate_create(payload)

        row = payload.to_row()
        row["name"] = payload.name.strip()
        if payload.probability_percent is None:
            row["probability_percent"] = payload.stage.default_probability
        row["is_won"] = payload.stage is OpportunityStage.CLOSED_WON

        stored = await self._gateway_call(
            lambda: self.gateway.insert_record(row), "insert_record"
        )
        record = self._to_record(stored)
        logger.info(f"Created opportunity {record.id}: {record.name!r}")
        return record

    async def update_opportunity(
        self, record_id: str, payload: OpportunityUpdate
    ) -> Opportunity:
        """
        Update general fields. Only fields explicitly set are sent.

        Probability may be set independently of stage here. When the
        context changes and no name is given, an auto-generated name is
        re-rendered with the new context's template.

        Raises:
            ValidationError: Payload is invalid
            PersistenceError: ``not_found`` if missing or soft-deleted
        """
        self.validator.validate_update(payload)
        current = await self.get_opportunity(record_id)

        changes = payload.changes()
        if "name" in changes:
            changes["name"] = changes["name"].strip()
        elif "context" in changes:
            changes.update(self._renamed_for_context(current, payload.context))

        stored = await self._gateway_call(
            lambda: self.gateway.update_record(record_id, changes), "update_record"
        )
        record = self._to_record(stored)
        logger.info(f"Updated opportunity {record_id}: {sorted(changes)}")
        return record

    async def update_opportunity_stage(
        self, record_id: str, stage: Union[OpportunityStage, str]
    ) -> Opportunity:
        """
        Move an opportunity to ``stage``.

        Probability is always reset to the new stage's default, and the
        won flag is set exactly when the new stage is Closed - Won.

        Raises:
            ValidationError: Unknown stage, or the record is already
                Closed - Won and ``stage`` is a different stage
            PersistenceError: Record missing or update rejected
        """
        new_stage = self._resolve_stage(stage)
        current = await self.get_opportunity(record_id)

        if current.stage.is_terminal and new_stage is not current.stage:
            raise ValidationError(
                f"Opportunity {record_id} is {current.stage.value}; "
                f"no transition to {new_stage.value} is defined",
                field="stage",
            )

        fields: Dict[str, Any] = {
            "stage": new_stage.value,
            "probability_percent": new_stage.default_probability,
            "is_won": new_stage is OpportunityStage.CLOSED_WON,
        }
        stored = await self._gateway_call(
            lambda: self.gateway.update_record(record_id, fields), "update_record"
        )
        record = self._to_record(stored)
        logger.info(
            f"Opportunity {record_id} moved {current.stage.value} -> {new_stage.value}"
        )
        return record

    async def delete_opportunity(self, record_id: str) -> bool:
        """
        Soft delete: mark ``deleted_at``. Related rows are untouched.

        Raises:
            PersistenceError: ``not_found`` if missing or already deleted
        """
        await self.get_opportunity(record_id)
        deleted_at = self._clock().isoformat()
        await self._gateway_call(
            lambda: self.gateway.update_record(record_id, {"deleted_at": deleted_at}),
            "update_record",
        )
        logger.info(f"Soft-deleted opportunity {record_id}")
        return True

    async def get_opportunity(self, record_id: str) -> Opportunity:
        """
        Fetch a live opportunity.

        Raises:
            PersistenceError: ``not_found`` if missing or soft-deleted
        """
        row = await self._gateway_call(
            lambda: self.gateway.fetch_record(record_id), "fetch_record"
        )
        if row is None:
            raise PersistenceError(f"Opportunity {record_id} not found", code="not_found")
        record = self._to_record(row)
        if record.is_deleted:
            raise PersistenceError(f"Opportunity {record_id} not found", code="not_found")
        return record

    async def list_opportunities(
        self, filters: Optional[OpportunityFilters] = None
    ) -> List[Opportunity]:
        """Live opportunities matching ``filters`` (all of them if omitted)."""
        rows = await self._gateway_call(
            lambda: self.gateway.list_records(filters), "list_records"
        )
        return [r for r in (self._to_record(row) for row in rows) if not r.is_deleted]

    async def apply(
        self, payload: RecordPayload, record_id: Optional[str] = None
    ) -> Opportunity:
        """Dispatch any write payload to the matching operation."""
        if isinstance(payload, OpportunityCreate):
            return await self.create_opportunity(payload)
        if record_id is None:
            raise ValidationError(f"{payload.kind} requires a record id", field="id")
        if isinstance(payload, StageTransition):
            return await self.update_opportunity_stage(record_id, payload.stage)
        return await self.update_opportunity(record_id, payload)

    async def _gateway_call(self, func: Callable[[], Awaitable[T]], operation_name: str) -> T:
        try:
            return await func()
        except Exception as e:
            raise wrap_unexpected(e, operation_name)

    def _renamed_for_context(
        self, current: Opportunity, context: Optional[ContextTag]
    ) -> Dict[str, Any]:
        """Name fields to write when ``current`` moves to ``context``; empty if kept."""
        if (
            context is None
            or context is ContextTag.CUSTOM
            or context is current.context
            or not current.auto_generated_name
            or not is_auto_generated_name(current.name, current.name_template)
        ):
            return {}
        renamed = self.name_generator.update_name(
            current.name, current.name_template, context_tag=context
        )
        logger.debug(f"Renaming {current.id}: {current.name!r} -> {renamed.name!r}")
        return {"name": renamed.name, "name_template": renamed.template}

    def _resolve_stage(self, stage: Union[OpportunityStage, str]) -> OpportunityStage:
        if isinstance(stage, OpportunityStage):
            return stage
        try:
            return OpportunityStage(stage)
        except ValueError:
            raise ValidationError(f"Invalid stage: {stage!r}", field="stage") from None

    def _to_record(self, row: Dict[str, Any]) -> Opportunity:
        try:
            return Opportunity.model_validate(row)
        except PydanticValidationError as e:
            raise PersistenceError(
                f"Backend returned a malformed opportunity row: {e.error_count()} errors",
                code="malformed_row",
            ) from e
