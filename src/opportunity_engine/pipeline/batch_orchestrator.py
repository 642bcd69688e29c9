"""
Batch Orchestrator - One Opportunity per Principal.

The BatchOrchestrator turns one batch form into N single-record creates.
Creates run strictly in the caller's principal order, one at a time;
a failure for one principal is recorded and the loop moves on. Nothing
is rolled back.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional, Tuple, TypeVar

from opportunity_engine.config.models import EngineConfig
from opportunity_engine.domain.entities import (
    BatchCreationResult,
    BatchFormData,
    FailedCreation,
    Opportunity,
    PrincipalRef,
)
from opportunity_engine.domain.value_objects import NamePreview, OpportunityCreate
from opportunity_engine.interfaces.audit_logger import AuditLogger
from opportunity_engine.interfaces.metrics_collector import MetricsCollector
from opportunity_engine.interfaces.persistence_gateway import PersistenceGateway
from opportunity_engine.naming.name_generator import NameGenerator, clean_name
from opportunity_engine.records.record_service import OpportunityService
from opportunity_engine.resilience.error_handler import ErrorHandler, wrap_unexpected
from opportunity_engine.validation.payload_validator import (
    PayloadValidator,
    ValidationError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

UNKNOWN_PRINCIPAL_NAME = "Unknown Principal"
PRINCIPAL_NOT_FOUND_MESSAGE = "Principal not found"
BATCH_CANCELLED_MESSAGE = "Batch cancelled before creation"


@dataclass(frozen=True)
class PlannedCreation:
    """One row of the batch plan, fixed before the first insert."""

    principal_id: str
    principal_name: str
    preview: Optional[NamePreview] = None
    error: Optional[str] = None


class BatchOrchestrator:
    """Creates one opportunity per principal and aggregates the outcomes."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        record_service: OpportunityService,
        audit_logger: AuditLogger,
        metrics_collector: MetricsCollector,
        config: Optional[EngineConfig] = None,
        name_generator: Optional[NameGenerator] = None,
        error_handler: Optional[ErrorHandler] = None,
        validator: Optional[PayloadValidator] = None,
    ) -> None:
        """
        Initialize orchestrator with all dependencies.

        Args:
            gateway: Used for the read-only name lookups
            record_service: Performs each single-record create
            audit_logger: For audit trail
            metrics_collector: For batch timings and counts
            config: Engine configuration (defaults if omitted)
            name_generator: Name generator (built from config if omitted)
            error_handler: Retries lookups when provided
            validator: Form validator (built from config if omitted)
        """
        self.config = config or EngineConfig()
        self.gateway = gateway
        self.record_service = record_service
        self.audit_logger = audit_logger
        self.metrics_collector = metrics_collector
        self.name_generator = name_generator or NameGenerator(self.config.naming)
        self.error_handler = error_handler
        self.validator = validator or PayloadValidator(
            naming_config=self.config.naming,
            batch_config=self.config.batch,
        )

    async def preview_batch(self, form: BatchFormData) -> List[NamePreview]:
        """
        Resolve names and return the previews a batch would use.

        No records are written. Principals the lookup does not know, or
        whose name cannot produce a valid name, are left out.

        Raises:
            ValidationError: Form is invalid or the organization is unknown
        """
        self.validator.validate_form(form)
        organization_name, principals = await self._resolve_names(form)
        plan = self._plan(form, organization_name, principals)
        return [item.preview for item in plan if item.preview is not None]

    async def create_batch_opportunities(
        self,
        form: BatchFormData,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> BatchCreationResult:
        """
        Create one opportunity per principal in the form.

        Args:
            form: Batch form
            cancel_event: If set, checked before each create; the current
                and remaining principals are then reported as cancelled

        Returns:
            BatchCreationResult; ``success`` is False only when nothing
            was created

        Raises:
            ValidationError: Form is invalid or the organization is unknown
            PersistenceError: Name lookups failed (nothing was written)
        """
        start_time = time.perf_counter()
        correlation_id = str(uuid.uuid4())
        self.audit_logger.set_correlation_id(correlation_id)

        # 1. Validate before any network call
        self.validator.validate_form(form)

        self.audit_logger.log_batch_start(
            form.organization_id,
            len(form.principal_ids),
            {"stage": form.stage.value, "context": form.context.value},
        )

        # 2. Read-only lookups
        organization_name, principals = await self._resolve_names(form)

        # 3. Names for every principal, computed once
        plan = self._plan(form, organization_name, principals)

        # 4. Sequential creates
        created: List[Opportunity] = []
        failed: List[FailedCreation] = []

        for index, item in enumerate(plan):
            if cancel_event is not None and cancel_event.is_set():
                remaining = plan[index:]
                logger.warning(
                    f"Batch {correlation_id} cancelled with {len(remaining)} principals pending"
                )
                for pending in remaining:
                    self._record_failure(failed, pending, BATCH_CANCELLED_MESSAGE)
                break

            if item.error is not None:
                self._record_failure(failed, item, item.error)
                continue

            payload = self._build_payload(form, item)
            try:
                record = await self.record_service.create_opportunity(payload)
            except Exception as e:
                error = wrap_unexpected(e, "create_opportunity")
                self._record_failure(failed, item, str(error))
                continue

            created.append(record)
            self.audit_logger.log_record_created(item.principal_id, record.id, record.name)

        # 5. Aggregate
        result = BatchCreationResult(
            created_opportunities=created,
            failed_creations=failed,
            correlation_id=correlation_id,
        )

        duration = time.perf_counter() - start_time
        self.metrics_collector.record_timing("batch_duration_seconds", duration)
        self.metrics_collector.record_count("opportunities_created_total", result.total_created)
        self.metrics_collector.record_count("opportunities_failed_total", result.total_failed)
        self.audit_logger.log_batch_end(
            result.total_created,
            result.total_failed,
            duration,
            {"organization_id": form.organization_id},
        )

        if result.success:
            logger.info(f"{result.summary} for organization {form.organization_id}")
        else:
            logger.error(
                f"Batch for organization {form.organization_id} created nothing: "
                f"{result.total_failed} failures"
            )
        return result

    async def _resolve_names(
        self, form: BatchFormData
    ) -> Tuple[str, Dict[str, PrincipalRef]]:
        """Look up the organization name and principal names."""
        organization_name = await self._lookup(
            lambda: self.gateway.lookup_organization_name(form.organization_id),
            "lookup_organization_name",
        )
        if organization_name is None:
            raise ValidationError(
                f"Organization {form.organization_id} not found", field="organization_id"
            )
        if form.auto_generate_name and not clean_name(organization_name):
            raise ValidationError(
                f"Organization {form.organization_id} has no name", field="organization_id"
            )

        refs = await self._lookup(
            lambda: self.gateway.lookup_principal_names(list(form.principal_ids)),
            "lookup_principal_names",
        )
        return organization_name, {ref.id: ref for ref in refs}

    async def _lookup(self, func: Callable[[], Awaitable[T]], operation_name: str) -> T:
        try:
            if self.error_handler is not None:
                return await self.error_handler.retry(func, operation_name)
            return await func()
        except Exception as e:
            raise wrap_unexpected(e, operation_name)

    def _plan(
        self,
        form: BatchFormData,
        organization_name: str,
        principals: Dict[str, PrincipalRef],
    ) -> List[PlannedCreation]:
        """One entry per requested principal, in the caller's order."""
        plan: List[PlannedCreation] = []
        for principal_id in form.principal_ids:
            ref = principals.get(principal_id)
            if ref is None:
                plan.append(PlannedCreation(
                    principal_id=principal_id,
                    principal_name=UNKNOWN_PRINCIPAL_NAME,
                    error=PRINCIPAL_NOT_FOUND_MESSAGE,
                ))
                continue

            if not form.auto_generate_name:
                plan.append(PlannedCreation(principal_id=ref.id, principal_name=ref.name))
                continue

            try:
                preview = self.name_generator.preview(
                    organization_name, ref, form.context, form.name_template
                )
            except ValidationError as e:
                plan.append(PlannedCreation(
                    principal_id=ref.id, principal_name=ref.name, error=e.message
                ))
                continue

            plan.append(PlannedCreation(
                principal_id=ref.id, principal_name=ref.name, preview=preview
            ))
        return plan

    def _build_payload(self, form: BatchFormData, item: PlannedCreation) -> OpportunityCreate:
        if form.auto_generate_name and item.preview is not None:
            name = item.preview.generated_name
            name_template: Optional[str] = item.preview.name_template
        else:
            name = form.name or ""
            name_template = None

        return OpportunityCreate(
            name=name,
            organization_id=form.organization_id,
            principal_id=item.principal_id,
            stage=form.stage,
            product_id=form.product_id,
            context=form.context,
            probability_percent=form.probability_percent,
            expected_close_date=form.expected_close_date,
            deal_owner=form.deal_owner,
            notes=form.notes,
            auto_generated_name=form.auto_generate_name,
            name_template=name_template,
        )

    def _record_failure(
        self, failed: List[FailedCreation], item: PlannedCreation, error: str
    ) -> None:
        failed.append(FailedCreation(
            principal_id=item.principal_id,
            principal_name=item.principal_name,
            error=error,
        ))
        self.audit_logger.log_record_failed(item.principal_id, item.principal_name, error)
