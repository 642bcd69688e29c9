"""
Unit Tests for BatchOrchestrator.

Test Aspects Covered:
    ✅ Business Logic: One create per principal, order preserved
    ✅ Edge Cases: Unknown principals, cancellation, manual naming
    ✅ Error Handling: Per-principal failures collected, lookups fail fast
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from opportunity_engine.adapters.memory_gateway import InMemoryPersistenceGateway
from opportunity_engine.adapters.metrics_collector import InMemoryMetricsCollector
from opportunity_engine.domain.entities import (
    BatchFormData,
    ContextTag,
    Opportunity,
    OpportunityStage,
    PrincipalRef,
)
from opportunity_engine.interfaces.persistence_gateway import PersistenceError
from opportunity_engine.pipeline.batch_orchestrator import (
    BATCH_CANCELLED_MESSAGE,
    PRINCIPAL_NOT_FOUND_MESSAGE,
    UNKNOWN_PRINCIPAL_NAME,
    BatchOrchestrator,
)
from opportunity_engine.records.record_service import OpportunityService
from opportunity_engine.resilience.error_handler import (
    UNKNOWN_ERROR_MESSAGE,
    ErrorHandler,
    RetryConfig,
    RetryExhausted,
)
from opportunity_engine.validation.payload_validator import ValidationError


def _mock_gateway() -> AsyncMock:
    gateway = AsyncMock()
    gateway.lookup_organization_name.return_value = "Acme Foods"
    gateway.lookup_principal_names.return_value = [
        PrincipalRef(id="p1", name="Kaufholds"),
        PrincipalRef(id="p2", name="Mrs Ressler's"),
        PrincipalRef(id="p3", name="Annasea"),
    ]
    return gateway


def _record(payload) -> Opportunity:
    return Opportunity(id=f"opp-{payload.principal_id}", **payload.model_dump(exclude={"kind"}))


def _orchestrator(gateway, record_service, **kwargs) -> BatchOrchestrator:
    return BatchOrchestrator(
        gateway=gateway,
        record_service=record_service,
        audit_logger=Mock(),
        metrics_collector=InMemoryMetricsCollector(),
        **kwargs,
    )


@pytest.fixture
def record_service_mock() -> Mock:
    service = Mock(spec=OpportunityService)
    service.create_opportunity = AsyncMock(side_effect=_record)
    return service


class TestCreateBatch:
    """Test cases for create_batch_opportunities()."""

    @pytest.mark.asyncio
    async def test_one_create_per_principal_in_order(self, record_service_mock: Mock) -> None:
        """
        SCENARIO: Three principals, all succeed
        EXPECTED: Three creates in input order with generated names
        """
        # Arrange
        orchestrator = _orchestrator(_mock_gateway(), record_service_mock)
        form = BatchFormData(organization_id="org-acme", principal_ids=["p3", "p1", "p2"])

        # Act
        result = await orchestrator.create_batch_opportunities(form)

        # Assert
        payloads = [c.args[0] for c in record_service_mock.create_opportunity.await_args_list]
        assert [p.principal_id for p in payloads] == ["p3", "p1", "p2"]
        assert payloads[0].name == "Acme Foods - Annasea - New Lead Outreach"
        assert all(p.auto_generated_name for p in payloads)
        assert all(p.name_template == "{organization} - {principal} - New Lead Outreach" for p in payloads)
        assert result.total_created == 3
        assert result.total_failed == 0
        assert result.success is True
        assert result.correlation_id

    @pytest.mark.asyncio
    async def test_shared_fields_copied_to_every_payload(self, record_service_mock: Mock) -> None:
        """
        SCENARIO: Form with stage, owner, notes and product
        EXPECTED: Every payload carries them; probability left to the service
        """
        orchestrator = _orchestrator(_mock_gateway(), record_service_mock)
        form = BatchFormData(
            organization_id="org-acme",
            principal_ids=["p1", "p2"],
            stage=OpportunityStage.SAMPLE_VISIT_OFFERED,
            context=ContextTag.SAMPLING,
            deal_owner="Sam",
            notes="Spring menu",
            product_id="prod-9",
        )

        await orchestrator.create_batch_opportunities(form)

        for call in record_service_mock.create_opportunity.await_args_list:
            payload = call.args[0]
            assert payload.stage is OpportunityStage.SAMPLE_VISIT_OFFERED
            assert payload.context is ContextTag.SAMPLING
            assert payload.deal_owner == "Sam"
            assert payload.notes == "Spring menu"
            assert payload.product_id == "prod-9"
            assert payload.probability_percent is None

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_batch(self, record_service_mock: Mock) -> None:
        """
        SCENARIO: Second of three creates raises PersistenceError
        EXPECTED: 2 created, 1 failure with the principal's name and error
        """
        # Arrange
        def create(payload):
            if payload.principal_id == "p2":
                raise PersistenceError("duplicate key value", code="23505")
            return _record(payload)

        record_service_mock.create_opportunity.side_effect = create
        orchestrator = _orchestrator(_mock_gateway(), record_service_mock)
        form = BatchFormData(organization_id="org-acme", principal_ids=["p1", "p2", "p3"])

        # Act
        result = await orchestrator.create_batch_opportunities(form)

        # Assert
        assert [r.principal_id for r in result.created_opportunities] == ["p1", "p3"]
        assert len(result.failed_creations) == 1
        failure = result.failed_creations[0]
        assert failure.principal_id == "p2"
        assert failure.principal_name == "Mrs Ressler's"
        assert failure.error == "duplicate key value"
        assert result.success is True

    @pytest.mark.asyncio
    async def test_unexpected_error_reported_generically(self, record_service_mock: Mock) -> None:
        """
        SCENARIO: Create raises a non-domain exception
        EXPECTED: Failure carries the generic unknown-error message
        """
        record_service_mock.create_opportunity.side_effect = KeyError("boom")
        orchestrator = _orchestrator(_mock_gateway(), record_service_mock)
        form = BatchFormData(organization_id="org-acme", principal_ids=["p1"])

        result = await orchestrator.create_batch_opportunities(form)

        assert result.failed_creations[0].error == UNKNOWN_ERROR_MESSAGE
        assert result.success is False

    @pytest.mark.asyncio
    async def test_unknown_principal_is_a_failure(self, record_service_mock: Mock) -> None:
        """
        SCENARIO: One requested principal is not returned by the lookup
        EXPECTED: Failure "Principal not found", others still created
        """
        orchestrator = _orchestrator(_mock_gateway(), record_service_mock)
        form = BatchFormData(organization_id="org-acme", principal_ids=["p1", "ghost"])

        result = await orchestrator.create_batch_opportunities(form)

        assert result.total_created == 1
        assert result.failed_creations[0].principal_id == "ghost"
        assert result.failed_creations[0].principal_name == UNKNOWN_PRINCIPAL_NAME
        assert result.failed_creations[0].error == PRINCIPAL_NOT_FOUND_MESSAGE
        assert record_service_mock.create_opportunity.await_count == 1

    @pytest.mark.asyncio
    async def test_manual_name_mode(self, record_service_mock: Mock) -> None:
        """
        SCENARIO: auto_generate_name off with a fixed name
        EXPECTED: Every payload uses the fixed name, no template
        """
        orchestrator = _orchestrator(_mock_gateway(), record_service_mock)
        form = BatchFormData(
            organization_id="org-acme",
            principal_ids=["p1", "p2"],
            auto_generate_name=False,
            name="Spring menu push",
        )

        await orchestrator.create_batch_opportunities(form)

        for call in record_service_mock.create_opportunity.await_args_list:
            payload = call.args[0]
            assert payload.name == "Spring menu push"
            assert payload.auto_generated_name is False
            assert payload.name_template is None

    @pytest.mark.asyncio
    async def test_invalid_form_makes_no_calls(self, record_service_mock: Mock) -> None:
        """
        SCENARIO: Empty principal list
        EXPECTED: ValidationError, no lookups, no creates
        """
        gateway = _mock_gateway()
        orchestrator = _orchestrator(gateway, record_service_mock)

        with pytest.raises(ValidationError):
            await orchestrator.create_batch_opportunities(
                BatchFormData(organization_id="org-acme")
            )

        gateway.lookup_organization_name.assert_not_awaited()
        record_service_mock.create_opportunity.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_organization_raises(self, record_service_mock: Mock) -> None:
        """
        SCENARIO: Organization lookup returns None
        EXPECTED: ValidationError on organization_id, nothing created
        """
        gateway = _mock_gateway()
        gateway.lookup_organization_name.return_value = None
        orchestrator = _orchestrator(gateway, record_service_mock)

        with pytest.raises(ValidationError) as exc_info:
            await orchestrator.create_batch_opportunities(
                BatchFormData(organization_id="org-x", principal_ids=["p1"])
            )

        assert exc_info.value.field == "organization_id"
        record_service_mock.create_opportunity.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_lookup_failure_propagates(self, record_service_mock: Mock) -> None:
        """
        SCENARIO: Principal lookup raises PersistenceError (no retry)
        EXPECTED: Same error raised, nothing created
        """
        gateway = _mock_gateway()
        gateway.lookup_principal_names.side_effect = PersistenceError("timeout")
        orchestrator = _orchestrator(gateway, record_service_mock)

        with pytest.raises(PersistenceError, match="timeout"):
            await orchestrator.create_batch_opportunities(
                BatchFormData(organization_id="org-acme", principal_ids=["p1"])
            )

        record_service_mock.create_opportunity.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_lookup_retried_with_error_handler(self, record_service_mock: Mock) -> None:
        """
        SCENARIO: Organization lookup fails once, error handler configured
        EXPECTED: Retried, batch succeeds
        """
        gateway = _mock_gateway()
        gateway.lookup_organization_name.side_effect = [PersistenceError("blip"), "Acme Foods"]
        handler = ErrorHandler(RetryConfig(max_attempts=2), sleep=AsyncMock())
        orchestrator = _orchestrator(gateway, record_service_mock, error_handler=handler)

        result = await orchestrator.create_batch_opportunities(
            BatchFormData(organization_id="org-acme", principal_ids=["p1"])
        )

        assert result.total_created == 1
        assert gateway.lookup_organization_name.await_count == 2

    @pytest.mark.asyncio
    async def test_lookup_retry_exhausted(self, record_service_mock: Mock) -> None:
        """
        SCENARIO: Lookup keeps failing past max attempts
        EXPECTED: RetryExhausted raised
        """
        gateway = _mock_gateway()
        gateway.lookup_organization_name.side_effect = PersistenceError("down")
        handler = ErrorHandler(RetryConfig(max_attempts=2), sleep=AsyncMock())
        orchestrator = _orchestrator(gateway, record_service_mock, error_handler=handler)

        with pytest.raises(RetryExhausted):
            await orchestrator.create_batch_opportunities(
                BatchFormData(organization_id="org-acme", principal_ids=["p1"])
            )

    @pytest.mark.asyncio
    async def test_cancellation_marks_remaining(self, record_service_mock: Mock) -> None:
        """
        SCENARIO: Cancel event set after the first create
        EXPECTED: 1 created, remaining principals failed as cancelled
        """
        # Arrange
        cancel = asyncio.Event()

        def create(payload):
            cancel.set()
            return _record(payload)

        record_service_mock.create_opportunity.side_effect = create
        orchestrator = _orchestrator(_mock_gateway(), record_service_mock)
        form = BatchFormData(organization_id="org-acme", principal_ids=["p1", "p2", "p3"])

        # Act
        result = await orchestrator.create_batch_opportunities(form, cancel_event=cancel)

        # Assert
        assert result.total_created == 1
        assert [f.principal_id for f in result.failed_creations] == ["p2", "p3"]
        assert all(f.error == BATCH_CANCELLED_MESSAGE for f in result.failed_creations)
        assert result.total_requested == 3

    @pytest.mark.asyncio
    async def test_metrics_and_audit_recorded(self, record_service_mock: Mock) -> None:
        """
        SCENARIO: Batch of two
        EXPECTED: Duration and counts recorded, audit start/end logged
        """
        audit = Mock()
        metrics = InMemoryMetricsCollector()
        orchestrator = BatchOrchestrator(
            gateway=_mock_gateway(),
            record_service=record_service_mock,
            audit_logger=audit,
            metrics_collector=metrics,
        )

        result = await orchestrator.create_batch_opportunities(
            BatchFormData(organization_id="org-acme", principal_ids=["p1", "p2"])
        )

        collected = metrics.get_metrics()
        assert collected["opportunities_created_total"]["last"] == 2
        assert collected["opportunities_failed_total"]["last"] == 0
        assert "batch_duration_seconds" in collected
        audit.set_correlation_id.assert_called_once_with(result.correlation_id)
        audit.log_batch_start.assert_called_once()
        assert audit.log_record_created.call_count == 2
        audit.log_batch_end.assert_called_once()


class TestPreviewBatch:
    """Test cases for preview_batch()."""

    @pytest.mark.asyncio
    async def test_preview_writes_nothing(self) -> None:
        """
        SCENARIO: Preview for two known principals and one unknown
        EXPECTED: Two previews in order; no records inserted
        """
        # Arrange
        gateway = InMemoryPersistenceGateway()
        orchestrator = _orchestrator(gateway, OpportunityService(gateway))
        form = BatchFormData(
            organization_id="org-acme",
            principal_ids=["prin-ressler", "ghost", "prin-kaufholds"],
            context=ContextTag.FOOD_SHOW,
        )

        # Act
        previews = await orchestrator.preview_batch(form)

        # Assert
        assert [p.generated_name for p in previews] == [
            "Acme Foods - Mrs Ressler's - Food Show",
            "Acme Foods - Kaufholds - Food Show",
        ]
        assert gateway.rows == []
        assert "insert_record" not in gateway.calls

    @pytest.mark.asyncio
    async def test_preview_matches_persisted_names(self) -> None:
        """
        SCENARIO: Preview then create with the same form
        EXPECTED: Persisted names equal previewed names
        """
        gateway = InMemoryPersistenceGateway()
        orchestrator = _orchestrator(gateway, OpportunityService(gateway))
        form = BatchFormData(
            organization_id="org-harbor",
            principal_ids=["prin-annasea", "prin-kaufholds"],
            context=ContextTag.CUSTOM,
            name_template="{principal} tasting @ {organization}",
        )

        previews = await orchestrator.preview_batch(form)
        result = await orchestrator.create_batch_opportunities(form)

        assert [p.generated_name for p in previews] == [
            r.name for r in result.created_opportunities
        ]
        assert previews[0].generated_name == "Annasea tasting @ Harbor Grill"
