"""
Pytest Configuration and Shared Fixtures.

This module contains fixtures available to all tests.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from pathlib import Path

import pytest

from opportunity_engine.adapters.console_logger import ConsoleAuditLogger
from opportunity_engine.adapters.memory_gateway import InMemoryPersistenceGateway
from opportunity_engine.adapters.metrics_collector import InMemoryMetricsCollector
from opportunity_engine.config.models import EngineConfig
from opportunity_engine.domain.entities import BatchFormData, ContextTag, OpportunityStage
from opportunity_engine.pipeline.batch_orchestrator import BatchOrchestrator
from opportunity_engine.records.record_service import OpportunityService
from opportunity_engine.validation.payload_validator import PayloadValidator

FIXED_NOW = datetime(2025, 3, 12, 15, 30, tzinfo=timezone.utc)
FIXED_TODAY = FIXED_NOW.date()


@pytest.fixture
def sample_config_path() -> Path:
    """Path to sample configuration file."""
    return Path(__file__).parent / "fixtures" / "sample_config.yaml"


@pytest.fixture
def fixed_now() -> datetime:
    """Clock value shared by the gateway and record service fixtures."""
    return FIXED_NOW


@pytest.fixture
def default_config() -> EngineConfig:
    """Create default engine configuration."""
    return EngineConfig()


@pytest.fixture
def memory_gateway() -> InMemoryPersistenceGateway:
    """In-memory gateway with the sample organizations and principals."""
    return InMemoryPersistenceGateway(clock=lambda: FIXED_NOW)


@pytest.fixture
def console_logger() -> ConsoleAuditLogger:
    """Create console logger for testing."""
    return ConsoleAuditLogger(verbose=False)


@pytest.fixture
def metrics_collector() -> InMemoryMetricsCollector:
    """Create metrics collector for testing."""
    return InMemoryMetricsCollector()


@pytest.fixture
def validator() -> PayloadValidator:
    """Validator with a fixed 'today' for close-date checks."""
    return PayloadValidator(today=lambda: FIXED_TODAY)


@pytest.fixture
def record_service(
    memory_gateway: InMemoryPersistenceGateway,
    validator: PayloadValidator,
) -> OpportunityService:
    """Record service over the in-memory gateway."""
    return OpportunityService(memory_gateway, validator=validator, clock=lambda: FIXED_NOW)


@pytest.fixture
def orchestrator(
    memory_gateway: InMemoryPersistenceGateway,
    record_service: OpportunityService,
    console_logger: ConsoleAuditLogger,
    metrics_collector: InMemoryMetricsCollector,
    validator: PayloadValidator,
) -> BatchOrchestrator:
    """Fully wired orchestrator over the in-memory gateway."""
    return BatchOrchestrator(
        gateway=memory_gateway,
        record_service=record_service,
        audit_logger=console_logger,
        metrics_collector=metrics_collector,
        validator=validator,
    )


@pytest.fixture
def acme_form() -> BatchFormData:
    """Acme Foods with Kaufholds and Mrs Ressler's, new lead outreach."""
    return BatchFormData(
        organization_id="org-acme",
        principal_ids=["prin-kaufholds", "prin-ressler"],
        stage=OpportunityStage.NEW_LEAD,
        context=ContextTag.NEW_LEAD_OUTREACH,
    )
