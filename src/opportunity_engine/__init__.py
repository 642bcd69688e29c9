"""
Opportunity Engine - Batch Opportunity Creation and Naming.

Creates one sales opportunity per selected principal for a customer
organization in a food-service CRM, with deterministic auto-generated
names, stage-derived default probabilities and partial-success batch
semantics.

Architecture:
    - Hexagonal Architecture (Ports & Adapters)
    - Dependency Injection for testability
    - Configuration-driven behavior via YAML

Main Components:
    - domain: Stages, context tags, Opportunity, batch form/result
    - naming: Template-based name generation and previews
    - records: Single-record create / update / stage transition / delete
    - pipeline: BatchOrchestrator
    - analytics: Pipeline KPIs
    - adapters: In-memory and PostgREST gateways, console logger, metrics
    - config: Configuration models and loaders

Example:
    >>> from opportunity_engine import create_orchestrator
    >>> from opportunity_engine.adapters import InMemoryPersistenceGateway
    >>> orchestrator = create_orchestrator(InMemoryPersistenceGateway())
    >>> result = await orchestrator.create_batch_opportunities(form)
    >>> print(result.summary)

"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from opportunity_engine.config.models import EngineConfig
    from opportunity_engine.interfaces.audit_logger import AuditLogger
    from opportunity_engine.interfaces.metrics_collector import MetricsCollector
    from opportunity_engine.interfaces.persistence_gateway import PersistenceGateway
    from opportunity_engine.pipeline.batch_orchestrator import BatchOrchestrator

__version__ = "0.1.0"


def configure_logging(
    level: int = logging.INFO,
    format: str = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
) -> None:
    """
    Configure logging for the Opportunity Engine.

    Call this at application startup to see log messages.
    By default, only WARNING and above are visible.

    Args:
        level: Logging level (default: INFO)
        format: Log message format

    Example:
        >>> import opportunity_engine
        >>> opportunity_engine.configure_logging(logging.DEBUG)
    """
    logging.basicConfig(
        level=level,
        format=format,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("opportunity_engine").setLevel(level)


def create_orchestrator(
    gateway: PersistenceGateway,
    config: Optional[EngineConfig] = None,
    audit_logger: Optional[AuditLogger] = None,
    metrics_collector: Optional[MetricsCollector] = None,
) -> BatchOrchestrator:
    """
    Wire a BatchOrchestrator from configuration.

    Args:
        gateway: PersistenceGateway implementation
        config: EngineConfig (defaults if omitted)
        audit_logger: AuditLogger (an ObservabilityManager if omitted)
        metrics_collector: MetricsCollector (the audit logger's manager
            if omitted, else an in-memory collector)

    Returns:
        Configured BatchOrchestrator
    """
    from opportunity_engine.adapters.metrics_collector import InMemoryMetricsCollector
    from opportunity_engine.config.models import EngineConfig
    from opportunity_engine.naming.name_generator import NameGenerator
    from opportunity_engine.observability.observability_manager import ObservabilityManager
    from opportunity_engine.pipeline.batch_orchestrator import BatchOrchestrator
    from opportunity_engine.records.record_service import OpportunityService
    from opportunity_engine.resilience.error_handler import ErrorHandler, RetryConfig
    from opportunity_engine.validation.payload_validator import PayloadValidator

    config = config or EngineConfig()

    if audit_logger is None:
        manager = ObservabilityManager.from_config(config.logging)
        audit_logger = manager
        metrics_collector = metrics_collector or manager
    metrics_collector = metrics_collector or InMemoryMetricsCollector()

    validator = PayloadValidator(naming_config=config.naming, batch_config=config.batch)
    name_generator = NameGenerator(config.naming)
    error_handler: Optional[ErrorHandler] = None
    if config.retry.enabled:
        error_handler = ErrorHandler(RetryConfig.from_settings(config.retry))

    return BatchOrchestrator(
        gateway=gateway,
        record_service=OpportunityService(
            gateway, validator=validator, name_generator=name_generator
        ),
        audit_logger=audit_logger,
        metrics_collector=metrics_collector,
        config=config,
        name_generator=name_generator,
        error_handler=error_handler,
        validator=validator,
    )
