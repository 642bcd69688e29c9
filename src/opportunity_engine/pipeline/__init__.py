"""
Pipeline Package - Batch Orchestration.

Components:
    - BatchOrchestrator: one opportunity per principal, partial success

The orchestrator is responsible for:
    - Validating the batch form
    - Resolving organization and principal names
    - Generating every name before the first insert
    - Creating records sequentially, collecting failures
    - Recording metrics and the audit trail
"""

from opportunity_engine.pipeline.batch_orchestrator import (
    BATCH_CANCELLED_MESSAGE,
    PRINCIPAL_NOT_FOUND_MESSAGE,
    UNKNOWN_PRINCIPAL_NAME,
    BatchOrchestrator,
    PlannedCreation,
)

__all__ = [
    "BATCH_CANCELLED_MESSAGE",
    "PRINCIPAL_NOT_FOUND_MESSAGE",
    "UNKNOWN_PRINCIPAL_NAME",
    "BatchOrchestrator",
    "PlannedCreation",
]
