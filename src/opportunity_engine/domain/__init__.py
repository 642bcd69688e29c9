"""
Domain Layer - Core Business Entities and Value Objects.

This package contains the core domain model for the opportunity engine.
Everything here is plain Python plus Pydantic for validation, with no
infrastructure dependencies.

Entities:
    - OpportunityStage: Seven-stage pipeline with default probabilities
    - ContextTag: Closed set of sales contexts driving auto-naming
    - Opportunity: A persisted pipeline record
    - BatchFormData / BatchCreationResult: Batch input and outcome

Value Objects:
    - NamePreview, GeneratedName: Name generation output
    - OpportunityCreate, OpportunityUpdate, StageTransition: Write payloads
    - OpportunityFilters: List search, filters, sorting and paging
    - PipelineKPIs: Dashboard metrics
"""

from opportunity_engine.domain.entities import (
    BatchCreationResult,
    BatchFormData,
    ContextTag,
    FailedCreation,
    Opportunity,
    OpportunityStage,
    PrincipalRef,
    STAGE_DEFAULT_PROBABILITY,
    suggested_next_stages,
)
from opportunity_engine.domain.value_objects import (
    GeneratedName,
    NamePreview,
    OpportunityCreate,
    OpportunityFilters,
    OpportunityUpdate,
    PipelineKPIs,
    RecordPayload,
    StageTransition,
)

__all__ = [
    "BatchCreationResult",
    "BatchFormData",
    "ContextTag",
    "FailedCreation",
    "GeneratedName",
    "NamePreview",
    "Opportunity",
    "OpportunityCreate",
    "OpportunityFilters",
    "OpportunityStage",
    "OpportunityUpdate",
    "PipelineKPIs",
    "PrincipalRef",
    "RecordPayload",
    "STAGE_DEFAULT_PROBABILITY",
    "StageTransition",
    "suggested_next_stages",
]
