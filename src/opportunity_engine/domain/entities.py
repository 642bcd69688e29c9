"""
Core Domain Entities.

This module defines the fundamental entities of the opportunity engine:
the sales pipeline stages, the context tags that drive auto-naming, the
persisted opportunity record and the batch form/result pair exchanged
with the UI layer.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, computed_field, field_validator, model_validator


def blank_to_none(value: Any) -> Any:
    """Normalize empty/whitespace-only strings to None."""
    if isinstance(value, str) and not value.strip():
        return None
    return value


class OpportunityStage(str, Enum):
    """Seven-stage sales pipeline, in progression order."""

    NEW_LEAD = "New Lead"
    INITIAL_OUTREACH = "Initial Outreach"
    SAMPLE_VISIT_OFFERED = "Sample/Visit Offered"
    AWAITING_RESPONSE = "Awaiting Response"
    FEEDBACK_LOGGED = "Feedback Logged"
    DEMO_SCHEDULED = "Demo Scheduled"
    CLOSED_WON = "Closed - Won"

    @property
    def default_probability(self) -> int:
        """Close probability assigned when entering this stage."""
        return STAGE_DEFAULT_PROBABILITY[self]

    @property
    def is_terminal(self) -> bool:
        return self is OpportunityStage.CLOSED_WON


# Monotonically non-decreasing along the stage order
STAGE_DEFAULT_PROBABILITY: Dict[OpportunityStage, int] = {
    OpportunityStage.NEW_LEAD: 10,
    OpportunityStage.INITIAL_OUTREACH: 20,
    OpportunityStage.SAMPLE_VISIT_OFFERED: 35,
    OpportunityStage.AWAITING_RESPONSE: 40,
    OpportunityStage.FEEDBACK_LOGGED: 60,
    OpportunityStage.DEMO_SCHEDULED: 80,
    OpportunityStage.CLOSED_WON: 100,
}

# Advisory only: the record service enforces nothing but the terminal stage
STAGE_PROGRESSION: Dict[OpportunityStage, List[OpportunityStage]] = {
    OpportunityStage.NEW_LEAD: [OpportunityStage.INITIAL_OUTREACH],
    OpportunityStage.INITIAL_OUTREACH: [
        OpportunityStage.SAMPLE_VISIT_OFFERED,
        OpportunityStage.AWAITING_RESPONSE,
    ],
    OpportunityStage.SAMPLE_VISIT_OFFERED: [OpportunityStage.AWAITING_RESPONSE],
    OpportunityStage.AWAITING_RESPONSE: [
        OpportunityStage.FEEDBACK_LOGGED,
        OpportunityStage.INITIAL_OUTREACH,
    ],
    OpportunityStage.FEEDBACK_LOGGED: [
        OpportunityStage.DEMO_SCHEDULED,
        OpportunityStage.CLOSED_WON,
    ],
    OpportunityStage.DEMO_SCHEDULED: [
        OpportunityStage.CLOSED_WON,
        OpportunityStage.FEEDBACK_LOGGED,
    ],
    OpportunityStage.CLOSED_WON: [],
}


def suggested_next_stages(stage: OpportunityStage) -> List[OpportunityStage]:
    """Stages a rep would normally move to from ``stage``."""
    return list(STAGE_PROGRESSION[stage])


class ContextTag(str, Enum):
    """Sales context an opportunity was opened in. Drives the name template."""

    NEW_LEAD_OUTREACH = "new-lead-outreach"
    SAMPLE_FOLLOWUP = "sample-followup"
    RENEWAL = "renewal"
    SITE_VISIT = "site-visit"
    FOOD_SHOW = "food-show"
    NEW_PRODUCT_INTEREST = "new-product-interest"
    FOLLOW_UP = "follow-up"
    DEMO_REQUEST = "demo-request"
    SAMPLING = "sampling"
    CUSTOM = "custom"

    @property
    def label(self) -> str:
        """Human-readable label used in generated names."""
        return CONTEXT_LABELS[self]


CONTEXT_LABELS: Dict[ContextTag, str] = {
    ContextTag.NEW_LEAD_OUTREACH: "New Lead Outreach",
    ContextTag.SAMPLE_FOLLOWUP: "Sample Follow-up",
    ContextTag.RENEWAL: "Renewal",
    ContextTag.SITE_VISIT: "Site Visit",
    ContextTag.FOOD_SHOW: "Food Show",
    ContextTag.NEW_PRODUCT_INTEREST: "New Product Interest",
    ContextTag.FOLLOW_UP: "Follow-up",
    ContextTag.DEMO_REQUEST: "Demo Request",
    ContextTag.SAMPLING: "Sampling",
    ContextTag.CUSTOM: "Custom",
}


class PrincipalRef(BaseModel):
    """A principal (brand owner) as resolved by the lookup collaborator."""

    id: str
    name: str

    model_config = {"frozen": True}


class Opportunity(BaseModel):
    """A persisted pipeline record for one principal at one organization."""

    id: str = Field(..., description="Assigned by the persistence layer")
    name: str
    organization_id: str
    principal_id: Optional[str] = None
    stage: OpportunityStage = OpportunityStage.NEW_LEAD
    product_id: Optional[str] = None
    context: Optional[ContextTag] = None
    probability_percent: int = Field(default=0, ge=0, le=100)
    expected_close_date: Optional[date] = None
    deal_owner: Optional[str] = None
    notes: Optional[str] = None
    is_won: bool = False
    auto_generated_name: bool = False
    name_template: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    model_config = {"frozen": True, "extra": "ignore"}

    @field_validator(
        "principal_id", "product_id", "deal_owner", "notes", "name_template", mode="before"
    )
    @classmethod
    def normalize_blanks(cls, value: Any) -> Any:
        return blank_to_none(value)

    @field_validator("probability_percent", mode="before")
    @classmethod
    def null_probability(cls, value: Any) -> Any:
        return 0 if value is None else value

    @model_validator(mode="after")
    def check_name_provenance(self) -> "Opportunity":
        if self.auto_generated_name and self.name_template is None:
            raise ValueError("auto_generated_name requires a name_template")
        return self

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class BatchFormData(BaseModel):
    """Form submitted by the UI to create one opportunity per principal."""

    organization_id: str
    principal_ids: List[str] = Field(default_factory=list)
    stage: OpportunityStage = OpportunityStage.NEW_LEAD
    context: ContextTag = ContextTag.NEW_LEAD_OUTREACH
    product_id: Optional[str] = None
    name_template: Optional[str] = Field(
        default=None, description="Custom template overriding the context default"
    )
    auto_generate_name: bool = True
    name: Optional[str] = Field(
        default=None, description="Fixed name used when auto_generate_name is off"
    )
    probability_percent: Optional[int] = Field(default=None, ge=0, le=100)
    expected_close_date: Optional[date] = None
    deal_owner: Optional[str] = None
    notes: Optional[str] = None

    model_config = {"frozen": True, "extra": "forbid"}

    @field_validator(
        "product_id", "name_template", "name", "deal_owner", "notes", mode="before"
    )
    @classmethod
    def normalize_blanks(cls, value: Any) -> Any:
        return blank_to_none(value)


class FailedCreation(BaseModel):
    """One principal whose opportunity could not be created."""

    principal_id: str
    principal_name: str
    error: str

    model_config = {"frozen": True}


class BatchCreationResult(BaseModel):
    """Outcome of one batch run: created records and itemized failures."""

    created_opportunities: List[Opportunity] = Field(default_factory=list)
    failed_creations: List[FailedCreation] = Field(default_factory=list)
    correlation_id: Optional[str] = None

    @computed_field
    @property
    def total_created(self) -> int:
        return len(self.created_opportunities)

    @computed_field
    @property
    def total_failed(self) -> int:
        return len(self.failed_creations)

    @computed_field
    @property
    def total_requested(self) -> int:
        return self.total_created + self.total_failed

    @computed_field
    @property
    def success(self) -> bool:
        """True if at least one record was created."""
        return self.total_created > 0

    @property
    def summary(self) -> str:
        """Short text for the 'created N of M' banner."""
        return f"Created {self.total_created} of {self.total_requested} opportunities"
