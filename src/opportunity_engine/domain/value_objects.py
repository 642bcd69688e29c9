"""
Value Objects for Domain Layer.

Value objects are immutable and carry no identity. The three write
payloads form a closed union discriminated by ``kind`` so that a stage
change can never ride along on a general update and vice versa.
"""

from __future__ import annotations

from datetime import date
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from opportunity_engine.domain.entities import (
    ContextTag,
    OpportunityStage,
    blank_to_none,
)


# Row shape exchanged with the persistence gateway
RecordRow = Dict[str, Any]


class GeneratedName(BaseModel):
    """Output of the name generator: the name and the template it came from."""

    name: str
    template: str

    model_config = {"frozen": True}


class NamePreview(BaseModel):
    """Name a principal will receive, shown before anything is persisted."""

    principal_id: str
    principal_name: str
    generated_name: str
    name_template: str

    model_config = {"frozen": True}


class OpportunityCreate(BaseModel):
    """Payload for inserting a single opportunity."""

    kind: Literal["create"] = "create"
    name: str
    organization_id: str
    principal_id: Optional[str] = None
    stage: OpportunityStage = OpportunityStage.NEW_LEAD
    product_id: Optional[str] = None
    context: Optional[ContextTag] = None
    probability_percent: Optional[int] = Field(
        default=None, ge=0, le=100, description="None means the stage default"
    )
    expected_close_date: Optional[date] = None
    deal_owner: Optional[str] = None
    notes: Optional[str] = None
    auto_generated_name: bool = False
    name_template: Optional[str] = None

    model_config = {"frozen": True, "extra": "forbid"}

    @field_validator(
        "principal_id", "product_id", "deal_owner", "notes", "name_template", mode="before"
    )
    @classmethod
    def normalize_blanks(cls, value: Any) -> Any:
        return blank_to_none(value)

    def to_row(self) -> RecordRow:
        """Serialize for the gateway (JSON-compatible values)."""
        return self.model_dump(mode="json", exclude={"kind"})


class OpportunityUpdate(BaseModel):
    """Partial update of general fields. Stage and won flag are excluded."""

    kind: Literal["update"] = "update"
    name: Optional[str] = None
    product_id: Optional[str] = None
    context: Optional[ContextTag] = None
    probability_percent: Optional[int] = Field(default=None, ge=0, le=100)
    expected_close_date: Optional[date] = None
    deal_owner: Optional[str] = None
    notes: Optional[str] = None

    model_config = {"frozen": True, "extra": "forbid"}

    @field_validator("product_id", "deal_owner", "notes", mode="before")
    @classmethod
    def normalize_blanks(cls, value: Any) -> Any:
        return blank_to_none(value)

    def changes(self) -> RecordRow:
        """Only the fields the caller explicitly set."""
        return self.model_dump(mode="json", exclude_unset=True, exclude={"kind"})


class StageTransition(BaseModel):
    """Move an opportunity to another stage."""

    kind: Literal["stage_transition"] = "stage_transition"
    stage: OpportunityStage

    model_config = {"frozen": True, "extra": "forbid"}


RecordPayload = Annotated[
    Union[OpportunityCreate, OpportunityUpdate, StageTransition],
    Field(discriminator="kind"),
]


SortField = Literal[
    "name", "stage", "probability_percent", "expected_close_date", "created_at", "updated_at"
]


class OpportunityFilters(BaseModel):
    """
    Search, filter, sort and paging options for listing opportunities.

    Unset fields do not filter. ``stages`` and ``contexts`` match any of
    the listed values. ``limit=None`` returns every matching row.
    """

    search: Optional[str] = Field(default=None, description="Case-insensitive name substring")
    stages: List[OpportunityStage] = Field(default_factory=list)
    contexts: List[ContextTag] = Field(default_factory=list)
    organization_id: Optional[str] = None
    principal_id: Optional[str] = None
    product_id: Optional[str] = None
    deal_owner: Optional[str] = None
    probability_min: Optional[int] = Field(default=None, ge=0, le=100)
    probability_max: Optional[int] = Field(default=None, ge=0, le=100)
    is_won: Optional[bool] = None
    sort_by: SortField = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"
    page: int = Field(default=1, ge=1)
    limit: Optional[int] = Field(default=None, ge=1, le=1000)

    model_config = {"frozen": True, "extra": "forbid"}

    @field_validator(
        "search", "organization_id", "principal_id", "product_id", "deal_owner", mode="before"
    )
    @classmethod
    def normalize_blanks(cls, value: Any) -> Any:
        return blank_to_none(value)

    @model_validator(mode="after")
    def check_probability_range(self) -> "OpportunityFilters":
        if (
            self.probability_min is not None
            and self.probability_max is not None
            and self.probability_min > self.probability_max
        ):
            raise ValueError("probability_min must not exceed probability_max")
        return self

    @property
    def offset(self) -> int:
        """Index of the first row on ``page``; 0 when unpaged."""
        return (self.page - 1) * self.limit if self.limit else 0


class PipelineKPIs(BaseModel):
    """Dashboard metrics computed over live (non-deleted) opportunities."""

    total_opportunities: int = 0
    active_opportunities: int = 0
    won_opportunities: int = 0
    average_probability: int = 0
    conversion_rate: int = Field(default=0, description="Won / total, percent")
    won_this_month: int = 0
    created_this_week: int = 0
    updated_this_week: int = 0
    closed_this_week: int = 0
    stage_distribution: Dict[OpportunityStage, int] = Field(default_factory=dict)

    model_config = {"frozen": True}
