"""
Unit Tests for Domain Entities and Value Objects.

Test Aspects Covered:
    ✅ Business Logic: Stage probabilities, progression, batch result totals
    ✅ Edge Cases: Blank strings, null probability, payload discrimination
    ✅ Error Handling: Auto-name provenance enforced on records
"""

from __future__ import annotations

import pytest
from pydantic import TypeAdapter, ValidationError

from opportunity_engine.domain.entities import (
    STAGE_PROGRESSION,
    BatchCreationResult,
    BatchFormData,
    ContextTag,
    FailedCreation,
    Opportunity,
    OpportunityStage,
    suggested_next_stages,
)
from opportunity_engine.domain.value_objects import (
    OpportunityCreate,
    OpportunityUpdate,
    RecordPayload,
    StageTransition,
)


class TestOpportunityStage:
    """Test cases for the stage enum."""

    def test_default_probabilities(self) -> None:
        """
        SCENARIO: Each stage's default probability
        EXPECTED: 10/20/35/40/60/80/100, non-decreasing in stage order
        """
        values = [stage.default_probability for stage in OpportunityStage]

        assert values == [10, 20, 35, 40, 60, 80, 100]
        assert values == sorted(values)

    def test_closed_won_is_terminal(self) -> None:
        """
        SCENARIO: Terminal flag and progression
        EXPECTED: Only Closed - Won is terminal and has no next stages
        """
        assert [s for s in OpportunityStage if s.is_terminal] == [OpportunityStage.CLOSED_WON]
        assert suggested_next_stages(OpportunityStage.CLOSED_WON) == []
        assert set(STAGE_PROGRESSION) == set(OpportunityStage)

    def test_suggested_next_stages_is_a_copy(self) -> None:
        nxt = suggested_next_stages(OpportunityStage.NEW_LEAD)
        nxt.append(OpportunityStage.CLOSED_WON)

        assert suggested_next_stages(OpportunityStage.NEW_LEAD) == [
            OpportunityStage.INITIAL_OUTREACH
        ]


class TestOpportunity:
    """Test cases for the persisted record model."""

    def test_row_with_nulls_and_blanks(self) -> None:
        """
        SCENARIO: Backend row with null probability and blank notes
        EXPECTED: Probability 0, notes None, unknown columns ignored
        """
        record = Opportunity.model_validate(
            {
                "id": "opp-1",
                "name": "Acme - Kaufholds - Renewal",
                "organization_id": "org-acme",
                "stage": "Initial Outreach",
                "probability_percent": None,
                "notes": "   ",
                "estimated_value": 1200,
            }
        )

        assert record.probability_percent == 0
        assert record.notes is None
        assert record.stage is OpportunityStage.INITIAL_OUTREACH
        assert record.is_deleted is False

    def test_auto_named_without_template_rejected(self) -> None:
        """
        SCENARIO: auto_generated_name True, no template
        EXPECTED: pydantic ValidationError
        """
        with pytest.raises(ValidationError):
            Opportunity(
                id="opp-1", name="Acme", organization_id="org-acme", auto_generated_name=True
            )


class TestBatchModels:
    """Test cases for the batch form and result."""

    def test_form_defaults_and_blank_normalization(self) -> None:
        """
        SCENARIO: Form with only organization and principals, blank notes
        EXPECTED: New Lead, new lead outreach, auto naming on, notes None
        """
        form = BatchFormData(organization_id="org-acme", principal_ids=["p1"], notes="")

        assert form.stage is OpportunityStage.NEW_LEAD
        assert form.context is ContextTag.NEW_LEAD_OUTREACH
        assert form.auto_generate_name is True
        assert form.notes is None

    def test_form_rejects_unknown_fields(self) -> None:
        with pytest.raises(ValidationError):
            BatchFormData(organization_id="org-acme", principal_ids=["p1"], is_won=True)

    def test_result_totals(self) -> None:
        """
        SCENARIO: One created, two failed
        EXPECTED: Totals add up; success True; summary text
        """
        created = Opportunity(id="1", name="Acme - A - Renewal", organization_id="org-acme")
        failures = [
            FailedCreation(principal_id="p2", principal_name="B", error="x"),
            FailedCreation(principal_id="p3", principal_name="C", error="y"),
        ]

        result = BatchCreationResult(created_opportunities=[created], failed_creations=failures)

        assert result.total_created == 1
        assert result.total_failed == 2
        assert result.total_requested == 3
        assert result.success is True
        assert result.summary == "Created 1 of 3 opportunities"
        dumped = result.model_dump()
        assert dumped["total_failed"] == 2
        assert dumped["success"] is True

    def test_empty_result_is_not_success(self) -> None:
        assert BatchCreationResult().success is False


class TestRecordPayload:
    """Test cases for the discriminated payload union."""

    @pytest.mark.parametrize(
        "data,expected_type",
        [
            ({"kind": "create", "name": "Acme", "organization_id": "o"}, OpportunityCreate),
            ({"kind": "update", "notes": "n"}, OpportunityUpdate),
            ({"kind": "stage_transition", "stage": "Demo Scheduled"}, StageTransition),
        ],
    )
    def test_discriminated_by_kind(self, data: dict, expected_type: type) -> None:
        """
        SCENARIO: Raw dicts with each kind
        EXPECTED: Parsed into the matching payload type
        """
        payload = TypeAdapter(RecordPayload).validate_python(data)

        assert isinstance(payload, expected_type)

    def test_update_changes_only_set_fields(self) -> None:
        """
        SCENARIO: Update with notes and product_id set
        EXPECTED: changes() contains exactly those two
        """
        update = OpportunityUpdate(notes="n", product_id="prod-1")

        assert update.changes() == {"notes": "n", "product_id": "prod-1"}

    def test_create_row_is_json_ready(self) -> None:
        """
        SCENARIO: Create payload serialized for the gateway
        EXPECTED: No kind key, enum values as strings
        """
        row = OpportunityCreate(
            name="Acme", organization_id="o", context=ContextTag.RENEWAL
        ).to_row()

        assert "kind" not in row
        assert row["stage"] == "New Lead"
        assert row["context"] == "renewal"
