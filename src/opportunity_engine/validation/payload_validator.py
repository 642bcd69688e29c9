"""
Payload Validator - Validate Write Payloads and Batch Forms.

Validates input before any gateway call:
    - Names present, within length limits
    - Organization and principals referenced
    - Auto-naming provenance consistent
    - Expected close date not in the past

Design Notes:
    - Fail-fast principle
    - All problems collected, reported in one message
    - Never silently defaults a malformed value
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Callable, List, Optional

from opportunity_engine.config.models import BatchConfig, NamingConfig
from opportunity_engine.domain.entities import BatchFormData, ContextTag
from opportunity_engine.domain.value_objects import OpportunityCreate, OpportunityUpdate

logger = logging.getLogger(__name__)


class ValidationError(Exception):
    """Raised when input is malformed or missing required values."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field
        self.message = message


class PayloadValidator:
    """
    Validates opportunity payloads and batch forms.

    Validates:
        - Create payloads (name, organization, provenance, limits)
        - Update payloads (non-empty, same field limits)
        - Batch forms (principal list, naming mode, batch size)
    """

    MIN_NAME_LENGTH = 3
    MAX_DEAL_OWNER_LENGTH = 100
    MAX_NOTES_LENGTH = 2000

    def __init__(
        self,
        naming_config: Optional[NamingConfig] = None,
        batch_config: Optional[BatchConfig] = None,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        """
        Initialize payload validator.

        Args:
            naming_config: Name and template length limits
            batch_config: Batch size limits
            today: Clock for the close-date check (defaults to date.today)
        """
        self.naming_config = naming_config or NamingConfig()
        self.batch_config = batch_config or BatchConfig()
        self._today = today or date.today

    def validate_create(self, payload: OpportunityCreate) -> None:
        """
        Validate a single-record create payload.

        Raises:
            ValidationError: If validation fails
        """
        errors: List[str] = []

        name_error = self._validate_name(payload.name)
        if name_error:
            errors.append(name_error)

        if not payload.organization_id.strip():
            errors.append("organization_id is required")

        if payload.auto_generated_name and payload.name_template is None:
            errors.append("name_template is required for auto-generated names")

        errors.extend(self._validate_common(
            payload.expected_close_date, payload.deal_owner, payload.notes
        ))

        self._raise_if_errors(errors, "Create payload")

    def validate_update(self, payload: OpportunityUpdate) -> None:
        """
        Validate a partial update payload.

        Raises:
            ValidationError: If nothing is set or a set field is invalid
        """
        changes = payload.changes()
        if not changes:
            raise ValidationError("Update payload sets no fields")

        errors: List[str] = []
        if "name" in changes:
            name_error = self._validate_name(payload.name)
            if name_error:
                errors.append(name_error)

        errors.extend(self._validate_common(
            payload.expected_close_date, payload.deal_owner, payload.notes
        ))

        self._raise_if_errors(errors, "Update payload")

    def validate_form(self, form: BatchFormData) -> None:
        """
        Validate a batch form before any lookup or insert.

        Raises:
            ValidationError: If validation fails
        """
        errors: List[str] = []

        if not form.organization_id.strip():
            errors.append("organization_id is required")

        errors.extend(self._validate_principal_ids(form.principal_ids))

        if form.auto_generate_name:
            if form.context == ContextTag.CUSTOM and form.name_template is None:
                errors.append("name_template is required for the custom context")
            if (
                form.name_template is not None
                and len(form.name_template) > self.naming_config.max_template_length
            ):
                errors.append(
                    f"name_template exceeds {self.naming_config.max_template_length} characters"
                )
        else:
            if form.name is None:
                errors.append("name is required when auto_generate_name is off")
            else:
                name_error = self._validate_name(form.name)
                if name_error:
                    errors.append(name_error)

        errors.extend(self._validate_common(
            form.expected_close_date, form.deal_owner, form.notes
        ))

        self._raise_if_errors(errors, "Batch form")

        logger.debug(
            f"Batch form validated: organization={form.organization_id}, "
            f"principals={len(form.principal_ids)}"
        )

    def _validate_name(self, name: Optional[str]) -> Optional[str]:
        stripped = (name or "").strip()
        if not stripped:
            return "name is required"
        if len(stripped) < self.MIN_NAME_LENGTH:
            return f"name must be at least {self.MIN_NAME_LENGTH} characters"
        if len(stripped) > self.naming_config.max_name_length:
            return f"name exceeds {self.naming_config.max_name_length} characters"
        return None

    def _validate_principal_ids(self, principal_ids: List[str]) -> List[str]:
        errors: List[str] = []
        if not principal_ids:
            errors.append("at least one principal must be selected")
            return errors

        if any(not pid.strip() for pid in principal_ids):
            errors.append("principal_ids contains an empty id")

        seen = set()
        duplicates = []
        for pid in principal_ids:
            if pid in seen and pid not in duplicates:
                duplicates.append(pid)
            seen.add(pid)
        if duplicates:
            errors.append(f"duplicate principal ids: {', '.join(duplicates)}")

        if len(principal_ids) > self.batch_config.max_principals:
            errors.append(
                f"{len(principal_ids)} principals exceeds the batch limit of "
                f"{self.batch_config.max_principals}"
            )
        return errors

    def _validate_common(
        self,
        expected_close_date: Optional[date],
        deal_owner: Optional[str],
        notes: Optional[str],
    ) -> List[str]:
        errors: List[str] = []
        if expected_close_date is not None and expected_close_date < self._today():
            errors.append(
                f"expected_close_date {expected_close_date.isoformat()} is in the past"
            )
        if deal_owner is not None and len(deal_owner) > self.MAX_DEAL_OWNER_LENGTH:
            errors.append(
                f"deal_owner exceeds {self.MAX_DEAL_OWNER_LENGTH} characters"
            )
        if notes is not None and len(notes) > self.MAX_NOTES_LENGTH:
            errors.append(f"notes exceed {self.MAX_NOTES_LENGTH} characters")
        return errors

    def _raise_if_errors(self, errors: List[str], subject: str) -> None:
        if errors:
            error_message = "; ".join(errors)
            logger.error(f"{subject} validation failed: {error_message}")
            raise ValidationError(error_message)
