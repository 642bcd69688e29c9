"""
Validation Package - Input Validation.

This package provides validation for:
    - PayloadValidator: Create/update payloads and batch forms

Design Principles:
    - Fail fast on invalid input, before any gateway call
    - Clear, actionable error messages
    - Configurable limits
"""

from opportunity_engine.validation.payload_validator import (
    PayloadValidator,
    ValidationError,
)

__all__ = [
    "PayloadValidator",
    "ValidationError",
]
