"""
Audit Logger Protocol.

Defines the abstract interface for audit logging. The audit logger
tracks every batch run and each per-principal outcome so that a
"created N of M" report can be reconstructed after the fact.

Design Notes:
    - Structured logging (JSON format recommended)
    - Correlation ID propagation for tracing one batch end to end
    - No side effects on creation logic
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol, runtime_checkable


@runtime_checkable
class AuditLogger(Protocol):
    """Abstract interface for audit logging."""

    def set_correlation_id(self, correlation_id: str) -> None:
        """Set correlation ID for subsequent log entries."""
        ...

    def log_batch_start(
        self,
        organization_id: str,
        principal_count: int,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Log the start of a batch run."""
        ...

    def log_record_created(self, principal_id: str, record_id: str, name: str) -> None:
        """Log a successfully created opportunity."""
        ...

    def log_record_failed(self, principal_id: str, principal_name: str, error: str) -> None:
        """Log a principal whose opportunity could not be created."""
        ...

    def log_batch_end(
        self,
        total_created: int,
        total_failed: int,
        duration_seconds: float,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Log the end of a batch run."""
        ...
