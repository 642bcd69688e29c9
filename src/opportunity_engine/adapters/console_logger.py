"""
Console Audit Logger.

Prints one line per batch event:

    [15:30:02] [3f2a9c1e] [WARN ] Mrs Ressler's (prin-ressler) failed: ...

Per-record success lines are printed only in verbose mode. Failures and the
batch start/end lines are always printed.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

NO_CORRELATION = "-" * 8


class ConsoleAuditLogger:
    """Prints batch progress to stdout."""

    def __init__(self, verbose: bool = True) -> None:
        self._verbose = verbose
        self._correlation_id: Optional[str] = None

    def set_correlation_id(self, correlation_id: str) -> None:
        self._correlation_id = correlation_id

    def log_batch_start(
        self,
        organization_id: str,
        principal_count: int,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        details = ""
        if metadata:
            details = " (" + ", ".join(f"{k}={v}" for k, v in sorted(metadata.items())) + ")"
        noun = "principal" if principal_count == 1 else "principals"
        self._emit("INFO", f"Batch for {organization_id}: {principal_count} {noun}{details}")

    def log_record_created(self, principal_id: str, record_id: str, name: str) -> None:
        if self._verbose:
            self._emit("INFO", f"{principal_id} -> {name!r} [{record_id}]")

    def log_record_failed(self, principal_id: str, principal_name: str, error: str) -> None:
        self._emit("WARN", f"{principal_name} ({principal_id}) failed: {error}")

    def log_batch_end(
        self,
        total_created: int,
        total_failed: int,
        duration_seconds: float,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        level = "INFO" if total_created else "ERROR"
        total = total_created + total_failed
        self._emit(
            level,
            f"Created {total_created} of {total}, {total_failed} failed in {duration_seconds:.3f}s",
        )

    def _emit(self, level: str, message: str) -> None:
        stamp = datetime.now().strftime("%H:%M:%S")
        short_id = self._correlation_id[:8] if self._correlation_id else NO_CORRELATION
        print(f"[{stamp}] [{short_id}] [{level:5}] {message}")
