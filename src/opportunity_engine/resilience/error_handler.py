"""
Error Handler - Resilience Patterns for Fault Tolerance.

Provides:
    - Async retry with exponential backoff for read-only gateway calls
    - Wrapping of unexpected exceptions into UnknownError

Design Notes:
    - Retry is only applied to idempotent lookups, never to inserts
    - Domain errors (ValidationError, PersistenceError) pass through
      unchanged; anything else is reported with a generic message
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from opportunity_engine.config.models import RetrySettings
from opportunity_engine.interfaces.persistence_gateway import PersistenceError
from opportunity_engine.validation.payload_validator import ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

UNKNOWN_ERROR_MESSAGE = "An unexpected error occurred"


class RetryExhausted(PersistenceError):
    """Raised when all retry attempts are exhausted."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="retry_exhausted")


class UnknownError(Exception):
    """Any failure that is neither a validation nor a persistence error."""

    def __init__(self, message: str = UNKNOWN_ERROR_MESSAGE) -> None:
        super().__init__(message)
        self.message = message


def wrap_unexpected(exc: BaseException, operation_name: str = "operation") -> Exception:
    """
    Map an exception onto the engine's error taxonomy.

    Domain errors are returned as-is; everything else becomes an
    UnknownError chained to the original.
    """
    if isinstance(exc, (ValidationError, PersistenceError, UnknownError)):
        return exc
    logger.exception(f"Unexpected error in {operation_name}", exc_info=exc)
    wrapped = UnknownError()
    wrapped.__cause__ = exc
    return wrapped


# Backend answers that will not change on a second attempt.
PERMANENT_CODES = frozenset(
    {
        "not_found",
        "check_violation",
        "foreign_key_violation",
        "unique_violation",
        "retry_exhausted",
        # Postgres SQLSTATEs passed through by PostgREST
        "23502",
        "23503",
        "23505",
        "23514",
    }
)


@dataclass
class RetryConfig:
    max_attempts: int = 3
    base_delay_seconds: float = 0.5
    max_delay_seconds: float = 10.0
    exponential_base: float = 2.0

    @classmethod
    def from_settings(cls, settings: RetrySettings) -> "RetryConfig":
        return cls(
            max_attempts=settings.max_attempts,
            base_delay_seconds=settings.base_delay_seconds,
            max_delay_seconds=settings.max_delay_seconds,
            exponential_base=settings.exponential_base,
        )


def is_transient(exc: BaseException) -> bool:
    """PersistenceErrors are retried unless their code marks them permanent."""
    return isinstance(exc, PersistenceError) and exc.code not in PERMANENT_CODES


class ErrorHandler:
    """Retries idempotent gateway reads with capped exponential backoff."""

    def __init__(
        self,
        retry_config: Optional[RetryConfig] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ) -> None:
        """
        Args:
            retry_config: Attempt count and backoff shape
            sleep: Awaitable sleep used between attempts (asyncio.sleep)
        """
        self.retry_config = retry_config or RetryConfig()
        self._sleep = sleep or asyncio.sleep

    def backoff(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        cfg = self.retry_config
        return min(
            cfg.base_delay_seconds * cfg.exponential_base ** (attempt - 1),
            cfg.max_delay_seconds,
        )

    async def retry(
        self,
        func: Callable[[], Awaitable[T]],
        operation_name: str = "operation",
    ) -> T:
        """
        Await ``func()`` until it succeeds or attempts run out.

        Errors that are not transient are raised on the spot.

        Raises:
            RetryExhausted: Every attempt failed with a transient error
        """
        attempts = self.retry_config.max_attempts
        attempt = 0
        while True:
            attempt += 1
            try:
                result = await func()
            except Exception as exc:
                if not is_transient(exc):
                    raise
                if attempt >= attempts:
                    logger.error(f"{operation_name} gave up after {attempt} attempts: {exc}")
                    raise RetryExhausted(
                        f"{operation_name} failed after {attempts} attempts"
                    ) from exc
                delay = self.backoff(attempt)
                logger.warning(
                    f"{operation_name} attempt {attempt}/{attempts} failed, "
                    f"next try in {delay:.2f}s: {exc}"
                )
                await self._sleep(delay)
                continue

            if attempt > 1:
                logger.info(f"{operation_name} recovered on attempt {attempt}")
            return result
