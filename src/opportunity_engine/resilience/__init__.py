"""
Resilience Package - Error Handling and Fault Tolerance.

This package provides:
    - ErrorHandler: Async retry with backoff for read-only lookups
    - UnknownError / wrap_unexpected: Generic wrapping of unexpected failures

Design Principles:
    - Fail fast for permanent errors
    - Retry with backoff only where a repeat is harmless
    - Callers never see raw internal exceptions
"""

from opportunity_engine.resilience.error_handler import (
    ErrorHandler,
    RetryConfig,
    RetryExhausted,
    UnknownError,
    is_transient,
    wrap_unexpected,
)

__all__ = [
    "ErrorHandler",
    "RetryConfig",
    "RetryExhausted",
    "UnknownError",
    "is_transient",
    "wrap_unexpected",
]
