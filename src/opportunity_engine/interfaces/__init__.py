"""
Interfaces Layer - Abstract Protocols for Dependencies.

This package defines the abstract interfaces (using typing.Protocol) for all
external dependencies. High-level modules depend on these abstractions and
receive concrete implementations through their constructors.

Protocols:
    - PersistenceGateway: Relational backend access (async)
    - AuditLogger: Audit trail for batch runs
    - MetricsCollector: Timing and count metrics
"""

from opportunity_engine.interfaces.audit_logger import AuditLogger
from opportunity_engine.interfaces.metrics_collector import MetricsCollector
from opportunity_engine.interfaces.persistence_gateway import (
    PersistenceError,
    PersistenceGateway,
)

__all__ = [
    "AuditLogger",
    "MetricsCollector",
    "PersistenceError",
    "PersistenceGateway",
]
