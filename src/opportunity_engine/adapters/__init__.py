"""
Adapters Package - Infrastructure Implementations.

Concrete implementations of the protocols in the interfaces package.

Gateways:
    - InMemoryPersistenceGateway: dict-backed, for development/testing
    - PostgrestGateway: PostgREST REST API over httpx

Loggers:
    - ConsoleAuditLogger: Simple console output

Metrics:
    - InMemoryMetricsCollector: Simple in-memory collection
"""

from opportunity_engine.adapters.console_logger import ConsoleAuditLogger
from opportunity_engine.adapters.memory_gateway import InMemoryPersistenceGateway
from opportunity_engine.adapters.metrics_collector import InMemoryMetricsCollector
from opportunity_engine.adapters.postgrest_gateway import PostgrestGateway

__all__ = [
    "ConsoleAuditLogger",
    "InMemoryMetricsCollector",
    "InMemoryPersistenceGateway",
    "PostgrestGateway",
]
