"""
Configuration Package - Models and Loaders.

Configuration Structure:
    - EngineConfig: Root configuration object
    - NamingConfig: Name length limits and template overrides
    - BatchConfig: Batch size limits
    - RetrySettings: Retry policy for read-only lookups
    - LoggingConfig: Log level and structured output
    - GatewayConfig: REST persistence gateway connection

Profiles live under ``config/profiles/<name>.yaml`` and are deep-merged
over the base file.
"""

from opportunity_engine.config.loader import ConfigLoader, load_config
from opportunity_engine.config.models import (
    BatchConfig,
    EngineConfig,
    GatewayConfig,
    LoggingConfig,
    NamingConfig,
    RetrySettings,
)

__all__ = [
    "BatchConfig",
    "ConfigLoader",
    "EngineConfig",
    "GatewayConfig",
    "LoggingConfig",
    "NamingConfig",
    "RetrySettings",
    "load_config",
]
