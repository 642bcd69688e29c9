"""
Configuration Models - Pydantic Models for Type-Safe Config.

All configuration is validated at load time using Pydantic.
"""

from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, Field, field_validator

from opportunity_engine.domain.entities import ContextTag


class NamingConfig(BaseModel):
    """Auto-naming settings."""

    max_name_length: int = Field(default=255, ge=3, le=500)
    max_template_length: int = Field(default=500, ge=1)
    templates: Dict[ContextTag, str] = Field(
        default_factory=dict,
        description="Per-context overrides of the built-in templates",
    )

    @field_validator("templates")
    @classmethod
    def templates_not_blank(cls, value: Dict[ContextTag, str]) -> Dict[ContextTag, str]:
        for tag, template in value.items():
            if not template.strip():
                raise ValueError(f"template for {tag.value} is empty")
        return value


class BatchConfig(BaseModel):
    """Batch creation limits."""

    max_principals: int = Field(default=50, ge=1)


class RetrySettings(BaseModel):
    """Retry policy for read-only gateway lookups."""

    enabled: bool = True
    max_attempts: int = Field(default=3, ge=1, le=10)
    base_delay_seconds: float = Field(default=0.5, ge=0)
    max_delay_seconds: float = Field(default=10.0, ge=0)
    exponential_base: float = Field(default=2.0, ge=1)


class LoggingConfig(BaseModel):
    """Logging and structured event output."""

    level: str = Field(default="INFO")
    use_json: bool = True
    service_name: str = "opportunity_engine"

    @field_validator("level")
    @classmethod
    def known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value}")
        return level


class GatewayConfig(BaseModel):
    """Connection settings for the REST persistence gateway."""

    base_url: Optional[str] = None
    api_key: Optional[str] = None
    timeout_seconds: float = Field(default=30.0, gt=0)
    opportunities_table: str = "opportunities"
    organizations_table: str = "organizations"


class EngineConfig(BaseModel):
    """Root configuration object."""

    version: str = "1.0"
    naming: NamingConfig = Field(default_factory=NamingConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)

    model_config = {"populate_by_name": True}
