"""
Shared configuration management for the compliance rule engine.
"""

from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings.

    Every field can be overridden from the environment (or a ``.env`` file)
    using the ``COMPLIANCE_`` prefix, e.g. ``COMPLIANCE_LOG_LEVEL=debug``.
    """

    model_config = SettingsConfigDict(
        env_prefix="COMPLIANCE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Administration
    admin_principal: Optional[str] = Field(
        default=None,
        description="Principal allowed to replace the rule set",
    )

    # Rule evaluation: "propagate" raises on a failing rule, "reject" treats it as a denial
    rule_error_policy: Literal["propagate", "reject"] = Field(default="propagate")

    @field_validator("rule_error_policy", mode="before")
    @classmethod
    def normalize_rule_error_policy(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
