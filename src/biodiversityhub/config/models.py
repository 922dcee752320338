"""Configuration models for Biodiversity Hub.

This module contains all configuration-related Pydantic models used throughout the application.
"""

from pydantic import BaseModel, Field, field_validator

GATEWAY_BACKENDS = ("supabase", "memory")


class LoggingConfig(BaseModel):
    """Structlog-based logging configuration."""

    level: str = "INFO"
    json_logs: bool | None = None  # None = auto-detect based on environment
    include_caller: bool = False  # Include file:line info (useful for debugging)
    extra_fields: dict[str, str] = Field(default_factory=lambda: {"service": "biodiversity-hub"})


class GatewayConfig(BaseModel):
    """Remote data gateway connection settings."""

    backend: str = "supabase"  # "supabase" for the hosted store, "memory" for local use
    url: str = ""  # Project URL, e.g. https://abc123.supabase.co
    anon_key: str = ""  # Public API key sent as the apikey header
    access_token: str = ""  # JWT of the signed-in user, empty = anonymous

    # In-memory backend only
    memory_store_path: str = ""  # JSON snapshot to load and persist, empty = volatile
    session_user_id: str = ""  # Identity the in-memory backend treats as signed in

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        """Validate gateway backend name."""
        if v not in GATEWAY_BACKENDS:
            raise ValueError(
                f"Invalid gateway backend '{v}'. Must be one of: {', '.join(GATEWAY_BACKENDS)}."
            )
        return v

    @field_validator("url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the project URL so paths can be appended."""
        return v.rstrip("/")


class HubConfig(BaseModel):
    """Configuration settings for the Biodiversity Hub application."""

    # Version tracking
    config_version: str = "1.0.0"

    site_name: str = "Biodiversity Hub"
    description_preview_length: int = 150  # Characters of description shown on a species card

    # Logging settings
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    # Remote data gateway
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)
