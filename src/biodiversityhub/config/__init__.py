"""Biodiversity Hub configuration package.

This package provides centralized configuration management with:
- Validation through Pydantic models
- YAML parsing and serialization
- Environment overrides for gateway credentials
"""

from .manager import ConfigManager
from .models import GatewayConfig, HubConfig, LoggingConfig

__all__ = [
    "ConfigManager",
    "GatewayConfig",
    "HubConfig",
    "LoggingConfig",
]
