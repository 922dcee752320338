"""Configuration loading and saving."""

import logging
import os
import shutil
from typing import Any

import yaml

from biodiversityhub.config.models import GatewayConfig, HubConfig, LoggingConfig
from biodiversityhub.system.path_resolver import PathResolver

logger = logging.getLogger(__name__)

# Environment variables that override gateway settings from the YAML file
GATEWAY_ENV_OVERRIDES = {
    "SUPABASE_URL": "url",
    "SUPABASE_ANON_KEY": "anon_key",
    "SUPABASE_ACCESS_TOKEN": "access_token",
}


class ConfigManager:
    """Manages configuration loading and saving."""

    CURRENT_VERSION = "1.0.0"

    def __init__(self, path_resolver: PathResolver | None = None):
        """Initialize ConfigManager.

        Args:
            path_resolver: Optional PathResolver instance. If None, creates a new one.
        """
        self.path_resolver = path_resolver or PathResolver()
        self.config_path = self.path_resolver.get_config_path()

    def load(self) -> HubConfig:
        """Load configuration, creating a default file on first use.

        Returns:
            HubConfig: Loaded and validated configuration
        """
        self._ensure_config_exists()

        raw_config = self._read_yaml()
        raw_config.setdefault("config_version", self.CURRENT_VERSION)
        self._apply_environment(raw_config)

        return self._create_config_object(raw_config)

    def save(self, config: HubConfig) -> None:
        """Save configuration to file with backup.

        Args:
            config: Configuration to save

        Raises:
            PermissionError: If config file cannot be written
        """
        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        if self.config_path.exists():
            backup_path = self.config_path.with_suffix(".yaml.backup")
            try:
                shutil.copy2(self.config_path, backup_path)
            except PermissionError:
                logger.warning("Could not create backup at %s", backup_path)

        config_yaml = yaml.dump(config.model_dump(), default_flow_style=False, sort_keys=False)
        self.config_path.write_text(config_yaml)
        logger.info("Configuration saved successfully to %s", self.config_path)

    def reload(self) -> HubConfig:
        """Reload configuration from disk."""
        return self.load()

    def _ensure_config_exists(self) -> None:
        """Ensure config file exists, create it from defaults if needed."""
        if not self.config_path.exists():
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            defaults = HubConfig(config_version=self.CURRENT_VERSION).model_dump()
            config_yaml = yaml.dump(defaults, default_flow_style=False, sort_keys=False)
            self.config_path.write_text(config_yaml)

    def _read_yaml(self) -> dict[str, Any]:
        """Read YAML config file."""
        config_text = self.config_path.read_text()
        return yaml.safe_load(config_text) or {}

    def _apply_environment(self, raw_config: dict[str, Any]) -> None:
        """Overlay gateway credentials taken from the environment."""
        gateway = raw_config.get("gateway")
        if not isinstance(gateway, dict):
            gateway = {}
        for env_name, field_name in GATEWAY_ENV_OVERRIDES.items():
            value = os.getenv(env_name)
            if value:
                gateway[field_name] = value
        raw_config["gateway"] = gateway

    def _create_config_object(self, raw_config: dict[str, Any]) -> HubConfig:
        """Create HubConfig object from dictionary.

        Args:
            raw_config: Configuration dictionary

        Returns:
            HubConfig: Typed configuration object
        """
        if isinstance(raw_config.get("logging"), dict):
            raw_config["logging"] = LoggingConfig(**raw_config["logging"])
        if isinstance(raw_config.get("gateway"), dict):
            raw_config["gateway"] = GatewayConfig(**raw_config["gateway"])

        expected_fields = set(HubConfig.model_fields.keys())
        filtered_config = {k: v for k, v in raw_config.items() if k in expected_fields}

        unexpected_fields = set(raw_config.keys()) - expected_fields
        if unexpected_fields:
            logger.warning("Filtered out unexpected config fields: %s", unexpected_fields)

        return HubConfig(**filtered_config)
