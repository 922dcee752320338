"""Configuration access for the application container."""

from biodiversityhub.config import ConfigManager, HubConfig
from biodiversityhub.system.path_resolver import PathResolver


def get_config(path_resolver: PathResolver | None = None) -> HubConfig:
    """Load Biodiversity Hub configuration.

    Args:
        path_resolver: Optional PathResolver instance to use. If not provided,
                      creates a new PathResolver instance.

    Returns:
        HubConfig: The loaded and validated configuration.
    """
    if path_resolver is None:
        path_resolver = PathResolver()
    return ConfigManager(path_resolver).load()
