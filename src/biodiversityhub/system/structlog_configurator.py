"""Structlog-based logging configuration for Biodiversity Hub.

This module provides structured logging configuration using structlog.
Application modules keep logging through ``logging.getLogger(__name__)``;
structlog formats whatever reaches the root handler.

Supports different deployment targets:
- Docker: Uses stdout with JSON output
- Development: Human-readable console output unless JSON is requested
"""

import logging
import os
import sys
from collections.abc import Callable
from typing import Any

import structlog

from biodiversityhub.config.models import HubConfig


def is_docker_environment() -> bool:
    """Check if running in a Docker container."""
    return os.path.exists("/.dockerenv") or os.environ.get("DOCKER_CONTAINER") == "true"


def is_development_environment() -> bool:
    """Check if the development environment flag is set."""
    return os.environ.get("BIODIVERSITYHUB_ENV", "production") == "development"


def get_deployment_environment() -> str:
    """Get deployment environment with 'unknown' fallback."""
    if is_docker_environment():
        return "docker"
    elif is_development_environment():
        return "development"
    else:
        return "unknown"


def _add_static_context(extra_fields: dict[str, str]) -> Callable:
    """Processor to add static context fields to all log entries."""

    def processor(
        logger: structlog.BoundLogger, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        event_dict.update(extra_fields)
        return event_dict

    return processor


def _use_json_output(config: HubConfig) -> bool:
    """Decide between JSON and human-readable rendering."""
    use_json = config.logging.json_logs
    if use_json is None:
        # Auto-detect: JSON in containers, console everywhere else
        use_json = is_docker_environment()

    if is_development_environment():
        if os.environ.get("BIODIVERSITYHUB_JSON_LOGS", "false").lower() == "true":
            use_json = True

    return use_json


def _configure_processors(config: HubConfig) -> list:
    """Configure structlog processors based on environment."""
    extra_fields = {
        "service": "biodiversity-hub",
        "deployment": get_deployment_environment(),
        **config.logging.extra_fields,  # Allow config to override/add fields
    }
    if config.site_name:
        extra_fields["site_name"] = config.site_name

    processors = [
        structlog.contextvars.merge_contextvars,
        _add_static_context(extra_fields),
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="ISO"),
    ]

    if config.logging.include_caller:
        processors.append(structlog.processors.CallsiteParameterAdder())

    if _use_json_output(config):
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    return processors


def _configure_handlers(config: HubConfig) -> None:
    """Route standard library logging through structlog's formatter."""
    root_logger = logging.getLogger()
    log_level = getattr(logging, config.logging.level.upper(), logging.INFO)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.setLevel(log_level)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="ISO"),
    ]
    renderer = (
        structlog.processors.JSONRenderer()
        if _use_json_output(config)
        else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    )

    # CLI output goes to stdout, so diagnostics go to stderr
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
            foreign_pre_chain=shared_processors,
        )
    )
    root_logger.addHandler(console_handler)


def configure_structlog(config: HubConfig) -> None:
    """Configure structlog-based logging system.

    Args:
        config: The HubConfig instance containing logging settings.
    """
    processors = _configure_processors(config)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, config.logging.level.upper(), logging.INFO)
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    _configure_handlers(config)

    logger = structlog.get_logger(__name__)
    logger.debug(
        "Structured logging configured",
        log_level=config.logging.level,
        environment=get_deployment_environment(),
        json_output=config.logging.json_logs,
    )
