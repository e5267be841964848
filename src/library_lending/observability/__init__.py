"""Logfire observability for the lending service."""

import logging

import logfire

from .config import ObservabilityConfig

logger = logging.getLogger(__name__)

_config: ObservabilityConfig | None = None


def initialize_observability(config: ObservabilityConfig | None = None) -> None:
    """Initialize Logfire with configuration; a no-op when disabled."""
    global _config  # noqa: PLW0603
    _config = config or ObservabilityConfig()

    if not _config.enabled:
        logger.debug("Observability disabled via configuration")
        return

    logfire.configure(
        token=_config.token or None,
        service_name=_config.service_name,
        environment=_config.environment,
        send_to_logfire=_config.send_to_logfire,
        console=None if _config.console_output else False,
    )

    if _config.system_metrics:
        logfire.instrument_system_metrics()


def get_observability_config() -> ObservabilityConfig:
    """Get current observability configuration."""
    global _config  # noqa: PLW0603
    if _config is None:
        _config = ObservabilityConfig()
    return _config


__all__ = [
    "ObservabilityConfig",
    "get_observability_config",
    "initialize_observability",
]
