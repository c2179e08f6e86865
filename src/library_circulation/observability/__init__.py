"""Logfire observability for the library circulation service.

- config.py: ``ObservabilityConfig`` read from ``LOGFIRE_*`` variables
- context.py: spans around manager and engine operations
- metrics.py: circulation counters
"""

import logging

import logfire

from .config import ObservabilityConfig

logger = logging.getLogger(__name__)


def initialize_observability(config: ObservabilityConfig | None = None) -> None:
    """Configure Logfire once for the process."""
    config = config or ObservabilityConfig()

    if not config.enabled:
        logger.debug("Observability disabled via configuration")
        return

    logfire.configure(
        token=config.token,
        service_name=config.service_name,
        environment=config.environment,
        send_to_logfire=config.send_to_logfire,
        console=None if config.console_output else False,
    )


__all__ = [
    "ObservabilityConfig",
    "initialize_observability",
]
