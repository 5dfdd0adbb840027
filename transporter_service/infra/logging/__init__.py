"""Logging infrastructure.

Basic usage:
    from transporter_service.infra.logging import set_log_context
    import logging

    logger = logging.getLogger(__name__)

    set_log_context(job_id=42)
    logger.info("Running job")  # Automatically includes job_id
"""

from transporter_service.infra.logging.config import (
    configure_logging,
    setup_logging,
    shutdown,
)
from transporter_service.infra.logging.context import (
    ContextInjectingFilter,
    clear_log_context,
    get_log_context,
    log_context,
    set_log_context,
)
from transporter_service.infra.logging.formatters import JSONFormatter

__all__ = [
    "ContextInjectingFilter",
    "JSONFormatter",
    "clear_log_context",
    "configure_logging",
    "get_log_context",
    "log_context",
    "set_log_context",
    "setup_logging",
    "shutdown",
]
