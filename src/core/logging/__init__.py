"""
Structured logging module.

Provides JSON logging with request IDs and context propagation.
"""

from core.logging.context import (
    clear_log_context,
    get_log_context,
    set_log_context,
)
from core.logging.formatters import ConsoleFormatter, JSONFormatter
from core.logging.setup import (
    generate_request_id,
    get_logger,
    log_service_startup,
    setup_logging,
)

__all__ = [
    # Setup
    "setup_logging",
    "get_logger",
    "generate_request_id",
    "log_service_startup",
    # Formatters
    "JSONFormatter",
    "ConsoleFormatter",
    # Context
    "set_log_context",
    "get_log_context",
    "clear_log_context",
]
