"""
Structured Logging

Every mutation in the system logs one event. Rejected user edits
(duplicate category, blocked deletion, bad import file) log a warning;
storage failures log an error.

Logs are emitted through structlog on top of the standard library
logging module, rendered as one JSON object per line.
"""

import logging
from typing import Optional

import structlog


_configured = False


def configure_logging(log_level: Optional[str] = None) -> None:
    """
    Configure structlog and the standard library root logger.

    Safe to call more than once; only the first call installs handlers.
    """
    global _configured

    if log_level is None:
        from financeflow.config import get_settings
        log_level = get_settings().app.log_level

    if not _configured:
        logging.basicConfig(format="%(message)s", level=log_level)
        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.UnicodeDecoder(),
                structlog.processors.JSONRenderer()
            ],
            wrapper_class=structlog.stdlib.BoundLogger,
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _configured = True

    logging.getLogger().setLevel(log_level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a named structured logger."""
    return structlog.get_logger(name)
