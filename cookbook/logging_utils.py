"""Logging helpers shared by the data-access layer and the web app.

Usage:
    from .logging_utils import get_logger, log_operation

    logger = get_logger(__name__)
    log_operation(logger, operation="update_recipe", outcome="success", recipe_id=3)
"""

import logging
from typing import Any

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the ``cookbook.`` prefix."""
    if "." in name:
        name = name.split(".")[-1]
    return logging.getLogger(f"cookbook.{name}")


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


def log_operation(
    logger: logging.Logger,
    operation: str,
    outcome: str,
    level: int = logging.INFO,
    **context: Any,
) -> None:
    """Log a write operation with its outcome and context fields.

    The context is rendered into the message as ``key=value`` pairs and is
    also passed through ``extra`` for structured handlers.
    """
    parts = [f"{key}={value}" for key, value in context.items()]
    message = f"{operation}: {outcome}"
    if parts:
        message = f"{message} ({', '.join(parts)})"
    logger.log(level, message, extra={"operation": operation, "outcome": outcome, **context})
