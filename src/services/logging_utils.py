"""Service layer logging utilities.

Provides structured logging functions for service operations so cost
calculations, validation passes and catalogue edits share one log format.

Usage:
    from src.services.logging_utils import get_service_logger, log_operation

    logger = get_service_logger(__name__)

    log_operation(
        logger,
        operation="calculate_all",
        outcome="success",
        product_count=42,
        issue_count=3,
    )

    log_operation(
        logger,
        operation="fetch_rows",
        outcome="failed",
        level=logging.WARNING,
        product_id=7,
        error="connection reset",
    )
"""

import logging
from typing import Any

LOGGER_PREFIX = "cogs_engine.services"


def get_service_logger(name: str) -> logging.Logger:
    """
    Get a logger configured for service operations.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Logger instance with the 'cogs_engine.services' prefix.

    Example:
        >>> logger = get_service_logger(__name__)
        >>> logger.name
        'cogs_engine.services.cost_calculator'
    """
    if "." in name:
        name = name.split(".")[-1]
    return logging.getLogger(f"{LOGGER_PREFIX}.{name}")


def log_operation(
    logger: logging.Logger,
    operation: str,
    outcome: str,
    level: int = logging.INFO,
    **context: Any,
) -> None:
    """
    Log a service operation with structured context.

    The operation name and outcome form the message; everything in
    ``context`` is attached to the record through ``extra``.

    Args:
        logger: Logger instance to use
        operation: Operation name (e.g., "calculate_all", "resolve_cost")
        outcome: Outcome description (e.g., "success", "unit_fallback")
        level: Log level (default: INFO). Use DEBUG for per-row logs.
        **context: Additional context fields (product_id, row_id, error, ...)
    """
    extra = {
        "operation": operation,
        "outcome": outcome,
        **context,
    }
    logger.log(level, f"{operation}: {outcome}", extra=extra)
