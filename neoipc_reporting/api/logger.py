"""
API logger.

Provides logging interface for the HTTP layer with automatic [api] prefix.
"""

from loguru import logger

CONTEXT_PREFIX = "[api]"


def _log_info(message: str) -> None:
    """Log info message with [api] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [api] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    """Log error message with [api] prefix."""
    logger.error(f"{CONTEXT_PREFIX} {message}")
