"""
Rendering context logger.

Provides logging interface for rendering context with automatic [render] prefix.
All rendering modules should import from this module, not from loguru directly.
"""

from typing import List

from loguru import logger

CONTEXT_PREFIX = "[render]"


def _log_info(message: str) -> None:
    """Log info message with [render] prefix."""
    logger.info(f"{CONTEXT_PREFIX} {message}")


def _log_success(message: str) -> None:
    """Log success message with [render] prefix."""
    logger.success(f"{CONTEXT_PREFIX} {message}")


def _log_error(message: str) -> None:
    """Log error message with [render] prefix."""
    logger.error(f"{CONTEXT_PREFIX} {message}")


def _log_warning(message: str) -> None:
    """Log warning message with [render] prefix."""
    logger.warning(f"{CONTEXT_PREFIX} {message}")


def _log_debug(message: str) -> None:
    """Log debug message with [render] prefix."""
    logger.debug(f"{CONTEXT_PREFIX} {message}")


# High-level rendering-specific logging helpers


def log_render_start(pid: int, arguments: List[str], working_dir) -> None:
    """Log start of a renderer process with context."""
    _log_info(f"Quarto render process {pid} started in {working_dir}")
    _log_debug(f"  Arguments: {' '.join(arguments)}")


def log_renderer_line(level_name: str, pid: int, message: str) -> None:
    """Forward one coalesced renderer log line at the given level."""
    logger.log(level_name, f"{CONTEXT_PREFIX} Quarto render process {pid}: {message}")


def log_renderer_stderr(pid: int, stderr: str) -> None:
    """
    Dump renderer stderr after a failed run.

    Uses opt(raw=True) to bypass the format template and keep the original
    multi-line formatting.
    """
    if stderr.strip():
        logger.opt(raw=True).debug(
            f"\n{'=' * 80}\nQUARTO STDERR (process {pid}):\n{'=' * 80}\n{stderr}\n"
        )


def log_render_result(pid: int, exit_code: int, success: bool, elapsed_time: float) -> None:
    """Log the final verdict of a render."""
    if success:
        _log_success(f"Quarto render process {pid} succeeded (exit code {exit_code}, {elapsed_time:.2f}s)")
    else:
        _log_error(f"Quarto render process {pid} failed (exit code {exit_code}, {elapsed_time:.2f}s)")
