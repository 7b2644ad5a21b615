"""
Generic logger setup utilities.

Provides reusable loguru configuration with provenance tracking.
Context-specific wrappers should be defined in contexts/{context}/logger.py.
"""

import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from loguru import logger

from neoipc_reporting import __version__

load_dotenv()

# Default level colors for console output
LEVEL_COLORS = {
    "WARNING": "<yellow>",
    "ERROR": "<red>",
    "CRITICAL": "<bold><red>",
}


def setup_logger(
    context_name: str,
    log_dir: Optional[Path] = None,
    console_level: str = "INFO",
    extra_provenance: Optional[dict] = None,
    level_colors: Optional[dict] = None,
) -> Optional[Path]:
    """
    Configure loguru for a context with provenance tracking.

    Sets up console output and, when a log directory is given, a file handler
    that captures everything down to DEBUG. Logs execution provenance
    (script, command, working directory, Python version) once configured.

    Args:
        context_name: Context identifier (e.g., "render", "api")
        log_dir: Directory for the log file (None for console only)
        console_level: Minimum level written to the console
        extra_provenance: Additional key-value pairs for provenance header
        level_colors: Override default level colors (e.g., {"INFO": "<cyan>"})

    Returns:
        Path to log file, or None when only the console is configured

    Example:
        from neoipc_reporting.utils.logger import setup_logger

        log_file = setup_logger(
            context_name="api",
            log_dir=Path("outs/logs"),
            extra_provenance={"Quarto": "quarto"}
        )
    """
    logger.remove()

    colors = {**LEVEL_COLORS, **(level_colors or {})}
    for level_name, color in colors.items():
        logger.level(level_name, color=color)

    log_file = None
    if log_dir is not None:
        log_dir.mkdir(exist_ok=True, parents=True)
        log_file = log_dir / f"{context_name}.log"
        logger.add(
            log_file,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}",
            level="DEBUG",
            enqueue=True,
        )

    logger.add(
        sys.stderr,
        format="{time:YYYY-MM-DD HH:mm:ss} | <level>{level: <8}</level> | <level>{message}</level>",
        level=console_level,
        colorize=True,
    )

    log_provenance(extra_provenance)

    return log_file


def log_provenance(extra_context: Optional[dict] = None) -> None:
    """
    Log execution provenance to current logger.

    Logs the service version and standard context (script, command, working
    directory, Python version) plus any additional context provided.

    Args:
        extra_context: Additional key-value pairs to log
    """
    logger.info("=" * 80)
    logger.info(f"neoipc-reporting {__version__}")
    logger.info(f"Script: {sys.argv[0]}")
    logger.info(f"Command: {' '.join(sys.argv)}")
    logger.info(f"Working directory: {Path.cwd()}")
    logger.info(f"Python: {sys.version.split()[0]}")

    if extra_context:
        for key, value in extra_context.items():
            logger.info(f"{key}: {value}")

    logger.info("=" * 80)
