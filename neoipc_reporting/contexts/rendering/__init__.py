"""
Rendering Context

Responsibilities:
- Launches and supervises the Quarto renderer
- Classifies Quarto's diagnostic log into success or failure
- Forwards renderer diagnostics to the service log

Owns: Renderer command line, process lifecycle, log classification
Never: Modifies template content
"""

from neoipc_reporting.contexts.rendering.log_classifier import (
    LogClassification,
    LogEntry,
    Severity,
    classify_log,
    minimum_level,
    read_log_classification,
)
from neoipc_reporting.contexts.rendering.supervisor import (
    ProcessResult,
    build_render_arguments,
    build_render_environment,
    run_renderer,
)

__all__ = [
    "LogClassification",
    "LogEntry",
    "ProcessResult",
    "Severity",
    "build_render_arguments",
    "build_render_environment",
    "classify_log",
    "minimum_level",
    "read_log_classification",
    "run_renderer",
]
