"""
Reports Context

Responsibilities:
- Defines the closed set of report variants (reference, partner)
- Builds immutable report descriptors from request data
- Orchestrates staging, rendering and classification for one request

Owns: Report catalog, parameter sanitization, download naming
Never: Talks HTTP
"""

from neoipc_reporting.contexts.reports.catalog import ReportKind, ReportVariant, get_variant
from neoipc_reporting.contexts.reports.descriptor import (
    ReportDescriptor,
    ReportFilters,
    build_descriptor,
    build_render_parameters,
    download_filename,
)
from neoipc_reporting.contexts.reports.orchestrator import RenderOutcome, render_report

__all__ = [
    "RenderOutcome",
    "ReportDescriptor",
    "ReportFilters",
    "ReportKind",
    "ReportVariant",
    "build_descriptor",
    "build_render_parameters",
    "download_filename",
    "get_variant",
    "render_report",
]
