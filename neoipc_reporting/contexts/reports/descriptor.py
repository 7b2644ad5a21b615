"""
Report descriptors.

A ReportDescriptor is everything the renderer needs for one request: which
template directory and file, which output format, which locale, the
sanitized render parameters, and the caller's DHIS2 session. It is built
from the request once and never changed afterwards.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import List, Optional, Tuple

from neoipc_reporting.contexts.negotiation.negotiator import (
    HTML,
    JSON,
    PDF,
    discover_translations,
    negotiate_media_type,
    negotiate_template,
)
from neoipc_reporting.contexts.reports.catalog import ReportKind, ReportVariant, get_variant
from neoipc_reporting.exceptions import (
    InvalidParameterError,
    MissingSessionError,
    UnsupportedMediaTypeError,
)
from neoipc_reporting.utils.timestamp import download_timestamp

PRODUCT_NAME = "NeoIPC-Surveillance"

FILE_EXTENSIONS = {
    HTML: "html",
    PDF: "pdf",
    JSON: "json",
}

# Weights and ages are unsigned 16-bit on the DHIS2 side
MAX_INTEGER_FILTER = 65535

# Country codes and hospital identifiers; no separators that Quarto's -P parsing would split on
LIST_ITEM_PATTERN = re.compile(r"[A-Za-z0-9_. \-]+")

# (attribute, render parameter name), in the order parameters are passed
PARAMETER_NAMES = (
    ("reporting_period_from", "reportingPeriodFrom"),
    ("reporting_period_to", "reportingPeriodTo"),
    ("birth_weight_from", "birthWeightFrom"),
    ("birth_weight_to", "birthWeightTo"),
    ("gestational_age_from", "gestationalAgeFrom"),
    ("gestational_age_to", "gestationalAgeTo"),
    ("country_filter", "countryFilter"),
    ("hospital_filter", "hospitalFilter"),
    ("test_unit_filter", "testUnitFilter"),
    ("default_patient_filter", "defaultPatientFilter"),
)


@dataclass
class ReportFilters:
    """Optional record filters accepted by the reference report."""

    reporting_period_from: Optional[date] = None
    reporting_period_to: Optional[date] = None
    birth_weight_from: Optional[int] = None
    birth_weight_to: Optional[int] = None
    gestational_age_from: Optional[int] = None
    gestational_age_to: Optional[int] = None
    country_filter: List[str] = field(default_factory=list)
    hospital_filter: List[str] = field(default_factory=list)
    test_unit_filter: Optional[bool] = None
    default_patient_filter: Optional[bool] = None


@dataclass(frozen=True)
class ReportDescriptor:
    """
    Immutable description of one render request.

    Attributes:
        kind: Report variant tag
        template_dir: Template directory name under the reports root
        template_file: Template file to render (after locale negotiation)
        media_type: Negotiated response media type
        locale: Matched locale tag, or None if the default template was chosen
        parameters: Sanitized "key:value" render parameters
        session_id: DHIS2 session id passed to the renderer
    """

    kind: ReportKind
    template_dir: str
    template_file: str
    media_type: str
    locale: Optional[str] = None
    parameters: Tuple[str, ...] = ()
    session_id: str = field(default="", repr=False)


def _format_parameter(name: str, value) -> Optional[str]:
    if value is None:
        return None

    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return "true" if value else "false"

    if isinstance(value, date):
        return value.strftime("%Y-%m-%d")

    if isinstance(value, int):
        if not 0 <= value <= MAX_INTEGER_FILTER:
            raise InvalidParameterError(name, str(value), f"must be between 0 and {MAX_INTEGER_FILTER}")
        return str(value)

    if isinstance(value, (list, tuple)):
        if not value:
            return None
        for item in value:
            if not isinstance(item, str) or not LIST_ITEM_PATTERN.fullmatch(item):
                raise InvalidParameterError(name, str(item), "contains disallowed characters")
        return ",".join(value)

    raise InvalidParameterError(name, repr(value), f"unsupported type {type(value).__name__}")


def build_render_parameters(filters: Optional[ReportFilters]) -> Tuple[str, ...]:
    """
    Turn report filters into "key:value" render parameters.

    Only present filters produce a parameter. Dates are yyyy-MM-dd, booleans
    lowercase, lists comma-joined.

    Args:
        filters: Filters from the request (None for none)

    Returns:
        Tuple of parameters in a fixed order

    Raises:
        InvalidParameterError: If a value is out of range or contains disallowed characters

    Examples:
        build_render_parameters(ReportFilters(birth_weight_to=1500, country_filter=["DE", "CH"]))
        # ("birthWeightTo:1500", "countryFilter:DE,CH")
    """
    if filters is None:
        return ()

    parameters = []
    for attribute, name in PARAMETER_NAMES:
        formatted = _format_parameter(name, getattr(filters, attribute))
        if formatted is not None:
            parameters.append(f"{name}:{formatted}")
    return tuple(parameters)


def build_descriptor(
    kind: ReportKind,
    session_id: Optional[str],
    accept: Optional[str] = None,
    accept_language: Optional[str] = None,
    filters: Optional[ReportFilters] = None,
    reports_root: Optional[Path] = None,
    config_path: Optional[Path] = None,
) -> ReportDescriptor:
    """
    Build the descriptor for a report request.

    Args:
        kind: Which report
        session_id: Value of the JSESSIONID cookie
        accept: Accept header
        accept_language: Accept-Language header
        filters: Query filters (ignored by reports that take no parameters)
        reports_root: Root of the canonical template directories
        config_path: Report catalog override

    Returns:
        ReportDescriptor

    Raises:
        MissingSessionError: If session_id is missing or blank
        InvalidParameterError: If a filter value is rejected
        UnsupportedMediaTypeError: If no acceptable media type can be produced
    """
    if session_id is None or not session_id.strip():
        raise MissingSessionError()

    variant = get_variant(kind, config_path)
    parameters = build_render_parameters(filters) if variant.accepts_parameters else ()

    media_type = negotiate_media_type(accept, variant.media_types)
    if media_type is None:
        raise UnsupportedMediaTypeError(accept)

    translations = discover_translations(
        variant.template_path(reports_root), variant.report_name, variant.translations
    )
    template_file, locale = negotiate_template(
        accept_language, translations, variant.default_template
    )

    return ReportDescriptor(
        kind=variant.kind,
        template_dir=variant.template_dir,
        template_file=template_file,
        media_type=media_type,
        locale=locale,
        parameters=parameters,
        session_id=session_id,
    )


def download_filename(
    variant: ReportVariant, media_type: str, when: Optional[datetime] = None
) -> str:
    """
    Generated download name, e.g. "NeoIPC-Surveillance-Reference-Report_2025-11-13_18-45-40.pdf".
    """
    stem = variant.report_name.replace(" ", "-")
    return f"{PRODUCT_NAME}-{stem}_{download_timestamp(when)}.{FILE_EXTENSIONS[media_type]}"
