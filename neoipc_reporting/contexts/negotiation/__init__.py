"""
Negotiation Context

Responsibilities:
- Resolves the response media type from the Accept header
- Resolves the template locale from the Accept-Language header

Owns: Header parsing and candidate ranking
Never: Touches the filesystem beyond listing translated templates
"""

from neoipc_reporting.contexts.negotiation.negotiator import (
    HTML,
    JSON,
    PDF,
    SUPPORTED_MEDIA_TYPES,
    NegotiatedOption,
    discover_translations,
    negotiate_media_type,
    negotiate_template,
    parse_quality_header,
)

__all__ = [
    "HTML",
    "JSON",
    "PDF",
    "SUPPORTED_MEDIA_TYPES",
    "NegotiatedOption",
    "discover_translations",
    "negotiate_media_type",
    "negotiate_template",
    "parse_quality_header",
]
