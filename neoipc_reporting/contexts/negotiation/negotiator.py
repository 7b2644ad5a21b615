"""
HTTP content and language negotiation.

Resolves the response media type from an Accept header and the template file
from an Accept-Language header. Both use the same ranking: quality
descending, then position in the header ascending.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

HTML = "text/html"
PDF = "application/pdf"
JSON = "application/json"

SUPPORTED_MEDIA_TYPES = (HTML, PDF, JSON)

# Quality multiplier for candidates reached through a wildcard or a language fallback
FALLBACK_QUALITY_FACTOR = 0.9

_QUALITY_PATTERN = re.compile(r"^q\s*=\s*([0-9]+(?:\.[0-9]*)?)$", re.IGNORECASE)


@dataclass(frozen=True)
class NegotiatedOption:
    """
    One ranked candidate produced during negotiation.

    Attributes:
        quality: Effective quality (0-1)
        index: Position of the originating header entry
        value: Media type or template file name
        tag: Language tag the candidate was matched on (locales only)
    """

    quality: float
    index: int
    value: str
    tag: Optional[str] = None


def parse_quality_header(value: Optional[str]) -> List[Tuple[str, float]]:
    """
    Parse an Accept-style header into ordered (token, quality) pairs.

    Parameters other than q are ignored. Entries with an unparseable q value
    are dropped; qualities are clamped to [0, 1].

    Args:
        value: Raw header value (may be None or empty)

    Returns:
        List of (token, quality) in header order

    Examples:
        parse_quality_header("text/html, application/*;q=0.5")
        # [("text/html", 1.0), ("application/*", 0.5)]
    """
    if not value:
        return []

    entries = []
    for part in value.split(","):
        token, *params = [piece.strip() for piece in part.split(";")]
        if not token:
            continue

        quality = 1.0
        valid = True
        for param in params:
            if param.partition("=")[0].strip().lower() != "q":
                continue
            match = _QUALITY_PATTERN.match(param)
            if match is None:
                valid = False
                break
            quality = min(max(float(match.group(1)), 0.0), 1.0)

        if valid:
            entries.append((token, quality))

    return entries


def _rank(candidates: Iterable[NegotiatedOption]) -> Optional[NegotiatedOption]:
    # sorted() is stable, so equal (quality, index) keep insertion order
    ranked = sorted(
        (c for c in candidates if c.quality > 0),
        key=lambda c: (-c.quality, c.index),
    )
    return ranked[0] if ranked else None


def _media_range_subsumes(media_range: str, media_type: str) -> bool:
    range_type, _, range_subtype = media_range.partition("/")
    main_type, _, subtype = media_type.partition("/")
    if range_type == "*":
        return range_subtype == "*"
    return range_type == main_type and range_subtype == "*"


def media_type_candidates(
    accept: Sequence[Tuple[str, float]],
    supported: Sequence[str] = SUPPORTED_MEDIA_TYPES,
) -> List[NegotiatedOption]:
    """Expand accept entries into candidates for the supported media types."""
    candidates = []
    for index, (token, quality) in enumerate(accept):
        requested = token.lower()
        if requested in supported:
            candidates.append(NegotiatedOption(quality, index, requested))
            continue
        for media_type in supported:
            if _media_range_subsumes(requested, media_type):
                candidates.append(
                    NegotiatedOption(quality * FALLBACK_QUALITY_FACTOR, index, media_type)
                )
    return candidates


def negotiate_media_type(
    accept: Optional[str],
    supported: Sequence[str] = SUPPORTED_MEDIA_TYPES,
) -> Optional[str]:
    """
    Pick the response media type for an Accept header.

    An exact match counts at its own quality; a wildcard range counts for
    every supported type it covers at 0.9 times its quality. A missing or
    empty header has no entries and therefore no candidates.

    Args:
        accept: Raw Accept header value
        supported: Producible media types, in preference order for ties

    Returns:
        The winning media type, or None if nothing acceptable can be produced
    """
    best = _rank(media_type_candidates(parse_quality_header(accept), supported))
    return best.value if best else None


def locale_candidates(
    accept_language: Sequence[Tuple[str, float]],
    translations: Mapping[str, str],
) -> List[NegotiatedOption]:
    """Expand Accept-Language entries into candidates for the available templates."""
    by_tag = {tag.lower(): (tag, file_name) for tag, file_name in translations.items()}
    candidates = []

    for index, (language, quality) in enumerate(accept_language):
        key = language.lower()
        if key in by_tag:
            tag, file_name = by_tag[key]
            candidates.append(NegotiatedOption(quality, index, file_name, tag))
        elif "-" in key:
            primary = key.split("-", 1)[0]
            if primary in by_tag:
                tag, file_name = by_tag[primary]
                candidates.append(
                    NegotiatedOption(quality * FALLBACK_QUALITY_FACTOR, index, file_name, tag)
                )

    return candidates


def negotiate_template(
    accept_language: Optional[str],
    translations: Mapping[str, str],
    default: str,
) -> Tuple[str, Optional[str]]:
    """
    Pick the template file for an Accept-Language header.

    Args:
        accept_language: Raw Accept-Language header value
        translations: Locale tag -> template file name
        default: Template used when no locale matches

    Returns:
        Tuple of (template file name, matched locale tag or None)
    """
    best = _rank(locale_candidates(parse_quality_header(accept_language), translations))
    if best is None:
        return default, None
    return best.value, best.tag


def discover_translations(
    template_dir: Path,
    report_name: str,
    aliases: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """
    Map locale tags to translated template files in a template directory.

    Translated templates are named "<report name>.<locale>.qmd" and live in
    the top level of the directory. Static aliases are applied first, so a
    file on disk wins over an alias for the same locale.

    Args:
        template_dir: Canonical template directory
        report_name: Base name of the default template (without extension)
        aliases: Locale tag -> file name entries always available

    Returns:
        Dict of locale tag -> template file name
    """
    translations = dict(aliases or {})
    pattern = re.compile(rf"^{re.escape(report_name)}\.(.+)\.qmd$")

    if template_dir.is_dir():
        for path in sorted(template_dir.glob(f"{report_name}.*.qmd")):
            match = pattern.match(path.name)
            if match and path.is_file():
                translations[match.group(1)] = path.name

    return translations
