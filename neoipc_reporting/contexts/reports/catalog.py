"""
Report variant catalog.

The set of reports is closed: each ReportKind has exactly one ReportVariant,
loaded from config/reports.yaml with OmegaConf. Everything that differs
between reports (template directory, default template, producible media
types, whether filters apply) is data on the variant.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

from dotenv import load_dotenv
from omegaconf import OmegaConf

from neoipc_reporting.contexts.negotiation.negotiator import SUPPORTED_MEDIA_TYPES

load_dotenv()

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parents[2] / "config" / "reports.yaml"
REPORT_CATALOG_PATH = Path(os.getenv("REPORT_CATALOG_PATH", str(DEFAULT_CATALOG_PATH)))
REPORTS_PATH = Path(os.getenv("REPORTS_PATH", "/reports"))

REQUIRED_KEYS = ("template_dir", "report_name", "default_template", "media_types")


class ReportKind(str, Enum):
    REFERENCE = "reference"
    PARTNER = "partner"


@dataclass(frozen=True)
class ReportVariant:
    """
    Static description of one report.

    Attributes:
        kind: Variant tag
        template_dir: Template directory name under the reports root
        report_name: Human-readable name (also the default template stem)
        default_template: Template used when no translation matches
        media_types: Media types this report can be negotiated to, in tie-break order
        accepts_parameters: Whether query filters are passed to the renderer
        translations: Static locale -> template file aliases
    """

    kind: ReportKind
    template_dir: str
    report_name: str
    default_template: str
    media_types: Tuple[str, ...]
    accepts_parameters: bool = False
    translations: Mapping[str, str] = field(default_factory=dict)

    def template_path(self, reports_root: Optional[Path] = None) -> Path:
        """Canonical template directory for this report."""
        return Path(reports_root or REPORTS_PATH) / self.template_dir


def _variant_from_config(kind: ReportKind, config: dict) -> ReportVariant:
    missing = [key for key in REQUIRED_KEYS if key not in config]
    if missing:
        raise ValueError(f"Report '{kind.value}' is missing keys: {missing}")

    media_types = tuple(config["media_types"])
    unsupported = [m for m in media_types if m not in SUPPORTED_MEDIA_TYPES]
    if not media_types or unsupported:
        raise ValueError(
            f"Report '{kind.value}' lists unsupported media types: {unsupported or media_types}"
        )

    return ReportVariant(
        kind=kind,
        template_dir=config["template_dir"],
        report_name=config["report_name"],
        default_template=config["default_template"],
        media_types=media_types,
        accepts_parameters=bool(config.get("accepts_parameters", False)),
        translations=dict(config.get("translations") or {}),
    )


@lru_cache(maxsize=None)
def load_catalog(config_path: Optional[Path] = None) -> Dict[ReportKind, ReportVariant]:
    """
    Load the report catalog.

    Args:
        config_path: YAML file (default: REPORT_CATALOG_PATH)

    Returns:
        Dict mapping every ReportKind to its variant

    Raises:
        ValueError: If an entry is malformed, unknown, or a kind is missing
    """
    raw = OmegaConf.to_container(OmegaConf.load(config_path or REPORT_CATALOG_PATH), resolve=True)

    catalog = {}
    for name, config in raw.items():
        try:
            kind = ReportKind(name)
        except ValueError:
            raise ValueError(f"Unknown report kind in catalog: '{name}'") from None
        catalog[kind] = _variant_from_config(kind, config)

    missing = [kind.value for kind in ReportKind if kind not in catalog]
    if missing:
        raise ValueError(f"Report catalog has no entry for: {missing}")

    return catalog


def get_variant(kind: ReportKind, config_path: Optional[Path] = None) -> ReportVariant:
    """Look up the variant for a report kind."""
    return load_catalog(config_path)[ReportKind(kind)]
