"""Timestamp formatting utilities."""

from datetime import datetime, timezone
from typing import Optional

DOWNLOAD_TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def download_timestamp(when: Optional[datetime] = None) -> str:
    """
    Format a timestamp for generated download file names.

    Args:
        when: Moment to format (default: now). Naive values are taken as UTC.

    Returns:
        Timestamp string like "2025-11-13_18-45-40"

    Examples:
        download_timestamp(datetime(2025, 11, 13, 18, 45, 40))
        # "2025-11-13_18-45-40"
    """
    if when is None:
        when = utc_now()
    elif when.tzinfo is not None:
        when = when.astimezone(timezone.utc)

    return when.strftime(DOWNLOAD_TIMESTAMP_FORMAT)
