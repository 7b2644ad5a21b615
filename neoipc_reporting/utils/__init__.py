"""
Shared utilities for the reporting service.

Common functionality used across contexts:
- Logger configuration
- Runtime mode detection
- Timestamp formatting
"""

from neoipc_reporting.utils.runtime import is_development
from neoipc_reporting.utils.timestamp import download_timestamp, utc_now

__all__ = ["download_timestamp", "is_development", "utc_now"]
