"""Runtime mode helpers (development vs. production)."""

import os

from dotenv import load_dotenv

load_dotenv()

DEVELOPMENT = "development"


def environment_name() -> str:
    """Current runtime environment name from NEOIPC_ENVIRONMENT (default: production)."""
    return os.getenv("NEOIPC_ENVIRONMENT", "production").strip().lower()


def is_development() -> bool:
    """True when running in development mode (verbose renderer logs, diagnostics exposed)."""
    return environment_name() == DEVELOPMENT
