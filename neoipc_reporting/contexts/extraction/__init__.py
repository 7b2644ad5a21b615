"""
Extraction Context

Responsibilities:
- Models the command-line contract of the external DHIS2 import tool
- Builds its invocation from typed options

Owns: Import tool argument construction
Never: Authenticates to DHIS2 or fetches data itself
"""

from neoipc_reporting.contexts.extraction.import_request import (
    AmbiguousPolicyError,
    ImportRequest,
    IncludeInvalidPatients,
    PasswordCredentials,
    SessionCredentials,
    TokenCredentials,
    ValidationExceptionsFile,
    build_import_command,
    parse_invalid_patient_policy,
)

__all__ = [
    "AmbiguousPolicyError",
    "ImportRequest",
    "IncludeInvalidPatients",
    "PasswordCredentials",
    "SessionCredentials",
    "TokenCredentials",
    "ValidationExceptionsFile",
    "build_import_command",
    "parse_invalid_patient_policy",
]
