"""
Command-line contract of the DHIS2 dataset import tool.

The import itself (authentication, fetching, serialization) is done by the
external `import-dhis2.R` script. This module only models its options and
builds a well-formed invocation, so callers never assemble the argument list
by hand.

The --include-invalid-patients option takes either an R logical or a path to
a CSV file of validation exceptions. Both cases are kept explicit here
(IncludeInvalidPatients | ValidationExceptionsFile); a value that could be
read either way is rejected instead of guessed.
"""

import os
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import List, Optional, Union

from dotenv import load_dotenv

load_dotenv()

RSCRIPT_BINARY = os.getenv("RSCRIPT_BINARY", "Rscript")
IMPORT_SCRIPT_PATH = Path(os.getenv("IMPORT_SCRIPT_PATH", "/reports/R/import-dhis2.R"))

# Spellings R's as.logical() accepts
R_TRUE = ("TRUE", "true", "True", "T")
R_FALSE = ("FALSE", "false", "False", "F")


class AmbiguousPolicyError(ValueError):
    """Raised when a policy value is both a logical spelling and an existing file."""


@dataclass(frozen=True)
class TokenCredentials:
    """Personal access token, or path to a file containing it."""

    token: str


@dataclass(frozen=True)
class PasswordCredentials:
    """Username login; the tool prompts for the password itself."""

    username: str


@dataclass(frozen=True)
class SessionCredentials:
    """An existing DHIS2 session id (JSESSIONID)."""

    session_id: str


Credentials = Union[TokenCredentials, PasswordCredentials, SessionCredentials]


@dataclass(frozen=True)
class IncludeInvalidPatients:
    """Include (True) or exclude (False) all records with validation errors."""

    include: bool


@dataclass(frozen=True)
class ValidationExceptionsFile:
    """Skip validation only for the records listed in a CSV file."""

    path: Path


InvalidPatientPolicy = Union[IncludeInvalidPatients, ValidationExceptionsFile]


def parse_invalid_patient_policy(value: Union[str, bool, Path]) -> InvalidPatientPolicy:
    """
    Parse a --include-invalid-patients value.

    Args:
        value: An R logical spelling, a bool, or a path to an exceptions file

    Returns:
        IncludeInvalidPatients or ValidationExceptionsFile

    Raises:
        AmbiguousPolicyError: If a logical spelling also names an existing file
        ValueError: If value is empty

    Examples:
        parse_invalid_patient_policy("TRUE")          # IncludeInvalidPatients(True)
        parse_invalid_patient_policy("exceptions.csv")  # ValidationExceptionsFile(...)
    """
    if isinstance(value, bool):
        return IncludeInvalidPatients(value)
    if isinstance(value, Path):
        return ValidationExceptionsFile(value)

    text = value.strip()
    if not text:
        raise ValueError("Invalid-patient policy must not be empty")

    if text in R_TRUE or text in R_FALSE:
        if Path(text).is_file():
            raise AmbiguousPolicyError(
                f"'{text}' is both a logical value and an existing file; "
                f"pass './{text}' to use the file"
            )
        return IncludeInvalidPatients(text in R_TRUE)

    return ValidationExceptionsFile(Path(text))


@dataclass
class ImportRequest:
    """
    Options for one dataset import.

    Attributes:
        output: Output file (None writes to stdout)
        raw: Write serialized R objects (True) or plain JSON (False)
        date_from, date_to: Surveillance end date range
        birth_weight_from, birth_weight_to: Birth weight range in grams
        gestational_age_from, gestational_age_to: Gestational age range in completed weeks
        countries: ISO 3166 country codes
        invalid_patients: Validation policy (default: exclude invalid records)
        scheme, host, port, api_path: DHIS2 connection settings
        credentials: At most one credential kind (None: tool default)
    """

    output: Optional[Path] = None
    raw: bool = True
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    birth_weight_from: Optional[int] = None
    birth_weight_to: Optional[int] = None
    gestational_age_from: Optional[int] = None
    gestational_age_to: Optional[int] = None
    countries: List[str] = field(default_factory=list)
    invalid_patients: InvalidPatientPolicy = field(
        default_factory=lambda: IncludeInvalidPatients(False)
    )
    scheme: str = "https"
    host: str = "neoipc.charite.de"
    port: Optional[int] = None
    api_path: str = "/api"
    credentials: Optional[Credentials] = None


def _policy_argument(policy: InvalidPatientPolicy) -> str:
    if isinstance(policy, IncludeInvalidPatients):
        return "TRUE" if policy.include else "FALSE"
    if isinstance(policy, ValidationExceptionsFile):
        return str(policy.path)
    raise TypeError(f"Unknown invalid-patient policy: {policy!r}")


def _credential_arguments(credentials: Optional[Credentials]) -> List[str]:
    if credentials is None:
        return []
    if isinstance(credentials, TokenCredentials):
        return ["--token", credentials.token]
    if isinstance(credentials, PasswordCredentials):
        return ["--username", credentials.username]
    if isinstance(credentials, SessionCredentials):
        return ["--session-id", credentials.session_id]
    raise TypeError(f"Unknown credentials: {type(credentials).__name__}")


def build_import_command(
    request: ImportRequest,
    script: Path = IMPORT_SCRIPT_PATH,
    rscript: str = RSCRIPT_BINARY,
) -> List[str]:
    """
    Build the argv that runs the import tool for a request.

    Args:
        request: Import options
        script: Path to import-dhis2.R
        rscript: Rscript executable

    Returns:
        Argument list, executable first
    """
    command = [rscript, str(script)]

    if request.output is not None:
        command.extend(["--output", str(request.output)])
    command.extend(["--raw", "TRUE" if request.raw else "FALSE"])

    optional = [
        ("--date-from", request.date_from.isoformat() if request.date_from else None),
        ("--date-to", request.date_to.isoformat() if request.date_to else None),
        ("--birth-weight-from", request.birth_weight_from),
        ("--birth-weight-to", request.birth_weight_to),
        ("--gestational-age-from", request.gestational_age_from),
        ("--gestational-age-to", request.gestational_age_to),
        ("--countries", ",".join(request.countries) if request.countries else None),
    ]
    for flag, value in optional:
        if value is not None:
            command.extend([flag, str(value)])

    command.extend(["--include-invalid-patients", _policy_argument(request.invalid_patients)])

    command.extend(["--scheme", request.scheme, "--host", request.host])
    if request.port is not None:
        command.extend(["--port", str(request.port)])
    command.extend(["--path", request.api_path])

    command.extend(_credential_arguments(request.credentials))
    return command
