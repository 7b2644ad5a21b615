"""Exceptions raised by the reporting contexts, grouped by failure category."""

from pathlib import Path
from typing import Optional


class ReportingError(Exception):
    """Base class for all reporting errors."""


# Precondition errors: nothing was staged or launched


class MissingSessionError(ReportingError):
    """Raised when the request carries no DHIS2 session cookie."""

    def __init__(self, cookie_name: str = "JSESSIONID"):
        self.cookie_name = cookie_name
        super().__init__(f"{cookie_name} is missing.")


class TemplateNotFoundError(ReportingError):
    """
    Raised when a canonical template directory does not exist.

    Attributes:
        path: The directory that was expected
    """

    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Report directory '{path}' not found.")


class InvalidParameterError(ReportingError, ValueError):
    """
    Raised when a render parameter fails validation.

    Attributes:
        name: Query parameter name
        value: Offending value
    """

    def __init__(self, name: str, value: str, reason: Optional[str] = None):
        self.name = name
        self.value = value
        message = f"Invalid value for '{name}': {value!r}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


# Negotiation errors


class UnsupportedMediaTypeError(ReportingError):
    """Raised when none of the requested media types can be produced."""

    def __init__(self, accept: Optional[str] = None):
        self.accept = accept
        super().__init__(f"None of the requested media types is supported: {accept!r}")


# Infrastructure errors: the renderer could not be run or inspected


class RendererLaunchError(ReportingError):
    """Raised when the renderer process could not be started at all."""

    def __init__(self, executable: str, original_error: Optional[Exception] = None):
        self.executable = executable
        self.original_error = original_error
        message = f"Failed to launch renderer '{executable}'"
        if original_error:
            message += f": {original_error}"
        super().__init__(message)


class DiagnosticLogMissingError(ReportingError):
    """Raised when the renderer exited nonzero without writing its diagnostic log."""

    def __init__(self, log_path: Path, exit_code: int):
        self.log_path = log_path
        self.exit_code = exit_code
        super().__init__(
            f"Renderer exited with code {exit_code} but wrote no diagnostic log at {log_path}"
        )


class RenderTimeoutError(ReportingError):
    """Raised when the renderer did not finish within the request deadline."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Renderer did not finish within {timeout:g} seconds")
