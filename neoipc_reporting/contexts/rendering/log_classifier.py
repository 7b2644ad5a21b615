"""
Quarto diagnostic log classification.

Quarto writes one JSON object per line to the file given with --log when run
with --log-format json-stream. After a nonzero exit this module reads that
stream, forwards the interesting records to our logger (coalescing
consecutive records of the same level into one line), and decides whether
the render really failed.

Quarto 1.8 can exit with code 1 after writing a complete document to stdout,
because it tries to move the "-" output pseudo-file into _output/. That
record is recognized, logged at debug level, and the render is treated as
successful. See https://github.com/quarto-dev/quarto-cli/issues/13394
"""

import json
import os
import re
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Any, Iterable, List, Optional, Tuple

from dotenv import load_dotenv

from neoipc_reporting.contexts.rendering.logger import _log_warning, log_renderer_line
from neoipc_reporting.contexts.staging.workspace import WORKSPACE_PREFIX
from neoipc_reporting.exceptions import DiagnosticLogMissingError

load_dotenv()

KNOWN_DEFECT_EXIT_CODE = 1
KNOWN_DEFECT_URL = "https://github.com/quarto-dev/quarto-cli/issues/13394"

_WORKSPACE_DIR = rf"[^']*/{re.escape(WORKSPACE_PREFIX)}[^/']+"
KNOWN_DEFECT_PATTERN = re.compile(
    r"NotFound: No such file or directory \(os error 2\): "
    rf"rename '{_WORKSPACE_DIR}/-' -> '{_WORKSPACE_DIR}/_output/-'"
)


class Severity(IntEnum):
    """Log levels, numbered like loguru's built-in levels."""

    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50


SEVERITY_BY_LEVEL_NAME = {
    "INFO": Severity.INFO,
    "WARNING": Severity.WARNING,
    "ERROR": Severity.ERROR,
    "CRITICAL": Severity.CRITICAL,
}


@dataclass(frozen=True)
class LogEntry:
    """
    One classified record from the renderer log.

    Attributes:
        level: Mapped severity
        message: Message text ("msg")
        position: Line index in the log file (0-based)
    """

    level: Severity
    message: str
    position: int


@dataclass(frozen=True)
class EmittedLine:
    """A coalesced log line to forward to our own logger."""

    level: Severity
    message: str


@dataclass
class LogClassification:
    """
    Result of classifying a renderer log.

    Attributes:
        success: True if the known non-fatal defect was found
        records: Every parsed record, in file order (raw strings for undecodable lines)
        emitted: Coalesced lines to forward to the logger
        known_defect_hits: Number of records matching the known defect
    """

    success: bool
    records: List[Any] = field(default_factory=list)
    emitted: List[EmittedLine] = field(default_factory=list)
    known_defect_hits: int = 0


def severity_from_name(level_name: Optional[str]) -> Severity:
    """Map a Quarto levelName onto a Severity (unknown names map to DEBUG)."""
    return SEVERITY_BY_LEVEL_NAME.get(level_name or "", Severity.DEBUG)


def parse_level_override(value: Optional[str]) -> Optional[Severity]:
    """
    Parse a RENDER_LOG_LEVEL value.

    Unknown names are reported with a warning and ignored; minimum_level then
    uses the runtime mode default.

    Args:
        value: Level name such as "info" or "WARNING" (None or blank: no override)

    Returns:
        The Severity, or None when there is no usable override
    """
    if value is None or not value.strip():
        return None
    try:
        return Severity[value.strip().upper()]
    except KeyError:
        names = ", ".join(level.name for level in Severity)
        _log_warning(f"Ignoring unknown RENDER_LOG_LEVEL {value!r} (expected one of {names})")
        return None


RENDER_LOG_LEVEL = parse_level_override(os.getenv("RENDER_LOG_LEVEL"))


def minimum_level(development: bool) -> Severity:
    """Lowest severity forwarded to the logger (RENDER_LOG_LEVEL overrides the mode default)."""
    if RENDER_LOG_LEVEL is not None:
        return RENDER_LOG_LEVEL
    return Severity.DEBUG if development else Severity.INFO


def parse_log_line(line: str, position: int) -> Tuple[Any, Optional[LogEntry]]:
    """
    Parse one line of the JSON-stream log.

    Args:
        line: Raw line (non-blank)
        position: Line index in the file

    Returns:
        Tuple of (record kept for diagnostics, LogEntry or None). The entry is
        None when the line is not a JSON object with "levelName" and a
        non-blank "msg"; undecodable lines are returned as the raw string.
    """
    try:
        record = json.loads(line)
    except json.JSONDecodeError:
        return line.rstrip("\n"), None

    if not isinstance(record, dict) or "levelName" not in record or "msg" not in record:
        return record, None

    msg = record["msg"]
    if msg is None:
        return record, None
    message = msg if isinstance(msg, str) else json.dumps(msg)
    if not message.strip():
        return record, None

    level_name = record["levelName"]
    level = severity_from_name(level_name if isinstance(level_name, str) else None)
    return record, LogEntry(level, message, position)


def is_known_defect(entry: LogEntry, exit_code: int) -> bool:
    """True if entry is the rename failure Quarto reports after writing to stdout."""
    return (
        exit_code == KNOWN_DEFECT_EXIT_CODE
        and entry.level == Severity.ERROR
        and KNOWN_DEFECT_PATTERN.search(entry.message) is not None
    )


def classify_log(
    lines: Iterable[str],
    exit_code: int,
    level_threshold: Severity = Severity.DEBUG,
) -> LogClassification:
    """
    Fold the renderer log into a verdict and a list of coalesced log lines.

    Consecutive entries at the same level are buffered and emitted as one
    line when the level changes or the stream ends. Entries below
    level_threshold are dropped. A known-defect entry flushes the buffer,
    adds one debug note in place of the entry, and marks the run successful.

    Args:
        lines: Lines of the JSON-stream log
        exit_code: Renderer exit code
        level_threshold: Lowest severity that is emitted

    Returns:
        LogClassification
    """
    result = LogClassification(success=False)
    previous_level: Optional[Severity] = None
    buffer: List[str] = []

    def flush() -> None:
        if buffer and previous_level is not None:
            result.emitted.append(EmittedLine(previous_level, "\n".join(buffer)))
        buffer.clear()

    for position, line in enumerate(lines):
        if not line.strip():
            continue

        record, entry = parse_log_line(line, position)
        result.records.append(record)
        if entry is None:
            continue

        if is_known_defect(entry, exit_code):
            flush()
            result.emitted.append(
                EmittedLine(
                    Severity.DEBUG,
                    f"Hit well-known Quarto bug ({KNOWN_DEFECT_URL})\n{entry.message}",
                )
            )
            result.known_defect_hits += 1
            continue

        if entry.level < level_threshold:
            continue

        if entry.level != previous_level:
            flush()
            previous_level = entry.level

        buffer.append(entry.message)

    flush()
    result.success = result.known_defect_hits > 0
    return result


def read_log_classification(
    log_path: Path,
    exit_code: int,
    level_threshold: Severity,
    pid: int,
) -> LogClassification:
    """
    Classify the renderer log file and forward its lines to the logger.

    Args:
        log_path: Path passed to the renderer with --log
        exit_code: Renderer exit code
        level_threshold: Lowest severity that is forwarded
        pid: Renderer process id, used in forwarded lines

    Returns:
        LogClassification

    Raises:
        DiagnosticLogMissingError: If the log file does not exist
    """
    if not log_path.is_file():
        raise DiagnosticLogMissingError(log_path, exit_code)

    with open(log_path, encoding="utf-8", errors="replace") as f:
        classification = classify_log(f, exit_code, level_threshold)

    for line in classification.emitted:
        log_renderer_line(line.level.name, pid, line.message)

    return classification
