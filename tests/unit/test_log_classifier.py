"""Unit tests for Quarto diagnostic log classification."""

import json

import pytest

from neoipc_reporting.contexts.rendering import log_classifier
from neoipc_reporting.contexts.rendering.log_classifier import (
    KNOWN_DEFECT_URL,
    EmittedLine,
    Severity,
    classify_log,
    minimum_level,
    parse_level_override,
    parse_log_line,
    read_log_classification,
    severity_from_name,
)
from neoipc_reporting.exceptions import DiagnosticLogMissingError

KNOWN_DEFECT_MESSAGE = (
    "NotFound: No such file or directory (os error 2): "
    "rename '/tmp/quarto_report_k3j2x9/-' -> '/tmp/quarto_report_k3j2x9/_output/-'"
)


def record(level: str, msg: str) -> str:
    return json.dumps({"levelName": level, "msg": msg})


@pytest.mark.unit
class TestParseLogLine:
    """Tests for parse_log_line function."""

    def test_parses_entry(self):
        raw, entry = parse_log_line(record("WARNING", "slow chunk"), 4)

        assert raw == {"levelName": "WARNING", "msg": "slow chunk"}
        assert entry.level == Severity.WARNING
        assert entry.message == "slow chunk"
        assert entry.position == 4

    def test_keeps_undecodable_line_as_text(self):
        raw, entry = parse_log_line("not json at all\n", 0)

        assert raw == "not json at all"
        assert entry is None

    @pytest.mark.parametrize(
        "line",
        [
            json.dumps(["a", "b"]),
            json.dumps({"msg": "no level"}),
            json.dumps({"levelName": "INFO"}),
            json.dumps({"levelName": "INFO", "msg": "   "}),
        ],
    )
    def test_records_without_entry(self, line):
        raw, entry = parse_log_line(line, 0)

        assert raw == json.loads(line)
        assert entry is None


@pytest.mark.unit
@pytest.mark.parametrize(
    "name, expected",
    [
        ("INFO", Severity.INFO),
        ("WARNING", Severity.WARNING),
        ("ERROR", Severity.ERROR),
        ("CRITICAL", Severity.CRITICAL),
        ("DEBUG", Severity.DEBUG),
        ("TRACE", Severity.DEBUG),
        (None, Severity.DEBUG),
    ],
)
def test_severity_from_name(name, expected):
    assert severity_from_name(name) == expected


@pytest.mark.unit
def test_minimum_level_follows_runtime_mode(monkeypatch):
    monkeypatch.setattr(log_classifier, "RENDER_LOG_LEVEL", None)

    assert minimum_level(development=True) == Severity.DEBUG
    assert minimum_level(development=False) == Severity.INFO


@pytest.mark.unit
@pytest.mark.parametrize(
    "value, expected",
    [("warning", Severity.WARNING), (" ERROR ", Severity.ERROR), (None, None), ("", None)],
)
def test_parse_level_override(value, expected):
    assert parse_level_override(value) == expected


@pytest.mark.unit
def test_unknown_level_override_is_ignored_with_warning():
    from loguru import logger

    messages = []
    sink_id = logger.add(lambda m: messages.append(m.record), level="WARNING")
    try:
        assert parse_level_override("verbose") is None
    finally:
        logger.remove(sink_id)

    assert len(messages) == 1
    assert "RENDER_LOG_LEVEL" in messages[0]["message"]


@pytest.mark.unit
def test_level_override_replaces_mode_default(monkeypatch):
    monkeypatch.setattr(log_classifier, "RENDER_LOG_LEVEL", Severity.WARNING)

    assert minimum_level(development=True) == Severity.WARNING
    assert minimum_level(development=False) == Severity.WARNING


@pytest.mark.unit
def test_known_defect_alone_is_success_with_one_debug_note():
    result = classify_log([record("ERROR", KNOWN_DEFECT_MESSAGE)], exit_code=1)

    assert result.success is True
    assert result.known_defect_hits == 1
    assert len(result.emitted) == 1
    assert result.emitted[0].level == Severity.DEBUG
    assert KNOWN_DEFECT_URL in result.emitted[0].message
    assert not any(line.level >= Severity.ERROR for line in result.emitted)


@pytest.mark.unit
def test_known_defect_needs_matching_exit_code():
    result = classify_log([record("ERROR", KNOWN_DEFECT_MESSAGE)], exit_code=2)

    assert result.success is False
    assert result.emitted == [EmittedLine(Severity.ERROR, KNOWN_DEFECT_MESSAGE)]


@pytest.mark.unit
def test_known_defect_needs_error_level():
    result = classify_log([record("WARNING", KNOWN_DEFECT_MESSAGE)], exit_code=1)

    assert result.success is False


@pytest.mark.unit
@pytest.mark.parametrize(
    "message",
    [
        "NotFound: No such file or directory (os error 2): rename '/tmp/other/-' -> '/tmp/other/_output/-'",
        "NotFound: No such file or directory (os error 2): "
        "rename '/tmp/quarto_report_a/report.html' -> '/tmp/quarto_report_a/_output/report.html'",
        "PermissionDenied: rename '/tmp/quarto_report_a/-' -> '/tmp/quarto_report_a/_output/-'",
    ],
)
def test_similar_errors_are_not_the_known_defect(message):
    assert classify_log([record("ERROR", message)], exit_code=1).success is False


@pytest.mark.unit
def test_known_defect_anywhere_in_stream_overrides_other_errors():
    lines = [
        record("ERROR", "first problem"),
        record("ERROR", KNOWN_DEFECT_MESSAGE),
    ]

    assert classify_log(lines, exit_code=1).success is True


@pytest.mark.unit
def test_unrelated_error_is_failure_with_verbatim_records():
    lines = [
        record("INFO", "starting"),
        "",
        record("ERROR", "Error in R code: object 'x' not found"),
        "garbage",
    ]

    result = classify_log(lines, exit_code=1)

    assert result.success is False
    assert result.known_defect_hits == 0
    assert result.records == [
        {"levelName": "INFO", "msg": "starting"},
        {"levelName": "ERROR", "msg": "Error in R code: object 'x' not found"},
        "garbage",
    ]


@pytest.mark.unit
def test_consecutive_records_at_same_level_are_coalesced():
    lines = [
        record("INFO", "a"),
        record("INFO", "b"),
        record("WARNING", "c"),
        record("INFO", "d"),
        record("INFO", "e"),
    ]

    result = classify_log(lines, exit_code=1)

    assert result.emitted == [
        EmittedLine(Severity.INFO, "a\nb"),
        EmittedLine(Severity.WARNING, "c"),
        EmittedLine(Severity.INFO, "d\ne"),
    ]


@pytest.mark.unit
def test_records_below_threshold_are_dropped():
    lines = [
        record("DEBUG", "noise"),
        record("INFO", "a"),
        record("DEBUG", "more noise"),
        record("INFO", "b"),
    ]

    result = classify_log(lines, exit_code=1, level_threshold=Severity.INFO)

    assert result.emitted == [EmittedLine(Severity.INFO, "a\nb")]
    assert len(result.records) == 4


@pytest.mark.unit
def test_known_defect_flushes_pending_buffer_first():
    lines = [
        record("INFO", "a"),
        record("INFO", "b"),
        record("ERROR", KNOWN_DEFECT_MESSAGE),
        record("INFO", "c"),
    ]

    result = classify_log(lines, exit_code=1)

    assert [line.level for line in result.emitted] == [Severity.INFO, Severity.DEBUG, Severity.INFO]
    assert result.emitted[0].message == "a\nb"
    assert result.emitted[2].message == "c"


@pytest.mark.unit
def test_empty_log_is_failure():
    result = classify_log([], exit_code=1)

    assert result.success is False
    assert result.records == []
    assert result.emitted == []


@pytest.mark.unit
def test_read_log_classification_missing_file(tmp_path):
    with pytest.raises(DiagnosticLogMissingError) as exc_info:
        read_log_classification(tmp_path / "quarto-log.json", 1, Severity.DEBUG, pid=1234)

    assert exc_info.value.exit_code == 1


@pytest.mark.unit
def test_read_log_classification_forwards_lines_to_logger(tmp_path):
    from loguru import logger

    log_path = tmp_path / "quarto-log.json"
    log_path.write_text(
        "\n".join([record("WARNING", "slow"), record("ERROR", KNOWN_DEFECT_MESSAGE)]) + "\n"
    )

    messages = []
    sink_id = logger.add(lambda m: messages.append(m.record), level="DEBUG")
    try:
        result = read_log_classification(log_path, 1, Severity.DEBUG, pid=4321)
    finally:
        logger.remove(sink_id)

    assert result.success is True
    forwarded = [(m["level"].name, m["message"]) for m in messages]
    assert forwarded[0] == ("WARNING", "[render] Quarto render process 4321: slow")
    assert forwarded[1][0] == "DEBUG"
    assert "Hit well-known Quarto bug" in forwarded[1][1]
