"""Unit tests for the report rendering CLI."""

import importlib.util
from pathlib import Path

import pytest
from typer.testing import CliRunner

from neoipc_reporting.contexts.negotiation.negotiator import HTML
from neoipc_reporting.contexts.reports import RenderOutcome

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "render_report.py"

runner = CliRunner()


@pytest.fixture
def cli(monkeypatch):
    """The CLI module with logging setup and rendering replaced."""
    spec = importlib.util.spec_from_file_location("render_report_cli", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    seen = []

    async def fake_render_report(descriptor, development=False, timeout=None):
        seen.append(descriptor)
        return RenderOutcome(
            exit_code=0, success=True, output=b"<html/>", media_type=HTML, filename="r.html"
        )

    monkeypatch.setattr(module, "setup_logger", lambda *args, **kwargs: None)
    monkeypatch.setattr(module, "render_report", fake_render_report)
    module.seen = seen
    return module


@pytest.mark.unit
class TestRenderCommand:
    """Tests for the render command."""

    def test_numeric_and_boolean_filters_reach_the_renderer(self, cli, tmp_path):
        target = tmp_path / "out.html"

        result = runner.invoke(
            cli.app,
            [
                "render",
                "reference",
                "-s",
                "ABC123",
                "-o",
                str(target),
                "--birth-weight-from",
                "500",
                "--birth-weight-to",
                "1500",
                "--gestational-age-from",
                "22",
                "--gestational-age-to",
                "32",
                "--no-test-units",
                "--default-patient-filter",
            ],
        )

        assert result.exit_code == 0, result.output
        assert target.read_bytes() == b"<html/>"
        parameters = cli.seen[0].parameters
        for expected in (
            "birthWeightFrom:500",
            "birthWeightTo:1500",
            "gestationalAgeFrom:22",
            "gestationalAgeTo:32",
            "testUnitFilter:false",
            "defaultPatientFilter:true",
        ):
            assert expected in parameters

    def test_boolean_filters_are_omitted_by_default(self, cli, tmp_path):
        result = runner.invoke(
            cli.app, ["render", "reference", "-s", "ABC123", "-o", str(tmp_path / "out.html")]
        )

        assert result.exit_code == 0, result.output
        parameters = cli.seen[0].parameters
        assert not any(p.startswith(("testUnitFilter:", "defaultPatientFilter:")) for p in parameters)

    def test_out_of_range_filter_is_rejected(self, cli, tmp_path):
        result = runner.invoke(
            cli.app,
            [
                "render",
                "reference",
                "-s",
                "ABC123",
                "-o",
                str(tmp_path / "out.html"),
                "--birth-weight-to",
                "70000",
            ],
        )

        assert result.exit_code != 0
        assert cli.seen == []
