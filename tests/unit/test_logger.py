"""Unit tests for loguru setup."""

import sys

import pytest
from loguru import logger

from neoipc_reporting import __version__
from neoipc_reporting.utils.logger import setup_logger


@pytest.fixture(autouse=True)
def restore_default_handler():
    yield
    logger.remove()
    logger.add(sys.stderr)


@pytest.mark.unit
def test_file_handler_captures_debug_and_provenance(tmp_path):
    log_file = setup_logger(
        "api",
        log_dir=tmp_path / "logs",
        console_level="WARNING",
        extra_provenance={"Quarto": "/usr/bin/quarto"},
    )
    logger.debug("[render] debug detail")
    # Removing the handlers flushes the enqueued file sink
    logger.remove()

    assert log_file == tmp_path / "logs" / "api.log"
    content = log_file.read_text()
    assert f"neoipc-reporting {__version__}" in content
    assert "Quarto: /usr/bin/quarto" in content
    assert "[render] debug detail" in content


@pytest.mark.unit
def test_console_only(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    assert setup_logger("render", log_dir=None) is None
    assert list(tmp_path.rglob("*.log")) == []
