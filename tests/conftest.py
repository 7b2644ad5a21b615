"""Shared fixtures: template trees, a fake Quarto executable, isolated temp dirs."""

import stat
import sys
import tempfile
import textwrap
from pathlib import Path

import pytest

from neoipc_reporting.contexts.staging import workspace as workspace_module

KNOWN_DEFECT_TEMPLATE = (
    "NotFound: No such file or directory (os error 2): "
    "rename '{cwd}/-' -> '{cwd}/_output/-'"
)

FAKE_QUARTO = textwrap.dedent(
    '''
    import json
    import os
    import sys
    import time
    from pathlib import Path

    args = sys.argv[1:]
    log_path = Path(args[args.index("--log") + 1])
    mode = os.environ.get("FAKE_QUARTO_MODE", "ok")
    cwd = os.getcwd()

    pidfile = os.environ.get("FAKE_QUARTO_PIDFILE")
    if pidfile:
        Path(pidfile).write_text(json.dumps({"pid": os.getpid(), "cwd": cwd}))

    def log(level, msg):
        with open(log_path, "a", encoding="utf-8") as f:
            f.write(json.dumps({"levelName": level, "msg": msg}) + "\\n")

    out = sys.stdout.buffer

    if mode == "ok":
        log("INFO", "rendering")
        out.write(Path(args[1]).read_bytes())
        sys.exit(0)
    elif mode == "echo":
        payload = {
            "args": args,
            "cwd": cwd,
            "session": os.environ.get("NEOIPC_DHIS2_SESSION_ID"),
            "lc_all": os.environ.get("LC_ALL"),
            "files": sorted(os.listdir(cwd)),
        }
        out.write(json.dumps(payload).encode())
        sys.exit(0)
    elif mode == "known-defect":
        out.write(b"<html>complete</html>")
        log("INFO", "Output created")
        log("ERROR", "''' + KNOWN_DEFECT_TEMPLATE + '''".format(cwd=cwd))
        sys.exit(1)
    elif mode == "error":
        out.write(b"partial")
        log("INFO", "starting")
        log("ERROR", "Error in R code: object 'x' not found")
        sys.stderr.write("render failed\\n")
        sys.exit(1)
    elif mode == "nolog":
        sys.exit(3)
    elif mode == "large":
        out.write(b"x" * (2 * 1024 * 1024))
        sys.stderr.write("e" * (512 * 1024))
        sys.exit(0)
    elif mode == "hang":
        time.sleep(60)
        sys.exit(0)
    '''
)


@pytest.fixture
def fake_quarto(tmp_path) -> str:
    """Path to an executable that imitates `quarto render` (behavior via FAKE_QUARTO_MODE)."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    script = bin_dir / "fake_quarto.py"
    script.write_text(FAKE_QUARTO)

    # No exec: like the real launcher, the shell stays the parent of the renderer
    wrapper = bin_dir / "quarto"
    wrapper.write_text(f"#!/bin/sh\n'{sys.executable}' '{script}' \"$@\"\n")
    wrapper.chmod(wrapper.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(wrapper)


@pytest.fixture
def reports_root(tmp_path) -> Path:
    """A reports root with reference and partner template directories."""
    root = tmp_path / "reports"

    reference = root / "Reference Report"
    (reference / "R").mkdir(parents=True)
    (reference / "Reference Report.qmd").write_text("<html>reference</html>")
    (reference / "Reference Report.de.qmd").write_text("<html>Referenzbericht</html>")
    (reference / "_quarto.yml").write_text("project:\n  type: default\n")
    (reference / "R" / "helpers.R").write_text("f <- function() 1\n")
    (reference / ".gitignore").write_text("_output/\n")

    partner = root / "Partner Report"
    partner.mkdir(parents=True)
    (partner / "Partner Report.qmd").write_text("<html>partner</html>")

    return root


@pytest.fixture
def isolated_tmp(tmp_path, monkeypatch) -> Path:
    """Redirect tempfile's default directory so leftover workspaces can be counted."""
    temp_root = tmp_path / "tmp"
    temp_root.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(temp_root))
    return temp_root


@pytest.fixture(autouse=True)
def shared_tooling_prepared(tmp_path, monkeypatch) -> Path:
    """Mark the shared filters directory as prepared so renders do not need /reports/filters."""
    filters = tmp_path / "filters"
    filters.mkdir()
    monkeypatch.setattr(workspace_module, "_shared_tooling_dir", filters)
    return filters
