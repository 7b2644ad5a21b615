#!/usr/bin/env python3
"""
Run the reporting API with uvicorn.

Examples:\n

    serve.py                      # 0.0.0.0:8080

    serve.py --port 5000 --reload
"""

import os
from pathlib import Path

import typer
import uvicorn
from dotenv import load_dotenv
from typing_extensions import Annotated

from neoipc_reporting.contexts.rendering.supervisor import QUARTO_BINARY
from neoipc_reporting.utils.logger import setup_logger
from neoipc_reporting.utils.runtime import environment_name, is_development

load_dotenv()
LOGS_PATH = os.getenv("LOGS_PATH")


def main(
    host: Annotated[str, typer.Option("--host", help="Bind address")] = "0.0.0.0",
    port: Annotated[int, typer.Option("--port", "-p", help="Bind port")] = 8080,
    reload: Annotated[bool, typer.Option("--reload", help="Reload on code changes")] = False,
):
    """Serve the NeoIPC reporting API."""
    setup_logger(
        context_name="api",
        log_dir=Path(LOGS_PATH) if LOGS_PATH else None,
        console_level="DEBUG" if is_development() else "INFO",
        extra_provenance={"Environment": environment_name(), "Quarto": QUARTO_BINARY},
    )
    uvicorn.run("neoipc_reporting.api.app:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    typer.run(main)
