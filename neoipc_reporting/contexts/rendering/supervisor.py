"""
Quarto process supervision.

Builds the command line and environment for `quarto render` and runs it as
an asyncio subprocess. stdout (the rendered document, via --output -) is
buffered in memory while stderr is drained and the process exit is awaited
concurrently, so the child never blocks on a full pipe.
"""

import asyncio
import io
import os
import signal
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

from dotenv import load_dotenv

from neoipc_reporting.contexts.negotiation.negotiator import HTML, JSON, PDF
from neoipc_reporting.contexts.rendering.logger import _log_debug, _log_warning, log_render_start
from neoipc_reporting.exceptions import RendererLaunchError, RenderTimeoutError

load_dotenv()

QUARTO_BINARY = os.getenv("QUARTO_BINARY", "quarto")
PDF_ENGINE = os.getenv("QUARTO_PDF_ENGINE", "lualatex")
SESSION_ENV_VAR = "NEOIPC_DHIS2_SESSION_ID"

STDOUT_CHUNK_SIZE = 64 * 1024

# Pin the renderer's locale so number and date formatting do not depend on the host
LOCALE_OVERRIDES = {
    "LANGUAGE": "en_GB:en",
    "LANG": "C.utf8",
    "LC_ALL": "C.utf8",
}


@dataclass
class ProcessResult:
    """
    Outcome of one renderer process.

    Attributes:
        exit_code: Process exit code
        stdout: Everything the renderer wrote to stdout
        stderr: Decoded stderr
        pid: Process id
        elapsed_time: Wall-clock seconds from launch to exit
    """

    exit_code: int
    stdout: bytes
    stderr: str
    pid: int
    elapsed_time: float = 0.0


def format_arguments(media_type: str) -> List[str]:
    """Return the --to flag and its companions for a media type."""
    if media_type == HTML:
        return ["--to", "html", "--embed-resources", "--profile", "minimal"]
    if media_type == PDF:
        return ["--to", "pdf", f"--pdf-engine={PDF_ENGINE}"]
    if media_type == JSON:
        return ["--to", "json"]
    raise ValueError(f"Unsupported media type for rendering: {media_type}")


def build_render_arguments(
    template_file: str,
    media_type: str,
    parameters: Sequence[str],
    log_path: Path,
    development: bool,
) -> List[str]:
    """
    Build the `quarto` argument list (without the executable).

    Args:
        template_file: Template (.qmd) to render, relative to the workspace
        media_type: Negotiated response media type
        parameters: Sanitized "key:value" render parameters
        log_path: Where Quarto writes its JSON-stream log
        development: Use debug-level renderer logging

    Returns:
        Argument list

    Raises:
        ValueError: If media_type cannot be rendered
    """
    arguments = [
        "render",
        template_file,
        "--log",
        str(log_path),
        "--log-level",
        "debug" if development else "warning",
        "--log-format",
        "json-stream",
        "--quiet",
        *format_arguments(media_type),
    ]

    for parameter in parameters:
        arguments.extend(["-P", parameter])

    arguments.extend(["--output", "-"])
    return arguments


def build_render_environment(
    session_id: str, base: Optional[Mapping[str, str]] = None
) -> Dict[str, str]:
    """
    Build the renderer environment: the host environment plus the DHIS2
    session id and fixed locale settings.
    """
    env = dict(os.environ if base is None else base)
    env[SESSION_ENV_VAR] = session_id
    env.update(LOCALE_OVERRIDES)
    return env


async def _copy_stream(stream: asyncio.StreamReader, buffer: io.BytesIO) -> None:
    while True:
        chunk = await stream.read(STDOUT_CHUNK_SIZE)
        if not chunk:
            break
        buffer.write(chunk)


async def _terminate(process: asyncio.subprocess.Process) -> None:
    # The launcher's descendants (deno, R, pandoc, LaTeX) share its session and hold the pipes
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass
    await process.wait()
    _log_warning(f"Quarto render process {process.pid} terminated")


async def run_renderer(
    arguments: Sequence[str],
    cwd: Path,
    env: Optional[Mapping[str, str]] = None,
    timeout: Optional[float] = None,
    executable: str = QUARTO_BINARY,
) -> ProcessResult:
    """
    Run the renderer and collect its output.

    The stdout copy, the stderr drain and the exit wait run concurrently and
    are all joined before returning. A nonzero exit code is returned, not
    raised; deciding what it means is up to the caller. The renderer runs in
    its own session, so a timeout or cancellation kills every process it started.

    Args:
        arguments: Arguments after the executable
        cwd: Working directory (the staged workspace)
        env: Process environment (default: inherit)
        timeout: Seconds before the process is killed (None: no limit)
        executable: Renderer executable

    Returns:
        ProcessResult

    Raises:
        RendererLaunchError: If the process could not be started
        RenderTimeoutError: If the timeout expired (the process group is killed)
        asyncio.CancelledError: If the caller was cancelled (the process group is killed)
    """
    start_time = time.time()
    try:
        process = await asyncio.create_subprocess_exec(
            executable,
            *arguments,
            cwd=str(cwd),
            env=dict(env) if env is not None else None,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=True,
        )
    except OSError as e:
        raise RendererLaunchError(executable, e) from e

    log_render_start(process.pid, [executable, *arguments], cwd)

    buffer = io.BytesIO()
    joined = asyncio.gather(
        _copy_stream(process.stdout, buffer),
        process.stderr.read(),
        process.wait(),
    )

    try:
        _, stderr, exit_code = await asyncio.wait_for(joined, timeout)
    except asyncio.TimeoutError:
        await _terminate(process)
        raise RenderTimeoutError(timeout) from None
    except BaseException:
        await _terminate(process)
        raise

    elapsed_time = time.time() - start_time
    _log_debug(f"Quarto render process {process.pid} exited with code {exit_code} ({elapsed_time:.2f}s)")

    return ProcessResult(
        exit_code=exit_code,
        stdout=buffer.getvalue(),
        stderr=stderr.decode("utf-8", errors="replace"),
        pid=process.pid,
        elapsed_time=elapsed_time,
    )
