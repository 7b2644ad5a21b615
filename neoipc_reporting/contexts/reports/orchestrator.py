"""
Report rendering orchestration.

Ties the contexts together for one request: stage a workspace for the
descriptor's template directory, run Quarto in it, classify the outcome and
release the workspace on every path out.
"""

import asyncio
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional

from dotenv import load_dotenv

from neoipc_reporting.contexts.rendering.log_classifier import (
    minimum_level,
    read_log_classification,
)
from neoipc_reporting.contexts.rendering.logger import (
    log_render_result,
    log_renderer_stderr,
)
from neoipc_reporting.contexts.rendering.supervisor import (
    QUARTO_BINARY,
    build_render_arguments,
    build_render_environment,
    run_renderer,
)
from neoipc_reporting.contexts.reports.catalog import get_variant
from neoipc_reporting.contexts.reports.descriptor import ReportDescriptor, download_filename
from neoipc_reporting.contexts.staging.workspace import Workspace, ensure_shared_tooling
from neoipc_reporting.utils.runtime import is_development

load_dotenv()

RENDER_TIMEOUT_S = float(os.getenv("RENDER_TIMEOUT_S", "360"))


@dataclass
class RenderOutcome:
    """
    Final result of a render request.

    Attributes:
        exit_code: Renderer exit code
        success: Final verdict (may be True for a nonzero exit code)
        output: Rendered document (empty unless success)
        diagnostics: Parsed renderer log records (failures in development mode only)
        media_type: Media type of output
        filename: Suggested download file name (success only)
    """

    exit_code: int
    success: bool
    output: bytes = b""
    diagnostics: Optional[List[Any]] = None
    media_type: Optional[str] = None
    filename: Optional[str] = None


def _release_when_staged(staging: "asyncio.Future[Workspace]") -> None:
    if not staging.cancelled() and staging.exception() is None:
        staging.result().release()


async def _stage(template_dir: Path) -> Workspace:
    staging = asyncio.ensure_future(asyncio.to_thread(Workspace.create, template_dir))
    try:
        return await asyncio.shield(staging)
    except asyncio.CancelledError:
        # The worker thread cannot be interrupted; release whatever it produces
        staging.add_done_callback(_release_when_staged)
        raise


async def render_report(
    descriptor: ReportDescriptor,
    development: Optional[bool] = None,
    timeout: Optional[float] = RENDER_TIMEOUT_S,
    reports_root: Optional[Path] = None,
    executable: str = QUARTO_BINARY,
) -> RenderOutcome:
    """
    Render a report described by a descriptor.

    Args:
        descriptor: What to render
        development: Development mode (default: from NEOIPC_ENVIRONMENT)
        timeout: Seconds before the renderer is killed (None: no limit)
        reports_root: Root of the canonical template directories
        executable: Renderer executable

    Returns:
        RenderOutcome; output is only attached once success is certain

    Raises:
        TemplateNotFoundError: If the template or shared filters directory is missing
        RendererLaunchError: If Quarto could not be started
        DiagnosticLogMissingError: If Quarto failed without writing its log
        RenderTimeoutError: If the timeout expired
    """
    if development is None:
        development = is_development()

    variant = get_variant(descriptor.kind)
    await asyncio.to_thread(ensure_shared_tooling)
    workspace = await _stage(variant.template_path(reports_root))

    try:
        arguments = build_render_arguments(
            descriptor.template_file,
            descriptor.media_type,
            descriptor.parameters,
            workspace.log_path,
            development,
        )
        result = await run_renderer(
            arguments,
            workspace.path,
            env=build_render_environment(descriptor.session_id),
            timeout=timeout,
            executable=executable,
        )

        success = result.exit_code == 0
        diagnostics = None
        if not success:
            log_renderer_stderr(result.pid, result.stderr)
            classification = await asyncio.to_thread(
                read_log_classification,
                workspace.log_path,
                result.exit_code,
                minimum_level(development),
                result.pid,
            )
            success = classification.success
            if not success and development:
                diagnostics = classification.records

        log_render_result(result.pid, result.exit_code, success, result.elapsed_time)

        if not success:
            return RenderOutcome(
                exit_code=result.exit_code,
                success=False,
                diagnostics=diagnostics,
                media_type=descriptor.media_type,
            )

        return RenderOutcome(
            exit_code=result.exit_code,
            success=True,
            output=result.stdout,
            media_type=descriptor.media_type,
            filename=download_filename(variant, descriptor.media_type),
        )
    finally:
        workspace.release()
