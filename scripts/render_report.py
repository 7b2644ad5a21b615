#!/usr/bin/env python3
"""
Report Rendering CLI

Renders reports outside the HTTP service and prints the invocation of the
DHIS2 import tool.

Commands:
    render          - Render a report to a file
    import-command  - Print the import tool command line for a set of filters

Examples:\n

    render_report.py render reference --session-id ABC123 --type application/pdf

    render_report.py render reference -s ABC123 -l de --countries DE,CH --no-test-units

    render_report.py import-command --date-from 2024-01-01 --countries DE,CH --include-invalid TRUE
"""

import asyncio
import shlex
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import typer
from dotenv import load_dotenv
from typing_extensions import Annotated

from neoipc_reporting.contexts.extraction import (
    ImportRequest,
    PasswordCredentials,
    SessionCredentials,
    TokenCredentials,
    build_import_command,
    parse_invalid_patient_policy,
)
from neoipc_reporting.contexts.reports import (
    ReportFilters,
    ReportKind,
    build_descriptor,
    render_report,
)
from neoipc_reporting.contexts.reports.descriptor import MAX_INTEGER_FILTER
from neoipc_reporting.exceptions import ReportingError
from neoipc_reporting.utils.logger import setup_logger

load_dotenv()

app = typer.Typer(
    help="Render NeoIPC surveillance reports and build DHIS2 import commands",
    add_completion=False,
    invoke_without_command=True,
)


@app.callback()
def main(ctx: typer.Context):
    """Show help by default when no command is provided."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


def _parse_date(value: Optional[str]):
    return datetime.strptime(value, "%Y-%m-%d").date() if value else None


def _split_list(value: Optional[str]) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()] if value else []


@app.command("render")
def render_command(
    kind: Annotated[ReportKind, typer.Argument(help="Report to render")],
    session_id: Annotated[
        str, typer.Option("--session-id", "-s", help="DHIS2 session id (JSESSIONID)")
    ],
    media_type: Annotated[
        str, typer.Option("--type", "-t", help="Accept header value for the output format")
    ] = "text/html",
    language: Annotated[
        Optional[str], typer.Option("--language", "-l", help="Accept-Language header value")
    ] = None,
    output: Annotated[
        Optional[Path], typer.Option("--output", "-o", help="Output file (default: generated name)")
    ] = None,
    date_from: Annotated[Optional[str], typer.Option("--date-from", help="yyyy-mm-dd")] = None,
    date_to: Annotated[Optional[str], typer.Option("--date-to", help="yyyy-mm-dd")] = None,
    countries: Annotated[
        Optional[str], typer.Option("--countries", help="Comma-separated country codes")
    ] = None,
    hospitals: Annotated[
        Optional[str], typer.Option("--hospitals", help="Comma-separated hospital identifiers")
    ] = None,
    birth_weight_from: Annotated[
        Optional[int],
        typer.Option(help="Minimum birth weight in grams", min=0, max=MAX_INTEGER_FILTER),
    ] = None,
    birth_weight_to: Annotated[
        Optional[int],
        typer.Option(help="Maximum birth weight in grams", min=0, max=MAX_INTEGER_FILTER),
    ] = None,
    gestational_age_from: Annotated[
        Optional[int],
        typer.Option(help="Minimum gestational age in weeks", min=0, max=MAX_INTEGER_FILTER),
    ] = None,
    gestational_age_to: Annotated[
        Optional[int],
        typer.Option(help="Maximum gestational age in weeks", min=0, max=MAX_INTEGER_FILTER),
    ] = None,
    test_units: Annotated[
        Optional[bool],
        typer.Option(
            "--test-units/--no-test-units",
            help="Include or exclude test units (default: report decides)",
        ),
    ] = None,
    default_patient_filter: Annotated[
        Optional[bool],
        typer.Option(
            "--default-patient-filter/--no-default-patient-filter",
            help="Apply the default patient filter (default: report decides)",
        ),
    ] = None,
    timeout: Annotated[
        float, typer.Option("--timeout", help="Seconds before the renderer is killed", min=1)
    ] = 360,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Development mode: debug logs and diagnostics")
    ] = False,
):
    """
    Render a report to a file.

    Examples:\n

        $ render_report.py render reference -s ABC123 -t application/pdf

        $ render_report.py render partner -s ABC123 -o partner.html
    """
    setup_logger("render", console_level="DEBUG" if verbose else "INFO")

    filters = ReportFilters(
        reporting_period_from=_parse_date(date_from),
        reporting_period_to=_parse_date(date_to),
        birth_weight_from=birth_weight_from,
        birth_weight_to=birth_weight_to,
        gestational_age_from=gestational_age_from,
        gestational_age_to=gestational_age_to,
        country_filter=_split_list(countries),
        hospital_filter=_split_list(hospitals),
        test_unit_filter=test_units,
        default_patient_filter=default_patient_filter,
    )

    typer.secho(f"\nRendering: {kind.value} report", fg=typer.colors.BLUE, bold=True)

    try:
        descriptor = build_descriptor(
            kind,
            session_id=session_id,
            accept=media_type,
            accept_language=language,
            filters=filters,
        )
        outcome = asyncio.run(render_report(descriptor, development=verbose, timeout=timeout))
    except ReportingError as e:
        typer.secho(f"Error: {e}\n", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    if not outcome.success:
        typer.secho(
            f"✗ Rendering failed (exit code {outcome.exit_code})", fg=typer.colors.RED, bold=True
        )
        for record in (outcome.diagnostics or [])[:10]:
            typer.echo(f"  - {record}")
        raise typer.Exit(code=1)

    target = output or Path(outcome.filename)
    target.write_bytes(outcome.output)

    typer.secho("✓ Rendering succeeded", fg=typer.colors.GREEN, bold=True)
    typer.echo(f"  Template: {descriptor.template_file}")
    typer.echo(f"  Output: {target} ({len(outcome.output)} bytes)")
    typer.echo("")


@app.command("import-command")
def import_command(
    output: Annotated[Optional[Path], typer.Option("--output", help="Output file")] = None,
    plain_json: Annotated[
        bool, typer.Option("--json", help="Write plain JSON instead of serialized R objects")
    ] = False,
    date_from: Annotated[Optional[str], typer.Option("--date-from", help="yyyy-mm-dd")] = None,
    date_to: Annotated[Optional[str], typer.Option("--date-to", help="yyyy-mm-dd")] = None,
    birth_weight_from: Annotated[Optional[int], typer.Option(min=0)] = None,
    birth_weight_to: Annotated[Optional[int], typer.Option(min=0)] = None,
    gestational_age_from: Annotated[Optional[int], typer.Option(min=0)] = None,
    gestational_age_to: Annotated[Optional[int], typer.Option(min=0)] = None,
    countries: Annotated[
        Optional[str], typer.Option("--countries", help="Comma-separated country codes")
    ] = None,
    include_invalid: Annotated[
        str,
        typer.Option(
            "--include-invalid",
            help="TRUE/FALSE, or a CSV file listing validation exceptions",
        ),
    ] = "FALSE",
    host: Annotated[str, typer.Option("--host")] = "neoipc.charite.de",
    token: Annotated[Optional[str], typer.Option("--token")] = None,
    username: Annotated[Optional[str], typer.Option("--username")] = None,
    session_id: Annotated[Optional[str], typer.Option("--session-id")] = None,
):
    """
    Print the DHIS2 import tool command line for a set of filters.

    At most one of --token, --username and --session-id may be given.
    """
    given = [c for c in (token, username, session_id) if c is not None]
    if len(given) > 1:
        typer.secho("Error: use only one of --token, --username, --session-id", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2)

    credentials = None
    if token is not None:
        credentials = TokenCredentials(token)
    elif username is not None:
        credentials = PasswordCredentials(username)
    elif session_id is not None:
        credentials = SessionCredentials(session_id)

    try:
        policy = parse_invalid_patient_policy(include_invalid)
    except ValueError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2)

    request = ImportRequest(
        output=output,
        raw=not plain_json,
        date_from=_parse_date(date_from),
        date_to=_parse_date(date_to),
        birth_weight_from=birth_weight_from,
        birth_weight_to=birth_weight_to,
        gestational_age_from=gestational_age_from,
        gestational_age_to=gestational_age_to,
        countries=_split_list(countries),
        invalid_patients=policy,
        host=host,
        credentials=credentials,
    )
    typer.echo(shlex.join(build_import_command(request)))


if __name__ == "__main__":
    app()
