"""Report endpoints. Routes only translate HTTP to descriptors and outcomes to responses."""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse, Response

from neoipc_reporting.api.logger import _log_info, _log_warning
from neoipc_reporting.contexts.reports import (
    ReportFilters,
    ReportKind,
    build_descriptor,
    render_report,
)
from neoipc_reporting.contexts.reports.descriptor import MAX_INTEGER_FILTER
from neoipc_reporting.utils.runtime import is_development

SESSION_COOKIE = "JSESSIONID"

router = APIRouter(tags=["Reports"])


async def _render(kind: ReportKind, request: Request, filters: Optional[ReportFilters] = None) -> Response:
    descriptor = build_descriptor(
        kind,
        session_id=request.cookies.get(SESSION_COOKIE),
        accept=request.headers.get("accept"),
        accept_language=request.headers.get("accept-language"),
        filters=filters,
    )
    _log_info(
        f"Rendering {kind.value} report as {descriptor.media_type} "
        f"from '{descriptor.template_file}' ({len(descriptor.parameters)} parameters)"
    )

    development = is_development()
    outcome = await render_report(descriptor, development=development)

    if not outcome.success:
        _log_warning(f"{kind.value} report failed (exit code {outcome.exit_code})")
        if development and outcome.diagnostics is not None:
            return JSONResponse(outcome.diagnostics, status_code=500)
        return Response(status_code=500)

    return Response(
        content=outcome.output,
        media_type=outcome.media_type,
        headers={"Content-Disposition": f'attachment; filename="{outcome.filename}"'},
    )


@router.get("/reference-report", name="GetReferenceReport")
async def get_reference_report(
    request: Request,
    reportingPeriodFrom: Optional[date] = Query(None),
    reportingPeriodTo: Optional[date] = Query(None),
    birthWeightFrom: Optional[int] = Query(None, ge=0, le=MAX_INTEGER_FILTER),
    birthWeightTo: Optional[int] = Query(None, ge=0, le=MAX_INTEGER_FILTER),
    gestationalAgeFrom: Optional[int] = Query(None, ge=0, le=MAX_INTEGER_FILTER),
    gestationalAgeTo: Optional[int] = Query(None, ge=0, le=MAX_INTEGER_FILTER),
    countryFilter: List[str] = Query([]),
    hospitalFilter: List[str] = Query([]),
    testUnitFilter: Optional[bool] = Query(None),
    defaultPatientFilter: Optional[bool] = Query(None),
):
    """Render the reference report for the filtered surveillance data."""
    filters = ReportFilters(
        reporting_period_from=reportingPeriodFrom,
        reporting_period_to=reportingPeriodTo,
        birth_weight_from=birthWeightFrom,
        birth_weight_to=birthWeightTo,
        gestational_age_from=gestationalAgeFrom,
        gestational_age_to=gestationalAgeTo,
        country_filter=countryFilter,
        hospital_filter=hospitalFilter,
        test_unit_filter=testUnitFilter,
        default_patient_filter=defaultPatientFilter,
    )
    return await _render(ReportKind.REFERENCE, request, filters)


@router.get("/partner-report", name="GetPartnerReport")
async def get_partner_report(request: Request):
    """Render the partner report."""
    return await _render(ReportKind.PARTNER, request)


@router.get("/health", include_in_schema=False)
async def health():
    """Liveness probe."""
    return {"status": "ok"}
