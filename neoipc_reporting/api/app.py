"""
NeoIPC Surveillance Reporting API

FastAPI application rendering Quarto reports on request.

Endpoints:
    GET /reference-report  - Reference report (HTML, PDF or JSON by Accept header)
    GET /partner-report    - Partner report (HTML)
    GET /health            - Liveness probe
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from neoipc_reporting import __version__
from neoipc_reporting.api.logger import _log_error, _log_warning
from neoipc_reporting.api.routes import router
from neoipc_reporting.exceptions import (
    InvalidParameterError,
    MissingSessionError,
    ReportingError,
    UnsupportedMediaTypeError,
)
from neoipc_reporting.utils.runtime import is_development

# Client-side problems: the message is safe to return
CLIENT_ERROR_STATUS = {
    MissingSessionError: 400,
    UnsupportedMediaTypeError: 415,
    InvalidParameterError: 422,
}


async def reporting_error_handler(request: Request, exc: ReportingError) -> Response:
    for error_type, status_code in CLIENT_ERROR_STATUS.items():
        if isinstance(exc, error_type):
            _log_warning(f"{request.method} {request.url.path}: {exc} ({status_code})")
            return JSONResponse({"detail": str(exc)}, status_code=status_code)

    _log_error(f"{request.method} {request.url.path}: {type(exc).__name__}: {exc}")
    if is_development():
        return JSONResponse({"detail": str(exc), "error": type(exc).__name__}, status_code=500)
    return Response(status_code=500)


def create_app() -> FastAPI:
    """Build the application. OpenAPI docs are only served in development."""
    development = is_development()
    app = FastAPI(
        title="NeoIPC Surveillance Reporting",
        version=__version__,
        docs_url="/docs" if development else None,
        redoc_url=None,
        openapi_url="/openapi.json" if development else None,
    )
    app.include_router(router)
    app.add_exception_handler(ReportingError, reporting_error_handler)
    return app


app = create_app()
