"""FastAPI exception handlers.

All errors leave the API in one envelope:

    {"success": false,
     "error": {"code": ..., "message": ..., "details": {...}},
     "metadata": {"request_id": ...}}
"""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .exceptions import ClinicalAgentsError
from .logging import get_logger

logger = get_logger(__name__)


def create_error_response(
    status_code: int,
    error: str,
    message: str,
    details: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> JSONResponse:
    body: dict[str, Any] = {"code": error, "message": message}
    if details:
        body["details"] = details

    content: dict[str, Any] = {"success": False, "error": body}
    if request_id:
        content["metadata"] = {"request_id": request_id}
    return JSONResponse(status_code=status_code, content=content)


def _request_fields(request: Request) -> dict[str, Any]:
    return {
        "request_id": getattr(request.state, "request_id", None),
        "method": request.method,
        "path": request.url.path,
    }


async def clinical_agents_error_handler(request: Request, exc: ClinicalAgentsError) -> JSONResponse:
    """Render any error from the hierarchy with the status its class declares.

    4xx responses are logged as warnings, 5xx as errors.
    """
    fields = _request_fields(request)
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "request_failed",
        error=exc.code,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
        **fields,
    )
    return create_error_response(
        exc.status_code,
        exc.code,
        exc.message,
        details=exc.details or None,
        request_id=fields["request_id"],
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = _request_fields(request)
    problems = [
        {
            "field": ".".join(str(part) for part in err["loc"]),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]
    logger.warning("request_invalid", errors=problems, **fields)
    return create_error_response(
        422,
        "ValidationError",
        "Request validation failed",
        details={"validation_errors": problems},
        request_id=fields["request_id"],
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    # Exception text goes to the log only, never into the response body.
    fields = _request_fields(request)
    logger.exception("request_crashed", error=type(exc).__name__, **fields)
    return create_error_response(
        500,
        "InternalServerError",
        "An unexpected error occurred",
        request_id=fields["request_id"],
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ClinicalAgentsError, clinical_agents_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_error_handler)
