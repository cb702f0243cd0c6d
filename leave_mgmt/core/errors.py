"""
Central error handling for the Leave Management Backend
"""
import logging
import traceback
from typing import NoReturn

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi import HTTPException

from leave_mgmt.workflow.results import ErrorCategory, Violation, WorkflowResult

logger = logging.getLogger(__name__)

CATEGORY_STATUS_CODES = {
    ErrorCategory.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorCategory.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCategory.PERMISSION_DENIED: status.HTTP_403_FORBIDDEN,
    ErrorCategory.STATE_CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCategory.PERSISTENCE_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def violation_to_http(violation: Violation) -> HTTPException:
    """Build the HTTPException for a workflow violation (kind + message in detail)."""
    return HTTPException(
        status_code=CATEGORY_STATUS_CODES[violation.category],
        detail={
            "kind": violation.kind.value,
            "category": violation.category.value,
            "message": violation.message,
            "retryable": violation.retryable,
        },
    )


def raise_for_violation(result: WorkflowResult) -> NoReturn:
    """Raise the HTTPException matching a failed WorkflowResult."""
    raise violation_to_http(result.violation)


def unwrap(result: WorkflowResult):
    """Return the result value, raising the mapped HTTPException on failure."""
    if not result.ok:
        raise_for_violation(result)
    return result.value


def _envelope(request: Request, status_code: int, detail, headers=None, **extra) -> JSONResponse:
    """Every error response shares this body: error, status_code, detail, path."""
    content = {
        "error": True,
        "status_code": status_code,
        "detail": detail,
        "path": str(request.url.path),
    }
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def _json_safe_errors(exc: RequestValidationError) -> list:
    # ctx may hold exception instances (e.g. the ValueError of a validator)
    errors = []
    for e in exc.errors():
        err = dict(e)
        if isinstance(err.get("ctx"), dict):
            err["ctx"] = {
                k: (v if isinstance(v, (str, int, float, bool, type(None))) else str(v))
                for k, v in err["ctx"].items()
            }
        errors.append(err)
    return errors


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """
    Handle HTTPException, including the ones built from workflow violations

    Violation details (kind, category, message, retryable) are passed
    through unchanged as `detail`.
    """
    if exc.status_code >= 500:
        logger.error("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.detail)
    return _envelope(request, exc.status_code, exc.detail, headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Request body/query validation errors; field details are hidden in production."""
    from leave_mgmt.core.config import settings

    if settings.APP_ENV == "prod":
        return _envelope(request, status.HTTP_422_UNPROCESSABLE_ENTITY, "Validation error: Invalid request data")
    return _envelope(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Validation error",
        errors=_json_safe_errors(exc),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions

    Does not leak internal error details in production.
    """
    from leave_mgmt.core.config import settings

    logger.error("Unhandled exception on %s %s: %s", request.method, request.url.path, exc, exc_info=True)

    if settings.APP_ENV == "prod":
        return _envelope(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")
    return _envelope(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        str(exc),
        traceback=traceback.format_exc() if settings.APP_ENV == "local" else None,
    )
