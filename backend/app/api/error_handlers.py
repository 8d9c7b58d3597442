"""Error Handlers — turn BulkCode failures into the REST error envelope.

Invariants:
    - Every error body has the shape {"error": {code, message, category, severity, ...}}
    - A BulkCodeError carrying retry_after_ms (Shopify throttling, template
      fetch throttled mid-batch) answers with a Retry-After header in whole
      seconds, rounded up; pollers back off on it before calling /process again
    - Request validation failures answer 400 with one detail per field
    - Anything else answers 500 without internals

Design Decisions:
    - Per-code Shopify failures never reach these handlers: the batch dispatcher
      records them on the Discount row
    - Log records carry the set/discount ids from ErrorContext so a failed
      /process call can be matched to its job rows
"""

import logging
import math

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.errors import BulkCodeError, ErrorCategory, ErrorSeverity

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BulkCodeError, handle_bulkcode_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)


def retry_after_header(retry_after_ms: int | None) -> dict[str, str]:
    """Retry-After header for a delay in ms; empty when there is nothing to wait for."""
    if retry_after_ms is None or retry_after_ms < 0:
        return {}
    return {"Retry-After": str(max(1, math.ceil(retry_after_ms / 1000)))}


async def handle_bulkcode_error(request: Request, exc: BulkCodeError) -> JSONResponse:
    ctx = exc.context
    logger.log(
        logging.WARNING if exc.http_status < 500 else logging.ERROR,
        f"{request.method} {request.url.path} failed with {exc.code}: {exc.message}",
        extra={
            "error_code": exc.code,
            "discount_set_id": ctx.discount_set_id,
            "discount_id": ctx.discount_id,
            "code": ctx.code,
        },
    )
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_response(),
        headers=retry_after_header(ctx.retry_after_ms),
    )


async def handle_validation_error(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(part) for part in err["loc"]),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]
    logger.warning(
        f"Rejected {request.method} {request.url.path}: "
        f"{', '.join(d['field'] for d in details)}",
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_envelope(
            "VALIDATION_ERROR", "Invalid request data",
            ErrorCategory.VALIDATION, ErrorSeverity.ERROR, details=details,
        ),
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled {type(exc).__name__} on {request.method} {request.url.path}",
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_envelope(
            "INTERNAL_ERROR", "An unexpected error occurred",
            ErrorCategory.INTERNAL, ErrorSeverity.CRITICAL,
        ),
    )


def _envelope(
    code: str, message: str, category: ErrorCategory, severity: ErrorSeverity,
    **extra,
) -> dict:
    return {
        "error": {
            "code": code,
            "message": message,
            "category": category.value,
            "severity": severity.value,
            **extra,
        },
    }
