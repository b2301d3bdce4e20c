"""Error handling for the FastAPI application and booking domain exceptions."""

import asyncio

import asyncpg
import pydantic
from fastapi import Request
from fastapi import status
from fastapi.responses import JSONResponse
from loguru import logger

from staffing_api.booking.exceptions import BookingError

# Failures of the backing store; the command was not applied
STORE_UNAVAILABLE_ERRORS = (
    asyncpg.exceptions.PostgresConnectionError,
    asyncpg.exceptions.InterfaceError,
    asyncio.TimeoutError,
    OSError,
)

__all__ = [
    "STORE_UNAVAILABLE_ERRORS",
    "handle_broad_exceptions",
    "handle_booking_errors",
    "handle_pydantic_validation_errors",
    "handle_store_unavailable",
]


# fastapi docs on middlewares: https://fastapi.tiangolo.com/tutorial/middleware/
async def handle_broad_exceptions(request: Request, call_next):
    """Handle any exception that goes unhandled by a more specific exception handler."""
    try:
        return await call_next(request)
    except Exception as err:  # pylint: disable=broad-except
        error_response = {"detail": "Internal server error", "error_type": type(err).__name__}

        logger.error(
            f"Unhandled exception: {type(err).__name__}: {str(err)}",
            http_status=500,
            http_method=request.method,
            url_path=str(request.url.path),
            error_type=type(err).__name__,
            error_message=str(err),
            exc_info=True,
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_response,
        )


# fastapi docs on error handlers: https://fastapi.tiangolo.com/tutorial/handling-errors/
async def handle_pydantic_validation_errors(request: Request, exc: pydantic.ValidationError) -> JSONResponse:
    """Handle Pydantic validation errors."""
    errors = exc.errors()
    error_response = {
        "detail": [
            {
                "msg": error["msg"],
                "input": error["input"],
            }
            for error in errors
        ]
    }

    logger.warning(
        f"Validation error: {len(errors)} validation errors",
        http_status=422,
        http_method=request.method,
        url_path=str(request.url.path),
        error_type="ValidationError",
        validation_errors=errors,
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
        content=jsonable_errors(error_response),
    )


def jsonable_errors(error_response: dict) -> dict:
    """Stringify validation inputs that are not JSON serialisable (sets, UUIDs, ...)."""
    for item in error_response["detail"]:
        if not isinstance(item["input"], (str, int, float, bool, type(None), list, dict)):
            item["input"] = str(item["input"])
    return error_response


async def handle_booking_errors(request: Request, exc: BookingError) -> JSONResponse:
    """
    Convert booking domain failures to HTTP responses.

    Maps the error taxonomy to status codes:
    - InvalidRequest -> 400 Bad Request
    - NotFound -> 404 Not Found
    - AlreadyClaimed, StaleOffer, InvalidTransition -> 409 Conflict
    - NotEligible -> 422 Unprocessable Entity

    AlreadyClaimed and StaleOffer carry the user-facing "Someone else already
    took this" message; the technical message is only logged.
    """
    error_response = {
        "detail": exc.user_message,
        "error_type": exc.code,
    }
    if exc.assignment_id is not None:
        error_response["assignment_id"] = str(exc.assignment_id)

    # Conflicts are the expected outcome of races: INFO, not WARNING
    log = logger.info if exc.http_status == status.HTTP_409_CONFLICT else logger.warning
    log(
        f"Booking error: {exc.code}: {exc.message}",
        http_status=exc.http_status,
        http_method=request.method,
        url_path=str(request.url.path),
        error_type=exc.code,
        error_message=exc.message,
    )

    return JSONResponse(status_code=exc.http_status, content=error_response)


async def handle_store_unavailable(request: Request, exc: Exception) -> JSONResponse:
    """Booking store unreachable: the command was not applied and may be retried."""
    error_response = {
        "detail": "Booking store temporarily unavailable. Please try again later.",
        "error_type": "StoreUnavailable",
    }

    logger.error(
        f"Booking store unavailable: {type(exc).__name__}: {exc}",
        http_status=503,
        http_method=request.method,
        url_path=str(request.url.path),
        error_type=type(exc).__name__,
        error_message=str(exc),
        exc_info=True,
    )

    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=error_response)
