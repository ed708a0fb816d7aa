"""
Exception handlers: every failure leaves the API as
{"error": <stable code>, "message": <user-safe text>, "status": <http status>}.
"""

from typing import Any, Callable, Coroutine

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.responses import Response

from eventbooking.core.exceptions import BookingEngineError, ErrorCode
from eventbooking.core.logging import get_logger

logger = get_logger(__name__)

ExceptionHandler = Callable[[Request, Exception], Coroutine[Any, Any, Response]]


def error_body(code: ErrorCode, message: str, status_code: int) -> dict:
    return {"error": code.value, "message": message, "status": status_code}


async def booking_engine_error_handler(request: Request, exc: Exception) -> JSONResponse:
    error = exc if isinstance(exc, BookingEngineError) else BookingEngineError(str(exc))
    headers = None
    if error.code == ErrorCode.RATE_LIMIT_EXCEEDED:
        headers = {"Retry-After": str(int(getattr(error, "window_seconds", 60)))}
    logger.info("request_rejected", error=error.code.value, status_code=error.status_code)
    return JSONResponse(
        status_code=error.status_code,
        content=error_body(error.code, error.message, error.status_code),
        headers=headers,
    )


async def validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    errors = exc.errors() if isinstance(exc, RequestValidationError) else []
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{field}: {first.get('msg')}" if field else "Invalid request"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(ErrorCode.VALIDATION_ERROR, message, status.HTTP_400_BAD_REQUEST),
    )


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_exception", error_type=type(exc).__name__)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(
            ErrorCode.UNEXPECTED_ERROR,
            "An unexpected error occurred. Please try again later.",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        ),
    )


EXCEPTION_HANDLERS: dict[type[Exception], ExceptionHandler] = {
    BookingEngineError: booking_engine_error_handler,
    RequestValidationError: validation_error_handler,
    Exception: unexpected_error_handler,
}


def register_exception_handlers(app: FastAPI) -> None:
    for exception_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exception_class, handler)
