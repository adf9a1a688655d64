"""Exception handlers that report API errors and answer unchanged."""

from fastapi import FastAPI, Request
from fastapi.exception_handlers import (
    http_exception_handler as default_http_exception_handler,
    request_validation_exception_handler as default_validation_handler,
)
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..exceptions import AppError
from ..models import ErrorDetails, ErrorType
from .middleware import request_context, session_id_from, user_id_from


def _capture(request: Request, details: ErrorDetails) -> None:
    application = request.app.state.application
    application.error_funnel.capture_error(
        ErrorType.API, details, session_id=session_id_from(request)
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """
    Convert AppError to JSON response.

    Returns structured error with:
    - detail: Human-readable message
    - code: Machine-readable error code
    - details: Additional context
    """
    context = request_context(request)
    context["status_code"] = exc.status_code
    context["code"] = exc.code
    _capture(
        request,
        ErrorDetails(
            error_message=exc.message,
            error_name=type(exc).__name__,
            context=context,
            user_id=user_id_from(request),
        ),
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    context = request_context(request)
    context["status_code"] = exc.status_code
    _capture(
        request,
        ErrorDetails(
            error_message=str(exc.detail),
            error_name="HTTPException",
            context=context,
            user_id=user_id_from(request),
        ),
    )
    return await default_http_exception_handler(request, exc)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report validation failures, then answer exactly as FastAPI does."""
    context = request_context(request, exc.body)
    context["status_code"] = 422
    context["errors"] = exc.errors()
    _capture(
        request,
        ErrorDetails(
            error_message="Request validation failed",
            error_name="RequestValidationError",
            context=context,
            user_id=user_id_from(request),
        ),
    )
    return await default_validation_handler(request, exc)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
