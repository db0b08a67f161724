"""
Global Exception Handlers for the FastAPI Application.

Execution core errors (``ExecCoreError``) are expected outcomes of governed
calls and are mapped to 4xx JSON responses carrying their structured
attributes. Anything else is logged with an error ID, request context and full
traceback, and answered with a 500.
"""

import traceback
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from toolgate.core.logging_config import get_logger
from toolgate.exec_core.errors import (
    CapabilityExecutionError,
    ExecCoreError,
    ExecutionStateError,
    InvalidIntentGraphError,
    MetricNotFoundError,
    PermissionDeniedError,
    PlanValidationError,
    PolicyViolationError,
    ReplayDivergenceError,
    TraceNotFoundError,
    UnknownCapabilityError,
)

logger = get_logger(__name__)

# Checked in order; the first matching class decides the status code.
STATUS_BY_ERROR = (
    (UnknownCapabilityError, 404),
    (MetricNotFoundError, 404),
    (TraceNotFoundError, 404),
    (PermissionDeniedError, 403),
    (PolicyViolationError, 403),
    (ReplayDivergenceError, 409),
    (ExecutionStateError, 409),
    (PlanValidationError, 422),
    (InvalidIntentGraphError, 422),
    (CapabilityExecutionError, 502),
)

_ERROR_ATTRIBUTES = (
    "capability_id",
    "integration_id",
    "access",
    "reason",
    "trace_id",
    "step_index",
    "view_id",
    "key",
    "metric_id",
    "execution_id",
)


def status_for(exc: ExecCoreError) -> int:
    for error_type, status in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status
    return 400


async def exec_core_exception_handler(request: Request, exc: ExecCoreError) -> JSONResponse:
    """Map an execution core error to a JSON response with its structured attributes."""
    status = status_for(exc)
    content: Dict[str, Any] = {"detail": str(exc), "error_type": type(exc).__name__}
    for attr in _ERROR_ATTRIBUTES:
        value = getattr(exc, attr, None)
        if value is not None:
            content[attr] = value
    if isinstance(exc, InvalidIntentGraphError):
        content["error"] = exc.error.model_dump(mode="json")

    logger.warning(f"{request.method} {request.url.path} -> {status} {type(exc).__name__}: {exc}")
    return JSONResponse(status_code=status, content=content)


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler to log detailed error information.

    This handler is called for any unhandled exception in the application.
    It logs the full error context and returns a JSON response with an error ID
    that clients can use to reference the error when reporting issues.

    Args:
        request: The HTTP request that caused the exception
        exc: The exception that was raised

    Returns:
        JSONResponse with error details and error ID
    """
    error_id = id(exc)

    logger.error(
        f"Unhandled exception [{error_id}] in {request.method} {request.url.path}: {str(exc)}",
        exc_info=True,
        extra={
            "error_id": error_id,
            "method": request.method,
            "path": request.url.path,
            "query_params": dict(request.query_params),
            "client": request.client.host if request.client else "unknown",
            "error_type": type(exc).__name__,
            "traceback": traceback.format_exc(),
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error_id": error_id,
            "error_type": type(exc).__name__,
        },
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """
    Register exception handlers with the FastAPI application.

    Args:
        app: The FastAPI application instance
    """
    app.add_exception_handler(ExecCoreError, exec_core_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
    logger.debug("Exception handlers registered successfully")
