"""
Exception Handlers for the FastAPI Application.

- ``CompileError`` escaping a route becomes a 400 naming the capability.
- ``IntegrationNotFoundError`` becomes a 404.
- Anything else is logged with an error id and the client receives a JSON 500
  carrying the same id, in the body and the ``X-Error-Id`` header.

Capability invocation failures never reach these handlers: ``/execute``
reports them inside the ``InvocationResult``.
"""

import traceback
import uuid

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from hivelang_runtime.core import monitoring
from hivelang_runtime.core.logging_config import get_logger
from hivelang_runtime.engine.errors import CompileError
from hivelang_runtime.runtime.errors import IntegrationNotFoundError

logger = get_logger(__name__)


def _where(request: Request) -> str:
    # path only, never the query string
    return f"{request.method} {request.url.path}"


async def compile_error_handler(request: Request, exc: CompileError) -> JSONResponse:
    """
    Report a capability that failed to compile.

    Returns:
        JSONResponse (400) naming the capability, the message and the line if known
    """
    logger.info(f"Compile error in {_where(request)}: {exc}")
    return JSONResponse(
        status_code=400,
        content={
            "detail": str(exc),
            "capability": exc.capability,
            "message": exc.message,
            "line": exc.line,
        },
    )


async def integration_not_found_handler(request: Request, exc: IntegrationNotFoundError) -> JSONResponse:
    logger.info(f"Unknown integration {exc.integration_id} in {_where(request)}")
    return JSONResponse(status_code=404, content={"detail": str(exc), "integration_id": exc.integration_id})


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Log an unhandled exception and answer with a traceable 500.

    Args:
        request: The HTTP request that caused the exception
        exc: The exception that was raised

    Returns:
        JSONResponse with the error id and error type
    """
    error_id = uuid.uuid4().hex[:12]
    error_type = type(exc).__name__

    logger.error(
        f"Unhandled exception [{error_id}] in {_where(request)}: {exc}",
        exc_info=True,
        extra={
            "error_id": error_id,
            "method": request.method,
            "path": request.url.path,
            "client": request.client.host if request.client else "unknown",
            "error_type": error_type,
            "traceback": traceback.format_exc(),
        },
    )
    monitoring.log_error(error_type, str(exc), {"error_id": error_id, "path": request.url.path})

    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "error_id": error_id, "error_type": error_type},
        headers={"X-Error-Id": error_id},
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """
    Register exception handlers with the FastAPI application.

    Args:
        app: The FastAPI application instance
    """
    app.add_exception_handler(CompileError, compile_error_handler)
    app.add_exception_handler(IntegrationNotFoundError, integration_not_found_handler)
    app.add_exception_handler(Exception, global_exception_handler)
    logger.debug("Exception handlers registered successfully")
