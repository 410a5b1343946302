"""
Shared plumbing for the rtlgen HTTP services.

Every service answers with the same envelope::

    {"success": true, "data": ..., "correlationId": "..."}
    {"success": false, "error": {"message", "code", "correlationId", "details"?}}

and echoes the ``x-correlation-id`` header, generating one when the caller
did not send it. Errors never carry stack traces.
"""

import logging
import time
import uuid
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response

from .. import __version__
from ..core.config import Settings
from ..core.exceptions import InternalServiceError, RTLGenError, ValidationPayloadError
from ..orchestration.service_client import CORRELATION_HEADER

logger = logging.getLogger(__name__)


def get_correlation_id(request: Request) -> str:
    correlation_id = getattr(request.state, "correlation_id", None)
    if correlation_id is None:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id
    return correlation_id


def success(data: Any, correlation_id: str) -> dict[str, Any]:
    return {"success": True, "data": data, "correlationId": correlation_id}


def error_response(error: RTLGenError, correlation_id: str) -> JSONResponse:
    error.with_correlation_id(correlation_id)
    return JSONResponse(
        status_code=error.status_code,
        content={"success": False, "error": jsonable_encoder(error.to_dict())},
        headers={CORRELATION_HEADER: correlation_id},
    )


def health_payload(service: str, **extra: Any) -> dict[str, Any]:
    return {
        "status": "ok",
        "service": service,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        **extra,
    }


def create_service_app(title: str, settings: Settings, **kwargs: Any) -> FastAPI:
    """Create a FastAPI app with the correlation middleware and error handlers.

    Args:
        title: Application title, also used as the service name in logs
        settings: Settings stored on ``app.state.settings``
        **kwargs: Passed through to ``FastAPI`` (e.g. ``lifespan``)
    """
    app = FastAPI(title=title, version=__version__, **kwargs)
    app.state.settings = settings

    @app.middleware("http")
    async def correlation_middleware(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        correlation_id = get_correlation_id(request)
        started = time.monotonic()
        response = await call_next(request)
        response.headers[CORRELATION_HEADER] = correlation_id
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code}",
            extra={
                "correlation_id": correlation_id,
                "service": settings.service_name,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "latency_ms": int((time.monotonic() - started) * 1000),
            },
        )
        return response

    @app.exception_handler(RTLGenError)
    async def rtlgen_error_handler(request: Request, exc: RTLGenError) -> JSONResponse:
        correlation_id = get_correlation_id(request)
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            exc.message,
            extra={
                "correlation_id": correlation_id,
                "service": settings.service_name,
                "code": exc.code,
                "status_code": exc.status_code,
            },
        )
        return error_response(exc, correlation_id)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        error = ValidationPayloadError(
            "Invalid request payload.", jsonable_encoder(exc.errors())
        )
        return error_response(error, get_correlation_id(request))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        error = RTLGenError(str(exc.detail))
        error.code = "not_found" if exc.status_code == 404 else "http_error"
        error.status_code = exc.status_code
        return error_response(error, get_correlation_id(request))

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        correlation_id = get_correlation_id(request)
        logger.exception(
            "Unhandled error",
            extra={"correlation_id": correlation_id, "service": settings.service_name},
        )
        return error_response(InternalServiceError("Internal server error."), correlation_id)

    return app
