"""API gateway: runs the full pipeline for one component."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, FastAPI, Request

from ..core.config import Settings
from ..core.exceptions import RateLimitedError, ValidationPayloadError
from ..core.rate_limiter import ClientRateLimiters
from ..models import ComponentRequest, GatewayHealth, StatusReport
from ..orchestration import ServiceClient, TestGenerationPipeline
from .common import create_service_app, get_correlation_id, health_payload, success

logger = logging.getLogger(__name__)

SERVICE_NAME = "api-gateway"


def create_gateway_app(
    settings: Settings | None = None,
    client: ServiceClient | None = None,
    limiters: ClientRateLimiters | None = None,
) -> FastAPI:
    settings = settings or Settings(service_name=SERVICE_NAME)
    client = client or ServiceClient(settings)
    limiters = limiters or ClientRateLimiters(
        settings.rate_limit_max, settings.rate_limit_window
    )
    pipeline = TestGenerationPipeline(client)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        yield
        await client.aclose()

    app = create_service_app("rtlgen gateway", settings, lifespan=lifespan)

    async def enforce_rate_limit(request: Request) -> None:
        client_key = request.client.host if request.client else "unknown"
        retry_after = limiters.acquire(client_key)
        if retry_after is not None:
            correlation_id = get_correlation_id(request)
            logger.warning(
                f"Rate limit exceeded for {client_key}",
                extra={"correlation_id": correlation_id, "service": settings.service_name},
            )
            raise RateLimitedError(
                "Too many requests. Please try again later.",
                {"retryAfter": round(retry_after, 1)},
                correlation_id,
            )

    api = APIRouter(prefix="/api", dependencies=[Depends(enforce_rate_limit)])

    @app.get("/health")
    async def health(request: Request) -> dict[str, Any]:
        return success(health_payload(settings.service_name), get_correlation_id(request))

    @app.get("/status")
    async def status(request: Request) -> dict[str, Any]:
        correlation_id = get_correlation_id(request)
        report = StatusReport(
            gateway=GatewayHealth(
                service=settings.service_name, timestamp=datetime.now(timezone.utc)
            ),
            dependencies=await client.check_all(correlation_id),
        )
        return success(report.to_wire(), correlation_id)

    @api.post("/generate-test")
    async def generate_test(payload: ComponentRequest, request: Request) -> dict[str, Any]:
        correlation_id = get_correlation_id(request)
        result = await pipeline.run(payload, correlation_id)
        if not result.valid:
            raise ValidationPayloadError(
                "Generated test failed validation.", result.issues, correlation_id
            )
        return success(result.generated_test.to_wire(), correlation_id)

    app.include_router(api)
    return app
