"""
HTTP client for the analysis, generation and validation services.

Each dependency gets its own ``httpx.AsyncClient`` and its own
``CircuitBreaker``. Calls carry the ``x-correlation-id`` header, retry
transient failures with exponential backoff, and turn failure envelopes
back into typed rtlgen errors.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..core.config import Settings
from ..core.exceptions import (
    TRANSIENT_FAILURES,
    InternalServiceError,
    RTLGenError,
    ServiceTimeoutError,
    ServiceUnavailableError,
    error_from_payload,
)
from ..models import (
    ComponentAnalysis,
    ComponentRequest,
    GeneratedTest,
    GenerationOptions,
    ServiceHealth,
    ValidationResult,
)
from .circuit_breaker import CircuitBreaker

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "x-correlation-id"

CODE_ANALYSIS = "code-analysis"
LLM_SERVICE = "llm-service"
TEST_VALIDATION = "test-validation"
SERVICES = (CODE_ANALYSIS, LLM_SERVICE, TEST_VALIDATION)

M = TypeVar("M", bound=BaseModel)


class ServiceClient:
    """Async client for the three downstream services."""

    def __init__(
        self,
        settings: Settings,
        transports: dict[str, httpx.AsyncBaseTransport] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Create one HTTP client and one breaker per dependency.

        Args:
            settings: Service URLs, timeouts, retry and breaker settings
            transports: Optional per-service transports (mock or ASGI)
            sleep: Backoff sleep, injectable for tests
            clock: Monotonic clock shared by the breakers and health checks
        """
        transports = transports or {}
        base_urls = {
            CODE_ANALYSIS: settings.code_analysis_url,
            LLM_SERVICE: settings.llm_service_url,
            TEST_VALIDATION: settings.test_validation_url,
        }
        self.settings = settings
        self._sleep = sleep
        self._clock = clock
        self.clients = {
            service: httpx.AsyncClient(
                base_url=url,
                timeout=settings.request_timeout,
                transport=transports.get(service),
                headers={"Content-Type": "application/json"},
            )
            for service, url in base_urls.items()
        }
        self.breakers = {
            service: CircuitBreaker(
                service, settings.failure_threshold, settings.cooldown, clock
            )
            for service in SERVICES
        }

    async def __aenter__(self) -> "ServiceClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await asyncio.gather(*(client.aclose() for client in self.clients.values()))

    # ------------------------------------------------------------------
    # Pipeline stages
    # ------------------------------------------------------------------

    async def analyze_code(
        self, request: ComponentRequest, correlation_id: str | None = None
    ) -> ComponentAnalysis:
        payload = _without_none(
            {
                "code": request.code,
                "filePath": request.file_path,
                "componentName": request.name,
                "metadata": request.metadata,
            }
        )
        return await self._call(
            CODE_ANALYSIS, "/api/analyze", payload, ComponentAnalysis, correlation_id
        )

    async def generate_test(
        self,
        analysis: ComponentAnalysis,
        options: GenerationOptions | None = None,
        correlation_id: str | None = None,
    ) -> GeneratedTest:
        payload: dict[str, Any] = {"analysis": analysis.to_wire()}
        if options is not None:
            payload["options"] = options.model_dump(
                by_alias=True, mode="json", exclude_none=True
            )
        return await self._call(
            LLM_SERVICE, "/api/generate", payload, GeneratedTest, correlation_id
        )

    async def validate_test(
        self,
        generated_test: GeneratedTest,
        analysis: ComponentAnalysis | None = None,
        correlation_id: str | None = None,
    ) -> ValidationResult:
        payload: dict[str, Any] = generated_test.to_wire()
        if analysis is not None:
            payload = {
                "generatedTest": payload,
                "component": {"name": analysis.name, "complexity": analysis.complexity},
            }
        return await self._call(
            TEST_VALIDATION, "/api/validate", payload, ValidationResult, correlation_id
        )

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    async def check_service_health(
        self, service: str, correlation_id: str | None = None
    ) -> ServiceHealth:
        """Probe ``GET /health`` on *service*. Never raises for a down service."""
        started = self._clock()
        try:
            await self._request(service, "GET", "/health", None, correlation_id)
        except RTLGenError as e:
            logger.warning(
                f"Health check failed for {service}",
                extra={"correlation_id": correlation_id, "service": service, "error": e.message},
            )
            return ServiceHealth(
                service=service,
                healthy=False,
                message=e.message,
                latency_ms=self._elapsed_ms(started),
            )
        return ServiceHealth(
            service=service, healthy=True, latency_ms=self._elapsed_ms(started)
        )

    async def check_all(self, correlation_id: str | None = None) -> list[ServiceHealth]:
        """Probe every dependency concurrently."""
        return list(
            await asyncio.gather(
                *(self.check_service_health(service, correlation_id) for service in SERVICES)
            )
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _call(
        self,
        service: str,
        path: str,
        payload: dict[str, Any],
        model: type[M],
        correlation_id: str | None,
    ) -> M:
        async def _action() -> M:
            data = await self._request_with_retry(service, path, payload, correlation_id)
            try:
                return model.model_validate(data)
            except PydanticValidationError as e:
                raise InternalServiceError(
                    f"Malformed response from {service}.", str(e), correlation_id
                ) from e

        return await self.breakers[service].call(_action, correlation_id)

    async def _request_with_retry(
        self,
        service: str,
        path: str,
        payload: dict[str, Any],
        correlation_id: str | None,
    ) -> Any:
        attempt = 0
        while True:
            try:
                return await self._request(service, "POST", path, payload, correlation_id)
            except TRANSIENT_FAILURES as e:
                attempt += 1
                logger.warning(
                    f"Attempt {attempt} failed for {service}",
                    extra={
                        "correlation_id": correlation_id,
                        "service": service,
                        "attempt": attempt,
                        "code": e.code,
                        "status_code": e.status_code,
                        "error": e.message,
                    },
                )
                if attempt > self.settings.retry_attempts:
                    raise
                await self._sleep(self.settings.retry_base_delay * 2 ** attempt)

    async def _request(
        self,
        service: str,
        method: str,
        path: str,
        payload: dict[str, Any] | None,
        correlation_id: str | None,
    ) -> Any:
        headers = {CORRELATION_HEADER: correlation_id} if correlation_id else {}
        try:
            response = await self.clients[service].request(
                method, path, json=payload, headers=headers
            )
        except httpx.TimeoutException as e:
            raise ServiceTimeoutError.for_service(service, correlation_id, str(e)) from e
        except httpx.TransportError as e:
            raise ServiceUnavailableError.for_service(service, correlation_id, str(e)) from e
        except httpx.HTTPError as e:
            raise InternalServiceError(
                f"Unexpected error while communicating with {service}",
                str(e),
                correlation_id,
            ) from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.is_error:
            raise error_from_payload(
                response.status_code,
                body,
                f"Unexpected response from {service}",
                correlation_id,
            )
        if not isinstance(body, dict) or "data" not in body:
            raise InternalServiceError(
                f"Malformed response from {service}.", response.text[:500], correlation_id
            )
        return body["data"]

    def _elapsed_ms(self, started: float) -> int:
        return int((self._clock() - started) * 1000)


def _without_none(payload: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in payload.items() if value is not None}
