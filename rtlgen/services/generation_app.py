"""LLM generation service.

Routes:
    POST /api/generate         complete test in one response
    POST /api/generate/stream  server-sent events: start, token, done/error
    GET  /api/models           models known to the Ollama server
    GET  /health
"""

from collections.abc import AsyncIterator
from contextlib import aclosing, asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import StreamingResponse

from ..core.config import Settings
from ..core.exceptions import RTLGenError
from ..generation import OllamaClient, TestGenerator
from ..models import GenerationRequest
from .common import create_service_app, get_correlation_id, health_payload, success

SERVICE_NAME = "llm-service"

SSE_HEADERS = {"Cache-Control": "no-cache", "Connection": "keep-alive"}


def create_generation_app(
    settings: Settings | None = None,
    generator: TestGenerator | None = None,
) -> FastAPI:
    settings = settings or Settings(service_name=SERVICE_NAME)
    generator = generator or TestGenerator(settings, OllamaClient(settings))

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        yield
        await generator.client.aclose()

    app = create_service_app("rtlgen generation", settings, lifespan=lifespan)

    @app.get("/health")
    async def health(request: Request) -> dict[str, Any]:
        try:
            ollama_healthy = await generator.client.check_health()
        except RTLGenError:
            ollama_healthy = False
        return success(
            health_payload(SERVICE_NAME, ollama=ollama_healthy, model=settings.model_name),
            get_correlation_id(request),
        )

    @app.get("/api/models")
    async def models(request: Request) -> dict[str, Any]:
        available = await generator.client.list_models()
        return success(
            [
                {"name": model.name, "modifiedAt": model.modified_at, "size": model.size}
                for model in available
            ],
            get_correlation_id(request),
        )

    @app.post("/api/generate")
    async def generate(payload: GenerationRequest, request: Request) -> dict[str, Any]:
        correlation_id = get_correlation_id(request)
        result = await generator.generate(
            payload.analysis, payload.options, correlation_id=correlation_id
        )
        return success(result.to_wire(), correlation_id)

    @app.post("/api/generate/stream")
    async def generate_stream(payload: GenerationRequest, request: Request) -> StreamingResponse:
        correlation_id = get_correlation_id(request)

        # A client disconnect cancels this generator; closing the inner
        # stream cancels the upstream request and the heartbeat task.
        async def event_source() -> AsyncIterator[str]:
            events = generator.stream(
                payload.analysis, payload.options, correlation_id=correlation_id
            )
            async with aclosing(events):
                async for event in events:
                    yield event.to_sse()

        return StreamingResponse(
            event_source(), media_type="text/event-stream", headers=SSE_HEADERS
        )

    return app
