"""Code analysis service: ``POST /api/analyze``."""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool

from ..analysis import ComponentAnalyzer
from ..core.config import Settings
from ..models import AnalysisRequest
from .common import create_service_app, get_correlation_id, health_payload, success

SERVICE_NAME = "code-analysis"


def create_analysis_app(
    settings: Settings | None = None,
    analyzer: ComponentAnalyzer | None = None,
) -> FastAPI:
    settings = settings or Settings(service_name=SERVICE_NAME)
    analyzer = analyzer or ComponentAnalyzer()
    app = create_service_app("rtlgen code analysis", settings)

    @app.get("/health")
    async def health(request: Request) -> dict[str, Any]:
        return success(health_payload(SERVICE_NAME), get_correlation_id(request))

    @app.post("/api/analyze")
    async def analyze(payload: AnalysisRequest, request: Request) -> dict[str, Any]:
        correlation_id = get_correlation_id(request)
        # Parsing is CPU-bound; keep it off the event loop.
        analysis = await run_in_threadpool(
            analyzer.analyze,
            payload.code,
            payload.file_path,
            payload.component_name,
            payload.metadata,
            correlation_id,
        )
        return success(analysis.to_wire(), correlation_id)

    return app
