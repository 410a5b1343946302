"""Tests for the rtlgen MCP server tools."""

import json
from unittest.mock import AsyncMock, Mock, patch

import pytest

from rtlgen.analysis import ComponentAnalyzer
from rtlgen.core.exceptions import ServiceTimeoutError
from rtlgen.models import GeneratedTest, ServiceHealth, ValidationResult
from rtlgen.server import analyze_component, generate_test, mcp, service_status


@pytest.fixture
def initialized(settings):
    """Install settings so tools skip lazy initialization."""
    with patch("rtlgen.server.settings", settings):
        yield


class TestMCPServer:
    def test_mcp_instance(self):
        assert mcp.name == "rtlgen-mcp"

    @pytest.mark.asyncio
    async def test_analyze_component(self, initialized, greeting_source):
        with patch("rtlgen.server.analyzer", ComponentAnalyzer()):
            result = json.loads(
                await analyze_component.fn(greeting_source, file_path="src/Greeting.tsx")
            )

        assert result["success"] is True
        assert result["data"]["name"] == "Greeting"
        assert result["data"]["metadata"]["filePath"] == "src/Greeting.tsx"
        assert result["correlationId"]

    @pytest.mark.asyncio
    async def test_analyze_component_parse_error(self, initialized):
        with patch("rtlgen.server.analyzer", ComponentAnalyzer()):
            result = json.loads(await analyze_component.fn("export default function ( {"))

        assert result["success"] is False
        assert result["error"]["code"] == "parse_error"
        assert result["error"]["correlationId"]

    @pytest.mark.asyncio
    async def test_generate_test(self, initialized):
        generated = GeneratedTest(content="test()", file_name="Card.test.tsx")
        pipeline = Mock()
        pipeline.run = AsyncMock(
            return_value=ValidationResult(valid=True, generated_test=generated)
        )

        with patch("rtlgen.server.pipeline", pipeline):
            result = json.loads(
                await generate_test.fn("const Card = () => null;", model="codellama")
            )

        assert result["success"] is True
        assert result["data"]["fileName"] == "Card.test.tsx"
        assert result["issues"] == []
        request, correlation_id = pipeline.run.await_args.args
        assert request.options.model == "codellama"
        assert correlation_id == result["correlationId"]

    @pytest.mark.asyncio
    async def test_generate_test_failure(self, initialized):
        pipeline = Mock()
        pipeline.run = AsyncMock(side_effect=ServiceTimeoutError.for_service("llm-service"))

        with patch("rtlgen.server.pipeline", pipeline):
            result = json.loads(await generate_test.fn("const Card = () => null;"))

        assert result["success"] is False
        assert result["error"]["code"] == "service_timeout"
        assert pipeline.run.await_args.args[0].options is None

    @pytest.mark.asyncio
    async def test_service_status(self, initialized):
        client = Mock()
        client.check_all = AsyncMock(
            return_value=[ServiceHealth(service="code-analysis", healthy=True, latency_ms=5)]
        )

        with patch("rtlgen.server.service_client", client):
            result = json.loads(await service_status.fn())

        assert result == [
            {"service": "code-analysis", "healthy": True, "latencyMs": 5, "message": None}
        ]
