"""Tests for the gateway's client to the downstream services."""

import json

import httpx
import pytest

from rtlgen.core.config import Settings
from rtlgen.core.exceptions import (
    InternalServiceError,
    ParseError,
    ServiceTimeoutError,
    ServiceUnavailableError,
)
from rtlgen.models import ComponentRequest, GeneratedTest, GenerationOptions
from rtlgen.orchestration import (
    CODE_ANALYSIS,
    LLM_SERVICE,
    SERVICES,
    TEST_VALIDATION,
    CircuitState,
    ServiceClient,
)


def envelope(data, correlation_id="cid"):
    return {"success": True, "data": data, "correlationId": correlation_id}


class Backend:
    """Records requests per service and answers with a scripted handler."""

    def __init__(self):
        self.requests = {service: [] for service in SERVICES}
        self.handlers = {}
        self.delays = []

    def transports(self):
        def route(service):
            def handler(request):
                self.requests[service].append(request)
                return self.handlers[service](request)

            return httpx.MockTransport(handler)

        return {service: route(service) for service in SERVICES}

    async def sleep(self, delay):
        self.delays.append(delay)


@pytest.fixture
def backend():
    return Backend()


@pytest.fixture
def client(settings, backend):
    return ServiceClient(settings, transports=backend.transports(), sleep=backend.sleep)


class TestAnalyzeCode:
    @pytest.mark.asyncio
    async def test_success(self, client, backend, greeting_analysis, greeting_source):
        backend.handlers[CODE_ANALYSIS] = lambda r: httpx.Response(
            200, json=envelope(greeting_analysis.to_wire())
        )

        request = ComponentRequest(code=greeting_source, name="Greeting", filePath="src/G.tsx")
        analysis = await client.analyze_code(request, "cid-1")

        assert analysis == greeting_analysis
        sent = backend.requests[CODE_ANALYSIS][0]
        assert sent.url.path == "/api/analyze"
        assert sent.headers["x-correlation-id"] == "cid-1"
        assert json.loads(sent.content) == {
            "code": greeting_source,
            "filePath": "src/G.tsx",
            "componentName": "Greeting",
        }

    @pytest.mark.asyncio
    async def test_typed_client_error_is_not_retried(self, client, backend):
        backend.handlers[CODE_ANALYSIS] = lambda r: httpx.Response(
            422,
            json={
                "success": False,
                "error": {"message": "Failed to parse component code.", "code": "parse_error"},
            },
        )

        with pytest.raises(ParseError) as exc_info:
            await client.analyze_code(ComponentRequest(code="<"), "cid-2")

        assert exc_info.value.correlation_id == "cid-2"
        assert len(backend.requests[CODE_ANALYSIS]) == 1
        assert client.breakers[CODE_ANALYSIS].state is CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_server_error_is_retried_with_backoff(self, backend):
        settings = Settings(retry_attempts=2, retry_base_delay=0.1)
        client = ServiceClient(settings, transports=backend.transports(), sleep=backend.sleep)
        backend.handlers[CODE_ANALYSIS] = lambda r: httpx.Response(503, text="busy")

        with pytest.raises(ServiceUnavailableError):
            await client.analyze_code(ComponentRequest(code="x"))

        assert len(backend.requests[CODE_ANALYSIS]) == 3
        assert backend.delays == pytest.approx([0.2, 0.4])

    @pytest.mark.asyncio
    async def test_breaker_opens_after_repeated_failures(self, client, backend):
        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        backend.handlers[CODE_ANALYSIS] = refuse

        for _ in range(3):
            with pytest.raises(ServiceUnavailableError):
                await client.analyze_code(ComponentRequest(code="x"))
        attempts = len(backend.requests[CODE_ANALYSIS])
        assert attempts == 9

        with pytest.raises(ServiceUnavailableError) as exc_info:
            await client.analyze_code(ComponentRequest(code="x"))
        assert "Circuit breaker open" in exc_info.value.details
        assert len(backend.requests[CODE_ANALYSIS]) == attempts
        assert client.breakers[LLM_SERVICE].state is CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_timeout(self, client, backend):
        def slow(request):
            raise httpx.ReadTimeout("slow", request=request)

        backend.handlers[CODE_ANALYSIS] = slow

        with pytest.raises(ServiceTimeoutError) as exc_info:
            await client.analyze_code(ComponentRequest(code="x"), "cid-3")
        assert exc_info.value.message == "code-analysis did not respond in time."

    @pytest.mark.asyncio
    async def test_malformed_body(self, client, backend):
        backend.handlers[CODE_ANALYSIS] = lambda r: httpx.Response(200, json={"unexpected": True})

        with pytest.raises(InternalServiceError):
            await client.analyze_code(ComponentRequest(code="x"))

    @pytest.mark.asyncio
    async def test_invalid_analysis_shape(self, client, backend):
        backend.handlers[CODE_ANALYSIS] = lambda r: httpx.Response(
            200, json=envelope({"name": "", "type": "functional"})
        )

        with pytest.raises(InternalServiceError, match="Malformed response"):
            await client.analyze_code(ComponentRequest(code="x"))


class TestGenerateAndValidate:
    @pytest.mark.asyncio
    async def test_generate_payload(self, client, backend, greeting_analysis):
        backend.handlers[LLM_SERVICE] = lambda r: httpx.Response(
            200, json=envelope({"content": "test()", "model": "m", "prompt": "p"})
        )

        result = await client.generate_test(
            greeting_analysis, GenerationOptions(max_tokens=100), "cid"
        )

        assert result.content == "test()"
        body = json.loads(backend.requests[LLM_SERVICE][0].content)
        assert body["analysis"]["name"] == "Greeting"
        assert body["analysis"]["dataTestIds"] == ["btn"]
        assert body["options"] == {"maxTokens": 100}

    @pytest.mark.asyncio
    async def test_validate_envelope(self, client, backend, greeting_analysis):
        generated = GeneratedTest(content="test()", prompt="p")
        backend.handlers[TEST_VALIDATION] = lambda r: httpx.Response(
            200,
            json=envelope(
                {"valid": False, "issues": ["nope"], "generatedTest": generated.to_wire()}
            ),
        )

        result = await client.validate_test(generated, greeting_analysis)

        assert result.valid is False
        assert result.issues == ["nope"]
        body = json.loads(backend.requests[TEST_VALIDATION][0].content)
        assert body["component"] == {"name": "Greeting", "complexity": 3}
        assert body["generatedTest"]["content"] == "test()"

    @pytest.mark.asyncio
    async def test_validate_bare_test(self, client, backend):
        generated = GeneratedTest(content="test()")
        backend.handlers[TEST_VALIDATION] = lambda r: httpx.Response(
            200, json=envelope({"valid": True, "issues": [], "generatedTest": generated.to_wire()})
        )

        await client.validate_test(generated)

        body = json.loads(backend.requests[TEST_VALIDATION][0].content)
        assert body["content"] == "test()"


class TestHealth:
    @pytest.mark.asyncio
    async def test_healthy_and_unhealthy(self, client, backend):
        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        backend.handlers[CODE_ANALYSIS] = lambda r: httpx.Response(200, json=envelope({"status": "ok"}))
        backend.handlers[LLM_SERVICE] = refuse
        backend.handlers[TEST_VALIDATION] = lambda r: httpx.Response(500, json={})

        report = await client.check_all("cid")

        assert [h.service for h in report] == list(SERVICES)
        assert [h.healthy for h in report] == [True, False, False]
        assert report[1].message == "llm-service is currently unavailable."
        assert all(h.latency_ms >= 0 for h in report)
        assert backend.requests[CODE_ANALYSIS][0].url.path == "/health"
        assert backend.delays == []

    @pytest.mark.asyncio
    async def test_close(self, client):
        await client.aclose()
        assert all(c.is_closed for c in client.clients.values())
