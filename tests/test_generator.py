"""Tests for TestGenerator and its event stream."""

import asyncio
import json
from unittest.mock import AsyncMock, Mock

import httpx
import pytest

from rtlgen.core.config import Settings
from rtlgen.core.exceptions import UpstreamError
from rtlgen.generation import OllamaClient, StreamingChunk, StreamResult, TestGenerator
from rtlgen.models import GeneratedTest, GenerationOptions


class FakeStreamingClient:
    """Stands in for OllamaClient.stream_generate with scripted chunks."""

    def __init__(self, chunks=(), error=None, delay=0.0):
        self.chunks = chunks
        self.error = error
        self.delay = delay
        self.prompts = []

    async def stream_generate(self, prompt, options, on_chunk, cancel_event=None):
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        for content in self.chunks:
            await on_chunk(StreamingChunk(content=content))
        if self.error is not None:
            raise self.error
        await on_chunk(StreamingChunk(content="", done=True))
        return StreamResult(model="m", duration_ms=1)


def pending_tasks():
    current = asyncio.current_task()
    return [task for task in asyncio.all_tasks() if task is not current and not task.done()]


async def collect(stream):
    return [event async for event in stream]


class TestGenerate:
    @pytest.mark.asyncio
    async def test_strips_fences_and_adds_metadata(self, settings, greeting_analysis):
        client = Mock()
        client.generate_test = AsyncMock(
            return_value=GeneratedTest(
                content="Here you go\n```tsx\nimport x from 'y';\n```",
                model="m",
                prompt="p",
                metadata={"streamed": True, "durationMs": 5},
            )
        )
        generator = TestGenerator(settings, client)

        result = await generator.generate(
            greeting_analysis, GenerationOptions(examples=["an example"])
        )

        assert result.content == "import x from 'y';"
        assert result.metadata == {
            "streamed": True,
            "durationMs": 5,
            "component": "Greeting",
            "complexity": 3,
        }
        prompt = client.generate_test.await_args.args[0]
        assert "Few-shot Examples:\nan example" in prompt


class TestStream:
    @pytest.mark.asyncio
    async def test_event_sequence(self, settings, greeting_analysis):
        generator = TestGenerator(settings, FakeStreamingClient(chunks=["imp", "ort"]))

        events = await collect(generator.stream(greeting_analysis))

        assert [e.event for e in events] == ["start", "token", "token", "done"]
        assert events[0].data == {"model": settings.model_name, "component": "Greeting"}
        assert [e.data["token"] for e in events[1:3]] == ["imp", "ort"]
        assert events[-1].data == {"component": "Greeting"}
        assert pending_tasks() == []

    @pytest.mark.asyncio
    async def test_start_reports_requested_model(self, settings, greeting_analysis):
        generator = TestGenerator(settings, FakeStreamingClient())
        events = await collect(
            generator.stream(greeting_analysis, GenerationOptions(model="codellama"))
        )
        assert events[0].data["model"] == "codellama"

    @pytest.mark.asyncio
    async def test_error_event(self, settings, greeting_analysis):
        client = FakeStreamingClient(chunks=["a"], error=UpstreamError("model crashed"))
        generator = TestGenerator(settings, client)

        events = await collect(generator.stream(greeting_analysis))

        assert [e.event for e in events] == ["start", "token", "error"]
        assert events[-1].data == {"message": "model crashed", "code": "upstream_error"}
        assert pending_tasks() == []

    @pytest.mark.asyncio
    async def test_heartbeats_while_waiting(self, greeting_analysis):
        settings = Settings(heartbeat_interval=0.01)
        generator = TestGenerator(settings, FakeStreamingClient(chunks=["x"], delay=0.1))

        events = await collect(generator.stream(greeting_analysis))

        names = [e.event for e in events]
        assert "heartbeat" in names
        assert names[0] == "start"
        assert names[-1] == "done"
        assert pending_tasks() == []

    @pytest.mark.asyncio
    async def test_closing_early_cancels_everything(self, settings, greeting_analysis):
        generator = TestGenerator(
            settings, FakeStreamingClient(chunks=["a", "b", "c"], delay=0.05)
        )
        stream = generator.stream(greeting_analysis)

        first = await stream.__anext__()
        assert first.event == "start"
        await stream.aclose()

        assert pending_tasks() == []

    @pytest.mark.asyncio
    async def test_cancel_event_aborts_upstream(self, settings, greeting_analysis):
        async def body():
            yield (json.dumps({"response": "first"}) + "\n").encode()
            await asyncio.Event().wait()

        client = OllamaClient(
            settings,
            transport=httpx.MockTransport(lambda request: httpx.Response(200, content=body())),
        )
        generator = TestGenerator(settings, client)
        cancel = asyncio.Event()
        events = []

        async with client:
            async for event in generator.stream(greeting_analysis, cancel_event=cancel):
                events.append(event)
                if event.event == "token":
                    cancel.set()

        assert [e.event for e in events] == ["start", "token", "error"]
        assert events[-1].data["code"] == "service_timeout"
        assert pending_tasks() == []
