"""Test generation from a component analysis."""

import asyncio
import logging
from collections.abc import AsyncIterator

from ..core.config import Settings
from ..core.exceptions import RTLGenError
from ..models import ComponentAnalysis, GeneratedTest, GenerationOptions, StreamEvent
from .formatter import extract_code_block
from .ollama_client import OllamaClient, StreamingChunk
from .prompt_builder import build_prompt

logger = logging.getLogger(__name__)


class TestGenerator:
    """Builds prompts from analyses and runs them through Ollama."""

    # Keep pytest from collecting this class.
    __test__ = False

    def __init__(self, settings: Settings, client: OllamaClient | None = None) -> None:
        self.settings = settings
        self.client = client or OllamaClient(settings)

    async def generate(
        self,
        analysis: ComponentAnalysis,
        options: GenerationOptions | None = None,
        cancel_event: asyncio.Event | None = None,
        correlation_id: str | None = None,
    ) -> GeneratedTest:
        """Generate a complete test file for *analysis*."""
        options = options or GenerationOptions()
        prompt = build_prompt(analysis, options.examples)

        logger.info(
            f"Generating test for {analysis.name}",
            extra={"correlation_id": correlation_id, "component": analysis.name},
        )
        result = await self.client.generate_test(prompt, options, cancel_event)

        return result.model_copy(
            update={
                "content": extract_code_block(result.content),
                "metadata": {
                    **result.metadata,
                    "component": analysis.name,
                    "complexity": analysis.complexity,
                },
            }
        )

    async def stream(
        self,
        analysis: ComponentAnalysis,
        options: GenerationOptions | None = None,
        cancel_event: asyncio.Event | None = None,
        correlation_id: str | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Yield ``start``, ``token``... and a terminal ``done`` or ``error`` event.

        ``heartbeat`` events are interleaved every
        ``settings.heartbeat_interval`` seconds. Closing the iterator early
        cancels the upstream stream and the heartbeat task.
        """
        options = options or GenerationOptions()
        prompt = build_prompt(analysis, options.examples)
        queue: asyncio.Queue[StreamEvent | None] = asyncio.Queue()

        async def _on_chunk(chunk: StreamingChunk) -> None:
            if chunk.done:
                await queue.put(StreamEvent(event="done", data={"component": analysis.name}))
            elif chunk.content:
                await queue.put(StreamEvent(event="token", data={"token": chunk.content}))

        async def _produce() -> None:
            try:
                await self.client.stream_generate(prompt, options, _on_chunk, cancel_event)
            except RTLGenError as e:
                logger.error(
                    "Streaming generation failed",
                    extra={"correlation_id": correlation_id, "code": e.code, "error": e.message},
                )
                await queue.put(StreamEvent(event="error", data={"message": e.message, "code": e.code}))
            except Exception as e:
                logger.exception(
                    "Unexpected streaming failure", extra={"correlation_id": correlation_id}
                )
                await queue.put(
                    StreamEvent(event="error", data={"message": str(e), "code": "internal_error"})
                )
            finally:
                await queue.put(None)

        async def _heartbeat() -> None:
            while True:
                await asyncio.sleep(self.settings.heartbeat_interval)
                await queue.put(StreamEvent(event="heartbeat"))

        yield StreamEvent(
            event="start",
            data={
                "model": (options.model or "").strip() or self.settings.model_name,
                "component": analysis.name,
            },
        )

        producer = asyncio.create_task(_produce())
        heartbeat = asyncio.create_task(_heartbeat())
        try:
            while True:
                event = await queue.get()
                if event is None:
                    break
                yield event
        finally:
            for task in (heartbeat, producer):
                task.cancel()
            await asyncio.gather(heartbeat, producer, return_exceptions=True)
