"""Streaming client for the Ollama generate API.

Ollama streams newline-delimited JSON objects::

    {"response": "imp", "done": false}
    {"response": "ort", "done": false}
    {"done": true}

A line carrying an ``error`` field aborts the stream. Transport failures
are mapped into the rtlgen error taxonomy and retried (with exponential
backoff) only while no chunk has been handed to the caller yet.
"""

import asyncio
import inspect
import json
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

import httpx

from ..core.config import Settings
from ..core.exceptions import (
    TRANSIENT_FAILURES,
    GenerationCancelledError,
    GenericUpstreamError,
    InternalServiceError,
    RTLGenError,
    ServiceTimeoutError,
    ServiceUnavailableError,
    UpstreamError,
    ValidationPayloadError,
)
from ..models import GeneratedTest, GenerationOptions

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class StreamingChunk:
    """An incremental piece of generated text; ``done`` marks the terminal chunk."""

    content: str
    done: bool = False


@dataclass
class StreamResult:
    model: str
    duration_ms: int


@dataclass
class ModelInfo:
    name: str
    modified_at: str | None = None
    size: int | None = None


ChunkHandler = Callable[[StreamingChunk], Awaitable[None] | None]


async def run_cancellable(
    operation: Awaitable[T], cancel_event: asyncio.Event | None
) -> T:
    """Await *operation*, abandoning it as soon as *cancel_event* is set.

    Raises:
        GenerationCancelledError: If the event fires first. The operation
            is cancelled and awaited so its connections are released.
    """
    if cancel_event is None:
        return await operation

    work = asyncio.ensure_future(operation)
    waiter = asyncio.ensure_future(cancel_event.wait())
    try:
        done, _pending = await asyncio.wait(
            {work, waiter}, return_when=asyncio.FIRST_COMPLETED
        )
    finally:
        for task in (work, waiter):
            if not task.done():
                task.cancel()
        await asyncio.gather(work, waiter, return_exceptions=True)

    if work in done:
        return work.result()
    raise GenerationCancelledError("Generation aborted by client.")


class OllamaClient:
    """Async client for a local Ollama server."""

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.settings = settings
        self.model = settings.model_name
        self.retry_attempts = settings.retry_attempts
        self.retry_base_delay = settings.retry_base_delay
        self._sleep = sleep
        self.client = httpx.AsyncClient(
            base_url=settings.ollama_base_url,
            timeout=settings.ollama_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "OllamaClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def build_payload(
        self, prompt: str, options: GenerationOptions | None, stream: bool = True
    ) -> dict[str, Any]:
        options = options or GenerationOptions()
        model = (options.model or "").strip() or self.model
        temperature = (
            options.temperature
            if options.temperature is not None
            else self.settings.temperature
        )
        max_tokens = options.max_tokens or self.settings.max_tokens
        return {
            "model": model,
            "prompt": prompt,
            "stream": stream,
            "options": {"temperature": temperature, "num_predict": max_tokens},
        }

    async def generate_test(
        self,
        prompt: str,
        options: GenerationOptions | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> GeneratedTest:
        """Stream a completion for *prompt* and collect it into a ``GeneratedTest``."""
        parts: list[str] = []

        def _collect(chunk: StreamingChunk) -> None:
            parts.append(chunk.content)

        result = await self.stream_generate(prompt, options, _collect, cancel_event)
        return GeneratedTest(
            content="".join(parts).strip(),
            model=result.model,
            prompt=prompt,
            metadata={"streamed": True, "durationMs": result.duration_ms},
        )

    async def stream_generate(
        self,
        prompt: str,
        options: GenerationOptions | None,
        on_chunk: ChunkHandler,
        cancel_event: asyncio.Event | None = None,
    ) -> StreamResult:
        """Stream a completion, calling *on_chunk* for each piece in arrival order.

        Exactly one terminal chunk (``done=True``) is delivered, even if
        the server closes the stream without a done marker.

        Raises:
            UpstreamError: If Ollama reports an error inside the stream.
            GenerationCancelledError: If *cancel_event* is set mid-stream.
            ServiceTimeoutError, ServiceUnavailableError,
            ValidationPayloadError, GenericUpstreamError: On transport
                failures, after retries are exhausted.
        """
        payload = self.build_payload(prompt, options, stream=True)
        started_at = time.monotonic()
        delivered = False

        async def _deliver(chunk: StreamingChunk) -> None:
            nonlocal delivered
            delivered = True
            result = on_chunk(chunk)
            if inspect.isawaitable(result):
                await result

        async def _attempt() -> None:
            done_signalled = False
            try:
                async with self.client.stream("POST", "/api/generate", json=payload) as response:
                    if response.is_error:
                        await response.aread()
                        raise self._status_error(response, "generateTest")
                    async for line in response.aiter_lines():
                        parsed = self._parse_line(line)
                        if parsed is None:
                            continue
                        if parsed.get("error"):
                            raise UpstreamError(str(parsed["error"]))
                        if parsed.get("response"):
                            await _deliver(StreamingChunk(content=parsed["response"]))
                        if parsed.get("done") and not done_signalled:
                            done_signalled = True
                            await _deliver(StreamingChunk(content="", done=True))
            except httpx.HTTPError as e:
                raise self._map_transport_error(e, "generateTest") from e

            if not done_signalled:
                await _deliver(StreamingChunk(content="", done=True))

        await self._execute_with_retry(
            _attempt,
            "generateTest",
            cancel_event=cancel_event,
            can_retry=lambda: not delivered,
        )
        return StreamResult(
            model=payload["model"],
            duration_ms=int((time.monotonic() - started_at) * 1000),
        )

    # ------------------------------------------------------------------
    # Models / health
    # ------------------------------------------------------------------

    async def list_models(self) -> list[ModelInfo]:
        async def _fetch() -> dict[str, Any]:
            try:
                response = await self.client.get("/api/tags")
            except httpx.HTTPError as e:
                raise self._map_transport_error(e, "listModels") from e
            if response.is_error:
                raise self._status_error(response, "listModels")
            return response.json()

        data = await self._execute_with_retry(_fetch, "listModels")
        return [
            ModelInfo(
                name=entry["name"],
                modified_at=entry.get("modified_at"),
                size=entry.get("size"),
            )
            for entry in data.get("models", [])
        ]

    async def check_health(self) -> bool:
        try:
            response = await self.client.get("/api/version")
        except httpx.HTTPError as e:
            raise self._map_transport_error(e, "health") from e
        if response.is_error:
            raise self._status_error(response, "health")
        return True

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _execute_with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        action: str,
        cancel_event: asyncio.Event | None = None,
        can_retry: Callable[[], bool] = lambda: True,
    ) -> T:
        attempt = 0
        while True:
            try:
                return await run_cancellable(operation(), cancel_event)
            except GenerationCancelledError:
                raise
            except TRANSIENT_FAILURES as e:
                attempt += 1
                if attempt > self.retry_attempts or not can_retry():
                    raise
                if cancel_event is not None and cancel_event.is_set():
                    raise GenerationCancelledError("Generation aborted by client.") from e
                delay = self.retry_base_delay * 2 ** attempt
                logger.warning(
                    f"Attempt {attempt} failed for Ollama {action}, retrying in {delay:.2f}s",
                    extra={"service": "ollama", "attempt": attempt, "code": e.code},
                )
                await self._sleep(delay)

    @staticmethod
    def _parse_line(line: str) -> dict[str, Any] | None:
        trimmed = line.strip()
        if not trimmed:
            return None
        try:
            parsed = json.loads(trimmed)
        except json.JSONDecodeError:
            logger.warning("Failed to parse Ollama stream chunk", extra={"event": trimmed[:200]})
            return None
        return parsed if isinstance(parsed, dict) else None

    @staticmethod
    def _map_transport_error(error: httpx.HTTPError, action: str) -> RTLGenError:
        if isinstance(error, httpx.TimeoutException):
            return ServiceTimeoutError(f"Ollama request timed out ({action}).", str(error))
        if isinstance(error, httpx.TransportError):
            return ServiceUnavailableError(f"Ollama is unavailable ({action}).", str(error))
        return InternalServiceError(
            f"Unexpected error communicating with Ollama ({action}).", str(error)
        )

    @staticmethod
    def _status_error(response: httpx.Response, action: str) -> RTLGenError:
        body: Any = None
        message: str | None = None
        try:
            body = response.json()
        except ValueError:
            body = response.text or None
        if isinstance(body, dict):
            message = body.get("error") or body.get("message")

        status = response.status_code
        if status == 404:
            return ValidationPayloadError(message or "Requested model was not found.", body)
        if status >= 500:
            return ServiceUnavailableError(message or f"Ollama service error ({action}).", body)
        return GenericUpstreamError(
            message or f"Unexpected Ollama response ({action}).", status, body
        )
