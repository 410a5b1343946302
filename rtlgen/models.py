"""Pydantic models shared by the analysis, generation and validation stages.

Python attributes are snake_case; the JSON wire format exchanged between
the services uses camelCase (``eventHandlers``, ``dataTestIds``, ...).
Both spellings are accepted on input. Serialize with
``model_dump(by_alias=True)`` when building a payload.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

ComponentType = Literal["functional", "class"]
SourceMode = Literal["full", "selection"]
StreamEventName = Literal["start", "token", "heartbeat", "done", "error"]


def _dedupe(values: list[str]) -> list[str]:
    """Drop repeated entries, keeping first-seen order."""
    return list(dict.fromkeys(values))


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None


class WireModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """Return the JSON-compatible camelCase representation."""
        return self.model_dump(by_alias=True, mode="json")


# ---------------------------------------------------------------------------
# Component analysis
# ---------------------------------------------------------------------------


class PropDefinition(WireModel):
    """A single prop accepted by a component.

    Attributes:
        name: Prop name as written in the source.
        type: Raw type text, verbatim from the annotation, if any.
        required: ``False`` when the prop is optional or has a default.
        default_value: Source text of the destructuring default, if any.
        description: Leading comment of an interface member, or
            ``"Rest props"`` for a rest element.
    """

    name: str
    type: str | None = None
    required: bool
    default_value: str | None = None
    description: str | None = None


class StateUsage(WireModel):
    name: str
    initial_value: str | None = None


class HookUsage(WireModel):
    name: str
    dependencies: list[str] | None = None


class EventHandler(WireModel):
    """A JSX ``on*`` attribute.

    Attributes:
        name: The DOM event prop, e.g. ``"onClick"``.
        handler: Identifier name, or the verbatim expression text.
        element: Tag name of the element carrying the attribute.
    """

    name: str
    handler: str
    element: str | None = None


class ImportDefinition(WireModel):
    source: str
    imported: list[str] = Field(default_factory=list)
    namespace: str | None = None
    default_import: str | None = None

    @field_validator("imported")
    @classmethod
    def _unique_imported(cls, value: list[str]) -> list[str]:
        return _dedupe(value)


class ComponentAnalysis(WireModel):
    """Immutable snapshot of one component's structure.

    ``metadata`` is an open map carrying cross-cutting context (display
    name, source mode, user instructions). Stages that do not own a key
    pass it through unchanged; enrichment goes through
    :meth:`with_metadata`, which returns a new value.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    name: str = Field(min_length=1)
    type: ComponentType
    props: list[PropDefinition] = Field(default_factory=list)
    state: list[StateUsage] = Field(default_factory=list)
    hooks: list[HookUsage] = Field(default_factory=list)
    event_handlers: list[EventHandler] = Field(default_factory=list)
    imports: list[ImportDefinition] = Field(default_factory=list)
    data_test_ids: list[str] = Field(default_factory=list)
    complexity: int = Field(default=1, ge=1)
    testing_recommendations: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("data_test_ids", "testing_recommendations")
    @classmethod
    def _unique_strings(cls, value: list[str]) -> list[str]:
        return _dedupe(value)

    def with_metadata(self, **extra: Any) -> ComponentAnalysis:
        """Return a deep copy whose metadata is merged with *extra*."""
        return self.model_copy(update={"metadata": {**self.metadata, **extra}}, deep=True)


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


class GenerationOptions(WireModel):
    model: str | None = None
    temperature: float | None = None
    max_tokens: int | None = Field(default=None, gt=0)
    examples: list[str] | None = None


class GeneratedTest(WireModel):
    """Output artifact of the generation stage.

    ``file_name``/``relative_path`` are assigned by the gateway;
    ``generated_at`` is stamped there when absent.
    """

    content: str
    model: str | None = None
    prompt: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
    file_name: str | None = None
    relative_path: str | None = None
    generated_at: datetime | None = None


class ValidationResult(WireModel):
    valid: bool
    issues: list[str] = Field(default_factory=list)
    generated_test: GeneratedTest


class StreamEvent(BaseModel):
    """One event of a streaming generation.

    Heartbeats are rendered as SSE comments so clients that only listen
    for named events never see them.
    """

    event: StreamEventName
    data: dict[str, Any] = Field(default_factory=dict)

    def to_sse(self) -> str:
        if self.event == "heartbeat":
            return ":heartbeat\n\n"
        return f"event: {self.event}\ndata: {json.dumps(self.data)}\n\n"


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class AnalysisRequest(WireModel):
    code: str = Field(min_length=1)
    file_path: str | None = None
    component_name: str | None = None
    metadata: dict[str, Any] | None = None


class GenerationRequest(WireModel):
    analysis: ComponentAnalysis
    options: GenerationOptions | None = None


class ComponentRef(WireModel):
    name: str = Field(min_length=1)
    complexity: int | None = None


class ValidationRequest(WireModel):
    """Validation payload wrapping the test with the component it targets."""

    generated_test: GeneratedTest
    component: ComponentRef | None = None


class ComponentRequest(WireModel):
    """Gateway request: one component to generate a test for."""

    code: str = Field(min_length=1)
    name: str | None = None
    file_path: str | None = None
    display_name: str | None = None
    instructions: str | None = None
    source: SourceMode = "full"
    metadata: dict[str, Any] | None = None
    options: GenerationOptions | None = None

    @field_validator("display_name", "instructions", "name")
    @classmethod
    def _strip_blank(cls, value: str | None) -> str | None:
        return _blank_to_none(value)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class ServiceHealth(WireModel):
    service: str
    healthy: bool
    latency_ms: int = 0
    message: str | None = None


class GatewayHealth(WireModel):
    service: str
    healthy: bool = True
    timestamp: datetime


class StatusReport(WireModel):
    gateway: GatewayHealth
    dependencies: list[ServiceHealth] = Field(default_factory=list)
