"""Tests for the shared pydantic models."""

import json

import pytest
from pydantic import ValidationError

from rtlgen.models import (
    ComponentAnalysis,
    ComponentRequest,
    GeneratedTest,
    ImportDefinition,
    StreamEvent,
    ValidationRequest,
)


class TestComponentAnalysis:
    def test_accepts_camel_case_wire_format(self):
        analysis = ComponentAnalysis.model_validate(
            {
                "name": "Button",
                "type": "functional",
                "eventHandlers": [{"name": "onClick", "handler": "handleClick"}],
                "dataTestIds": ["a", "b", "a"],
                "testingRecommendations": ["x", "x"],
            }
        )
        assert analysis.event_handlers[0].handler == "handleClick"
        assert analysis.data_test_ids == ["a", "b"]
        assert analysis.testing_recommendations == ["x"]

    def test_to_wire_uses_camel_case(self, greeting_analysis):
        wire = greeting_analysis.to_wire()
        assert "eventHandlers" in wire
        assert "dataTestIds" in wire
        assert wire["props"][0]["defaultValue"] is None

    def test_rejects_empty_name(self):
        with pytest.raises(ValidationError):
            ComponentAnalysis(name="", type="functional")

    def test_rejects_zero_complexity(self):
        with pytest.raises(ValidationError):
            ComponentAnalysis(name="A", type="functional", complexity=0)

    def test_is_frozen(self, greeting_analysis):
        with pytest.raises(ValidationError):
            greeting_analysis.name = "Other"

    def test_with_metadata_returns_new_value(self, greeting_analysis):
        enriched = greeting_analysis.with_metadata(displayName="Hello")
        assert enriched.metadata == {"displayName": "Hello"}
        assert greeting_analysis.metadata == {}
        assert enriched is not greeting_analysis

    def test_with_metadata_does_not_share_lists(self, greeting_analysis):
        enriched = greeting_analysis.with_metadata(displayName="Hello")

        enriched.props.append(enriched.props[0])
        enriched.data_test_ids.append("other")

        assert len(greeting_analysis.props) == 1
        assert greeting_analysis.data_test_ids == ["btn"]


class TestImportDefinition:
    def test_imported_names_are_deduplicated(self):
        imp = ImportDefinition(source="react", imported=["useState", "useEffect", "useState"])
        assert imp.imported == ["useState", "useEffect"]


class TestComponentRequest:
    def test_blank_strings_become_none(self):
        request = ComponentRequest(code="x", displayName="  ", instructions="\n", name="")
        assert request.display_name is None
        assert request.instructions is None
        assert request.name is None

    def test_values_are_trimmed(self):
        request = ComponentRequest(code="x", displayName="  My Button ")
        assert request.display_name == "My Button"
        assert request.source == "full"

    def test_rejects_unknown_source(self):
        with pytest.raises(ValidationError):
            ComponentRequest(code="x", source="partial")


class TestValidationRequest:
    def test_envelope(self):
        request = ValidationRequest.model_validate(
            {"generatedTest": {"content": "test()"}, "component": {"name": "A", "complexity": 2}}
        )
        assert request.generated_test.content == "test()"
        assert request.component.name == "A"

    def test_generated_test_round_trip_keeps_timestamp(self):
        test = GeneratedTest.model_validate(
            {"content": "x", "generatedAt": "2024-01-01T00:00:00Z", "fileName": "A.test.tsx"}
        )
        wire = test.to_wire()
        assert wire["fileName"] == "A.test.tsx"
        assert wire["generatedAt"].startswith("2024-01-01T00:00:00")


class TestStreamEvent:
    def test_named_event(self):
        event = StreamEvent(event="token", data={"token": "imp"})
        lines = event.to_sse().split("\n")
        assert lines[0] == "event: token"
        assert json.loads(lines[1].removeprefix("data: ")) == {"token": "imp"}
        assert event.to_sse().endswith("\n\n")

    def test_heartbeat_is_comment(self):
        assert StreamEvent(event="heartbeat").to_sse() == ":heartbeat\n\n"
