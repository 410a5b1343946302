"""Tests for deterministic prompt construction."""

from rtlgen.generation.prompt_builder import (
    CLOSING,
    HEADER,
    INSTRUCTIONS,
    NO_HANDLERS,
    NO_HOOKS,
    NO_IMPORTS,
    NO_PROPS,
    NO_RECOMMENDATIONS,
    NO_STATE,
    build_prompt,
)
from rtlgen.models import ComponentAnalysis, HookUsage, ImportDefinition, StateUsage


def _section_positions(prompt, headings):
    return [prompt.index(heading) for heading in headings]


class TestBuildPrompt:
    def test_empty_analysis_renders_every_placeholder(self):
        prompt = build_prompt(ComponentAnalysis(name="Empty", type="functional"))
        for placeholder in (NO_PROPS, NO_STATE, NO_HOOKS, NO_HANDLERS, NO_IMPORTS, NO_RECOMMENDATIONS):
            assert placeholder in prompt
        assert "- Data Test IDs: none" in prompt
        assert "Additional Context:" not in prompt
        assert "Few-shot Examples:" not in prompt

    def test_section_order(self, greeting_analysis):
        prompt = build_prompt(greeting_analysis, examples=["example one"])
        positions = _section_positions(
            prompt,
            [
                HEADER,
                "Component Overview:",
                "Props:",
                "State:",
                "Hooks:",
                "Event Handlers:",
                "Imported Dependencies:",
                "Testing Recommendations:",
                "Few-shot Examples:",
                INSTRUCTIONS,
            ],
        )
        assert positions == sorted(positions)
        assert prompt.endswith(CLOSING)

    def test_is_deterministic(self, greeting_analysis):
        assert build_prompt(greeting_analysis) == build_prompt(greeting_analysis)

    def test_facts_are_rendered(self, greeting_analysis):
        analysis = greeting_analysis.model_copy(
            update={
                "state": [StateUsage(name="count", initial_value="0")],
                "hooks": [HookUsage(name="useEffect", dependencies=["count"])],
                "imports": [
                    ImportDefinition(source="react", default_import="React", imported=["useState"]),
                    ImportDefinition(source="./styles.css"),
                ],
            }
        )
        prompt = build_prompt(analysis)
        assert "- name: string (required: true)" in prompt
        assert "- count (initial: 0)" in prompt
        assert "- useEffect (dependencies: count)" in prompt
        assert "- onClick handled by () => {} on <button>" in prompt
        assert "- react (React, useState)" in prompt
        assert "- ./styles.css (side-effect import)" in prompt
        assert "- Complexity Score: 3" in prompt
        assert "- Data Test IDs: btn" in prompt

    def test_context_notes_from_metadata(self, greeting_analysis):
        analysis = greeting_analysis.with_metadata(
            displayName="Friendly Greeting",
            source="selection",
            instructions="  Cover the empty name case.  ",
        )
        prompt = build_prompt(analysis)
        assert "Additional Context:" in prompt
        assert "- Display name: Friendly Greeting" in prompt
        assert "Source mode: selection" in prompt
        assert "- User instructions: Cover the empty name case." in prompt
        assert prompt.index("Additional Context:") < prompt.index(INSTRUCTIONS)

    def test_display_name_equal_to_name_is_not_repeated(self, greeting_analysis):
        prompt = build_prompt(greeting_analysis.with_metadata(displayName="Greeting", source="full"))
        assert "Additional Context:" not in prompt

    def test_examples_are_separated(self, greeting_analysis):
        prompt = build_prompt(greeting_analysis, examples=["first", "second"])
        assert "Few-shot Examples:\nfirst\n---\nsecond" in prompt
