"""Prompt construction for test generation.

``build_prompt`` is deterministic: the same analysis and examples always
produce the same text, and every list section renders (with a fixed
placeholder sentence when empty) so prompts keep a stable shape.
"""

from collections.abc import Sequence

from ..models import ComponentAnalysis

HEADER = (
    "System: You are an expert React Testing Library test generator. "
    "Respond with idiomatic tests that follow best practices."
)

NO_PROPS = "No explicit props detected."
NO_STATE = "No local state hooks detected."
NO_HOOKS = "No hooks detected."
NO_HANDLERS = "No explicit event handlers detected."
NO_IMPORTS = "No external dependencies detected."
NO_RECOMMENDATIONS = "Follow standard React Testing Library best practices."

INSTRUCTIONS = """Instructions:
1. Write React Testing Library tests using TypeScript.
2. Import only what is required for the tests.
3. Cover critical user flows, props combinations, and event handlers.
4. Use descriptive test names and prefer screen queries over destructuring.
5. If hooks or async behavior exist, ensure proper usage of act/waitFor.
6. Provide the final answer as a single test file content. Do not include explanations or additional prose."""

CLOSING = "Begin the test file now."

EXAMPLE_SEPARATOR = "\n---\n"


def _bullets(lines: list[str], placeholder: str) -> str:
    return "\n".join(f"- {line}" for line in lines) if lines else placeholder


def format_props(analysis: ComponentAnalysis) -> str:
    lines = []
    for prop in analysis.props:
        line = prop.name
        if prop.type:
            line += f": {prop.type}"
        line += f" (required: {str(prop.required).lower()})"
        if prop.default_value:
            line += f" default={prop.default_value}"
        lines.append(line)
    return _bullets(lines, NO_PROPS)


def format_state(analysis: ComponentAnalysis) -> str:
    lines = [
        f"{item.name} (initial: {item.initial_value})" if item.initial_value else item.name
        for item in analysis.state
    ]
    return _bullets(lines, NO_STATE)


def format_hooks(analysis: ComponentAnalysis) -> str:
    lines = [
        f"{hook.name} (dependencies: {', '.join(hook.dependencies)})"
        if hook.dependencies
        else hook.name
        for hook in analysis.hooks
    ]
    return _bullets(lines, NO_HOOKS)


def format_event_handlers(analysis: ComponentAnalysis) -> str:
    lines = [
        f"{handler.name} handled by {handler.handler}"
        + (f" on <{handler.element}>" if handler.element else "")
        for handler in analysis.event_handlers
    ]
    return _bullets(lines, NO_HANDLERS)


def format_imports(analysis: ComponentAnalysis) -> str:
    lines = []
    for imp in analysis.imports:
        bindings = [b for b in (imp.default_import, *imp.imported, imp.namespace) if b]
        lines.append(f"{imp.source} ({', '.join(bindings) or 'side-effect import'})")
    return _bullets(lines, NO_IMPORTS)


def format_context_notes(analysis: ComponentAnalysis) -> str | None:
    """Caller-supplied context carried in metadata, if any."""
    metadata = analysis.metadata
    notes = []
    display_name = metadata.get("displayName")
    if display_name and display_name != analysis.name:
        notes.append(f"Display name: {display_name}")
    if metadata.get("source") == "selection":
        notes.append("Source mode: selection (only part of the file was provided)")
    instructions = metadata.get("instructions")
    if isinstance(instructions, str) and instructions.strip():
        notes.append(f"User instructions: {instructions.strip()}")
    if not notes:
        return None
    return "Additional Context:\n" + "\n".join(f"- {note}" for note in notes)


def build_prompt(
    analysis: ComponentAnalysis,
    examples: Sequence[str] | None = None,
) -> str:
    """Render the generation prompt for *analysis*.

    Section order: header, component overview, props, state, hooks,
    event handlers, imported dependencies, testing recommendations,
    additional context (only when metadata carries some), few-shot
    examples (only when given), instructions, closing directive.
    """
    test_ids = ", ".join(analysis.data_test_ids) if analysis.data_test_ids else "none"
    overview = (
        "Component Overview:\n"
        f"- Name: {analysis.name}\n"
        f"- Type: {analysis.type}\n"
        f"- Complexity Score: {analysis.complexity}\n"
        f"- Data Test IDs: {test_ids}"
    )

    sections: list[str | None] = [
        HEADER,
        overview,
        f"Props:\n{format_props(analysis)}",
        f"State:\n{format_state(analysis)}",
        f"Hooks:\n{format_hooks(analysis)}",
        f"Event Handlers:\n{format_event_handlers(analysis)}",
        f"Imported Dependencies:\n{format_imports(analysis)}",
        "Testing Recommendations:\n"
        + _bullets(list(analysis.testing_recommendations), NO_RECOMMENDATIONS),
        format_context_notes(analysis),
        f"Few-shot Examples:\n{EXAMPLE_SEPARATOR.join(examples)}" if examples else None,
        INSTRUCTIONS,
        CLOSING,
    ]
    return "\n\n".join(section for section in sections if section)
