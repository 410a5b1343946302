"""Complexity scoring and testing-strategy recommendations.

Both functions are pure and operate on already extracted facts, so they
are recomputed for every analysis rather than cached.
"""

from collections.abc import Sequence

from ..models import EventHandler, HookUsage, ImportDefinition, PropDefinition

MAX_IMPORT_WEIGHT = 10

ROUTER_MARKER = "react-router"
STATE_MANAGEMENT_MARKER = "react-redux"

ASYNC_HOOKS = frozenset({"useEffect", "useLayoutEffect"})
STATEFUL_HOOKS = frozenset({"useState", "useReducer"})

# Advisory strings, in the order they are emitted
RECOMMEND_USER_EVENTS = "Use fireEvent or userEvent to trigger component callbacks."
RECOMMEND_ASYNC_ASSERTIONS = "Wrap asynchronous updates in waitFor or findBy queries."
RECOMMEND_ACT = "Leverage act utilities when asserting stateful updates."
RECOMMEND_TEST_IDS = (
    "Prefer getByTestId or within queries for elements with data-testid attributes."
)
RECOMMEND_ROUTER = "Wrap component with MemoryRouter when rendering in tests."
RECOMMEND_STORE = "Provide Redux store context (Provider) when rendering tests."


def calculate_complexity(
    props: Sequence[PropDefinition],
    hooks: Sequence[HookUsage],
    event_handlers: Sequence[EventHandler],
    imports: Sequence[ImportDefinition],
) -> int:
    """Score a component: ``max(1, props + 2*hooks + 2*handlers + min(imports, 10))``."""
    return max(
        1,
        len(props)
        + 2 * len(hooks)
        + 2 * len(event_handlers)
        + min(len(imports), MAX_IMPORT_WEIGHT),
    )


def identify_testing_library_needs(
    hooks: Sequence[HookUsage],
    event_handlers: Sequence[EventHandler],
    data_test_ids: Sequence[str],
    imports: Sequence[ImportDefinition],
) -> list[str]:
    """Return the advisory strings whose predicates match, in priority order."""
    hook_names = {hook.name for hook in hooks}
    checks = (
        (bool(event_handlers), RECOMMEND_USER_EVENTS),
        (bool(hook_names & ASYNC_HOOKS), RECOMMEND_ASYNC_ASSERTIONS),
        (bool(hook_names & STATEFUL_HOOKS), RECOMMEND_ACT),
        (bool(data_test_ids), RECOMMEND_TEST_IDS),
        (any(ROUTER_MARKER in imp.source for imp in imports), RECOMMEND_ROUTER),
        (any(STATE_MANAGEMENT_MARKER in imp.source for imp in imports), RECOMMEND_STORE),
    )
    return list(dict.fromkeys(advice for matched, advice in checks if matched))
