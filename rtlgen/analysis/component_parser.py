"""Structural extraction of React components from JSX/TSX source.

The extractor works on a strictly parsed tree-sitter AST and pulls out
the facts the prompt builder needs: the component's name and kind, its
props, local state, hook calls, JSX event handlers, ``data-testid``
values and import statements.

Every ``extract_*`` function is pure: the same source always yields the
same result.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

import tree_sitter as ts

from ..core.exceptions import AmbiguousComponentError
from ..models import (
    ComponentType,
    EventHandler,
    HookUsage,
    ImportDefinition,
    PropDefinition,
    StateUsage,
)
from .ast_engine import ASTEngine, NodeKind, ParsedAST

logger = logging.getLogger(__name__)

HOOK_NAMES = frozenset({
    "useState",
    "useReducer",
    "useEffect",
    "useLayoutEffect",
    "useMemo",
    "useCallback",
    "useContext",
    "useRef",
    "useImperativeHandle",
    "useTransition",
    "useDeferredValue",
})

# Hooks whose second argument is a dependency array
DEPENDENCY_HOOKS = frozenset({"useEffect", "useLayoutEffect", "useMemo", "useCallback"})
STATE_HOOKS = frozenset({"useState", "useReducer"})

REST_PROPS_TYPE = "Record<string, unknown>"
TEST_ID_ATTRIBUTE = "data-testid"

_EVENT_ATTRIBUTE = re.compile(r"^on[A-Z]")
_COMPONENT_NAME = re.compile(r"^[A-Z]")


@dataclass
class ExtractedComponent:
    """Structural facts extracted from one component's source.

    Complexity and testing recommendations are derived later from these
    facts by :mod:`rtlgen.analysis.dependency_analyzer`.
    """

    name: str
    type: ComponentType
    props: list[PropDefinition] = field(default_factory=list)
    state: list[StateUsage] = field(default_factory=list)
    hooks: list[HookUsage] = field(default_factory=list)
    event_handlers: list[EventHandler] = field(default_factory=list)
    data_test_ids: list[str] = field(default_factory=list)
    imports: list[ImportDefinition] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Small node helpers
# ---------------------------------------------------------------------------


def is_component_name(name: str | None) -> bool:
    return bool(name) and _COMPONENT_NAME.match(name) is not None


def _named_children(node: ts.Node) -> list[ts.Node]:
    """Named children without comments."""
    return [child for child in node.named_children if child.type != NodeKind.COMMENT]


def _field_text(ast: ParsedAST, node: ts.Node, field_name: str) -> str | None:
    return ast.get_text(node.child_by_field_name(field_name))


def _string_value(ast: ParsedAST, node: ts.Node) -> str:
    """Return a string literal's value without its quotes."""
    text = ast.get_text(node) or ""
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "'\"`":
        return text[1:-1]
    return text


def _annotation_type(node: ts.Node | None) -> ts.Node | None:
    """Return the type node inside a ``type_annotation`` (``: T``)."""
    if node is None or node.type != NodeKind.TYPE_ANNOTATION:
        return None
    children = _named_children(node)
    return children[0] if children else None


def _has_token(node: ts.Node, token: str) -> bool:
    return any(child.type == token for child in node.children)


def _top_level_declarations(root: ts.Node) -> list[ts.Node]:
    """Top-level statements with ``export`` wrappers removed."""
    declarations = []
    for statement in _named_children(root):
        if statement.type == NodeKind.EXPORT_STATEMENT:
            inner = statement.child_by_field_name("declaration")
            if inner is not None:
                declarations.append(inner)
        else:
            declarations.append(statement)
    return declarations


# ---------------------------------------------------------------------------
# Name and type detection
# ---------------------------------------------------------------------------


def _default_export_name(ast: ParsedAST, statement: ts.Node) -> str | None:
    """Resolve the name behind ``export default ...``.

    Handles identifiers, named function/class declarations and one level
    of higher-order wrapping such as ``memo(Button)`` or
    ``forwardRef(function Input(props, ref) {...})``.
    """
    target = statement.child_by_field_name("declaration")
    if target is None:
        target = statement.child_by_field_name("value")
    if target is None:
        return None

    if target.type == NodeKind.IDENTIFIER:
        return ast.get_text(target)

    if (
        target.type in NodeKind.CLASS_DECLARATIONS
        or target.type == NodeKind.FUNCTION_DECLARATION
        or target.type in NodeKind.FUNCTION_VALUES
        or target.type == NodeKind.CLASS
    ):
        return _field_text(ast, target, "name")

    if target.type == NodeKind.CALL_EXPRESSION:
        args_node = target.child_by_field_name("arguments")
        args = _named_children(args_node) if args_node is not None else []
        if not args:
            return None
        first = args[0]
        if first.type == NodeKind.IDENTIFIER:
            return ast.get_text(first)
        if first.type in NodeKind.FUNCTION_VALUES:
            return _field_text(ast, first, "name")

    return None


def extract_component_name(ast: ParsedAST) -> str | None:
    """Detect the component name, or ``None`` when the source is ambiguous.

    Precedence, first match wins:

    1. the default export (declaration, identifier or wrapped call);
    2. a top-level function declaration with an uppercase name;
    3. a top-level class declaration with an uppercase name;
    4. a top-level variable bound to an arrow/function expression with an
       uppercase name.
    """
    root = ast.root_node

    for statement in _named_children(root):
        if statement.type == NodeKind.EXPORT_STATEMENT and _has_token(statement, "default"):
            name = _default_export_name(ast, statement)
            if name:
                return name

    declarations = _top_level_declarations(root)

    for node in declarations:
        if node.type == NodeKind.FUNCTION_DECLARATION:
            name = _field_text(ast, node, "name")
            if is_component_name(name):
                return name

    for node in declarations:
        if node.type in NodeKind.CLASS_DECLARATIONS:
            name = _field_text(ast, node, "name")
            if is_component_name(name):
                return name

    for node in declarations:
        if node.type not in NodeKind.VARIABLE_DECLARATIONS:
            continue
        for declarator in _named_children(node):
            if declarator.type != NodeKind.VARIABLE_DECLARATOR:
                continue
            name_node = declarator.child_by_field_name("name")
            value = declarator.child_by_field_name("value")
            if (
                name_node is not None
                and name_node.type == NodeKind.IDENTIFIER
                and value is not None
                and value.type in NodeKind.FUNCTION_VALUES
                and is_component_name(ast.get_text(name_node))
            ):
                return ast.get_text(name_node)

    return None


def detect_component_type(ast: ParsedAST, component_name: str) -> ComponentType:
    """``"class"`` iff a class declaration named *component_name* exists."""
    for node in ast.iter_nodes():
        if (
            node.type in NodeKind.CLASS_DECLARATIONS
            and _field_text(ast, node, "name") == component_name
        ):
            return "class"
    return "functional"


# ---------------------------------------------------------------------------
# Props
# ---------------------------------------------------------------------------


def _type_reference_name(ast: ParsedAST, type_node: ts.Node | None) -> str | None:
    """Name of a referenced type: ``Props``, ``Props<T>``, ``(Props)``, ``Props['x']``."""
    if type_node is None:
        return None
    if type_node.type in (NodeKind.TYPE_IDENTIFIER, NodeKind.NESTED_TYPE_IDENTIFIER):
        return ast.get_text(type_node)
    if type_node.type == NodeKind.GENERIC_TYPE:
        return _field_text(ast, type_node, "name")
    if type_node.type in (NodeKind.PARENTHESIZED_TYPE, NodeKind.LOOKUP_TYPE):
        children = _named_children(type_node)
        return _type_reference_name(ast, children[0]) if children else None
    return None


def _first_type_argument(type_node: ts.Node | None) -> ts.Node | None:
    """First argument of a generic type such as ``React.FC<Props>``."""
    if type_node is None or type_node.type != NodeKind.GENERIC_TYPE:
        return None
    args = type_node.child_by_field_name("type_arguments")
    if args is None:
        args = next(
            (c for c in type_node.named_children if c.type == NodeKind.TYPE_ARGUMENTS),
            None,
        )
    if args is None:
        return None
    children = _named_children(args)
    return children[0] if children else None


def _comment_text(raw: str) -> str:
    if raw.startswith("//"):
        return raw[2:].strip()
    body = raw.removeprefix("/*").removesuffix("*/")
    lines = [line.strip().lstrip("*").strip() for line in body.splitlines()]
    return "\n".join(line for line in lines if line)


def _leading_comments(ast: ParsedAST, node: ts.Node) -> str | None:
    """Comments directly above *node*, ignoring trailing comments of the previous member."""
    comments: list[str] = []
    sibling = node.prev_sibling
    while sibling is not None and sibling.type in (NodeKind.COMMENT, ";", ","):
        if sibling.type == NodeKind.COMMENT:
            before = sibling.prev_sibling
            while before is not None and before.type in (";", ","):
                before = before.prev_sibling
            if (
                before is not None
                and before.type not in (NodeKind.COMMENT, "{")
                and before.end_point.row == sibling.start_point.row
            ):
                break
            comments.append(_comment_text(ast.get_text(sibling) or ""))
        sibling = sibling.prev_sibling
    comments.reverse()
    text = "\n".join(c for c in comments if c)
    return text or None


def _property_key(ast: ParsedAST, key: ts.Node | None) -> str | None:
    if key is None:
        return None
    if key.type == NodeKind.PROPERTY_IDENTIFIER:
        return ast.get_text(key)
    if key.type == NodeKind.STRING:
        return _string_value(ast, key)
    return None


def _type_members(type_node: ts.Node | None) -> list[ts.Node]:
    """``property_signature`` members of an object type or interface body."""
    if type_node is None or type_node.type not in (NodeKind.OBJECT_TYPE, NodeKind.INTERFACE_BODY):
        return []
    return [c for c in type_node.named_children if c.type == NodeKind.PROPERTY_SIGNATURE]


def _collect_members(ast: ParsedAST, type_node: ts.Node | None) -> list[PropDefinition]:
    props: list[PropDefinition] = []
    for member in _type_members(type_node):
        name = _property_key(ast, member.child_by_field_name("name"))
        if not name:
            continue
        member_type = _annotation_type(member.child_by_field_name("type"))
        props.append(
            PropDefinition(
                name=name,
                type=ast.get_text(member_type),
                required=not _has_token(member, "?"),
                description=_leading_comments(ast, member),
            )
        )
    return props


def _collect_type_declarations(ast: ParsedAST) -> dict[str, ts.Node]:
    """Map interface / type alias names to the node holding their members."""
    declarations: dict[str, ts.Node] = {}
    for node in ast.iter_nodes():
        if node.type == NodeKind.INTERFACE_DECLARATION:
            body = node.child_by_field_name("body")
        elif node.type == NodeKind.TYPE_ALIAS_DECLARATION:
            body = node.child_by_field_name("value")
        else:
            continue
        name = _field_text(ast, node, "name")
        if name and body is not None:
            declarations[name] = body
    return declarations


def _props_from_object_pattern(
    ast: ParsedAST,
    pattern: ts.Node,
    inline_type: ts.Node | None,
    pattern_optional: bool,
) -> list[PropDefinition]:
    """One prop per top-level property of a destructured parameter."""
    inline: dict[str, PropDefinition] = {p.name: p for p in _collect_members(ast, inline_type)}
    props: list[PropDefinition] = []

    def _add(name: str | None, default: ts.Node | None) -> None:
        if not name:
            return
        annotated = inline.get(name)
        optional = pattern_optional or (annotated is not None and not annotated.required)
        props.append(
            PropDefinition(
                name=name,
                type=annotated.type if annotated else None,
                required=not optional and default is None,
                default_value=ast.get_text(default),
            )
        )

    for child in _named_children(pattern):
        if child.type == NodeKind.SHORTHAND_PROPERTY_PATTERN:
            _add(ast.get_text(child), None)
        elif child.type == NodeKind.OBJECT_ASSIGNMENT_PATTERN:
            left = child.child_by_field_name("left")
            if left is not None and left.type == NodeKind.SHORTHAND_PROPERTY_PATTERN:
                _add(ast.get_text(left), child.child_by_field_name("right"))
        elif child.type == NodeKind.PAIR_PATTERN:
            value = child.child_by_field_name("value")
            default = None
            if value is not None and value.type == NodeKind.ASSIGNMENT_PATTERN:
                default = value.child_by_field_name("right")
            _add(_property_key(ast, child.child_by_field_name("key")), default)
        elif child.type == NodeKind.REST_PATTERN:
            rest = _named_children(child)
            if rest and rest[0].type == NodeKind.IDENTIFIER:
                props.append(
                    PropDefinition(
                        name=ast.get_text(rest[0]),
                        type=REST_PROPS_TYPE,
                        required=False,
                        description="Rest props",
                    )
                )
    return props


def _process_parameters(
    ast: ParsedAST,
    parameters: ts.Node | None,
    props: list[PropDefinition],
    referenced: list[str],
) -> None:
    """Inspect the first parameter of a component function."""
    if parameters is None or parameters.type != NodeKind.FORMAL_PARAMETERS:
        return
    params = _named_children(parameters)
    if not params:
        return

    first = params[0]
    if first.type not in (NodeKind.REQUIRED_PARAMETER, NodeKind.OPTIONAL_PARAMETER):
        return
    pattern = first.child_by_field_name("pattern")
    type_node = _annotation_type(first.child_by_field_name("type"))
    optional = (
        first.type == NodeKind.OPTIONAL_PARAMETER
        or first.child_by_field_name("value") is not None
    )

    if pattern is not None and pattern.type == NodeKind.OBJECT_PATTERN:
        props.extend(_props_from_object_pattern(ast, pattern, type_node, optional))

    type_name = _type_reference_name(ast, type_node)
    if type_name:
        referenced.append(type_name)


def _class_props_type(ast: ParsedAST, class_node: ts.Node) -> str | None:
    """``Props`` from ``class X extends Component<Props>``."""
    for heritage in class_node.named_children:
        if heritage.type != NodeKind.CLASS_HERITAGE:
            continue
        for clause in heritage.named_children:
            if clause.type != NodeKind.EXTENDS_CLAUSE:
                continue
            for child in clause.named_children:
                if child.type == NodeKind.TYPE_ARGUMENTS:
                    args = _named_children(child)
                    return _type_reference_name(ast, args[0]) if args else None
    return None


def extract_props(ast: ParsedAST, component_name: str) -> list[PropDefinition]:
    """Extract the props of *component_name*.

    Destructured parameter properties come first, followed by the
    members of every referenced named props type. The two sources are
    not merged, so a prop may appear twice; each parameter list is read
    once even when a named function expression is bound to a variable
    of the same name.
    """
    props: list[PropDefinition] = []
    referenced: list[str] = []
    # (start_byte, end_byte) of functions whose parameters were read
    seen_functions: set[tuple[int, int]] = set()

    def _read_parameters(function: ts.Node) -> None:
        span = (function.start_byte, function.end_byte)
        if span in seen_functions:
            return
        seen_functions.add(span)
        _process_parameters(ast, function.child_by_field_name("parameters"), props, referenced)

    for node in ast.iter_nodes():
        if node.type == NodeKind.FUNCTION_DECLARATION or node.type in NodeKind.FUNCTION_VALUES:
            if _field_text(ast, node, "name") == component_name:
                _read_parameters(node)

        elif node.type == NodeKind.VARIABLE_DECLARATOR:
            name_node = node.child_by_field_name("name")
            if name_node is None or ast.get_text(name_node) != component_name:
                continue
            annotation = _annotation_type(node.child_by_field_name("type"))
            if annotation is not None:
                type_arg = _first_type_argument(annotation)
                type_name = _type_reference_name(ast, type_arg if type_arg is not None else annotation)
                if type_name:
                    referenced.append(type_name)
            value = node.child_by_field_name("value")
            if value is not None and value.type in NodeKind.FUNCTION_VALUES:
                _read_parameters(value)

        elif node.type in NodeKind.CLASS_DECLARATIONS:
            if _field_text(ast, node, "name") == component_name:
                type_name = _class_props_type(ast, node)
                if type_name:
                    referenced.append(type_name)

    if referenced:
        declarations = _collect_type_declarations(ast)
        for type_name in dict.fromkeys(referenced):
            props.extend(_collect_members(ast, declarations.get(type_name)))

    return props


# ---------------------------------------------------------------------------
# Hooks and state
# ---------------------------------------------------------------------------


def _hook_name(ast: ParsedAST, callee: ts.Node | None) -> str | None:
    if callee is None:
        return None
    if callee.type == NodeKind.IDENTIFIER:
        name = ast.get_text(callee)
    elif callee.type == NodeKind.MEMBER_EXPRESSION:
        name = _field_text(ast, callee, "property")
    else:
        return None
    return name if name in HOOK_NAMES else None


def _state_name(ast: ParsedAST, call: ts.Node) -> str | None:
    """First identifier of ``const [value, setValue] = useState(...)``."""
    declarator = call.parent
    if declarator is None or declarator.type != NodeKind.VARIABLE_DECLARATOR:
        return None
    if declarator.child_by_field_name("value") != call:
        return None
    pattern = declarator.child_by_field_name("name")
    if pattern is None or pattern.type != NodeKind.ARRAY_PATTERN:
        return None
    elements = [c for c in pattern.children if c.type not in ("[", NodeKind.COMMENT)]
    if elements and elements[0].type == NodeKind.IDENTIFIER:
        return ast.get_text(elements[0])
    return None


def extract_hooks(ast: ParsedAST) -> tuple[list[HookUsage], list[StateUsage]]:
    """Collect hook calls, plus state variables bound by useState/useReducer."""
    hooks: list[HookUsage] = []
    state: list[StateUsage] = []

    for node in ast.iter_nodes():
        if node.type != NodeKind.CALL_EXPRESSION:
            continue
        hook_name = _hook_name(ast, node.child_by_field_name("function"))
        if hook_name is None:
            continue

        args_node = node.child_by_field_name("arguments")
        args = _named_children(args_node) if args_node is not None else []

        dependencies = None
        if hook_name in DEPENDENCY_HOOKS and len(args) > 1 and args[1].type == NodeKind.ARRAY:
            dependencies = [ast.get_text(element) or "" for element in _named_children(args[1])]

        if hook_name in STATE_HOOKS:
            state_name = _state_name(ast, node)
            if state_name:
                state.append(
                    StateUsage(
                        name=state_name,
                        initial_value=ast.get_text(args[0]) if args else None,
                    )
                )

        hooks.append(HookUsage(name=hook_name, dependencies=dependencies))

    return hooks, state


# ---------------------------------------------------------------------------
# JSX attributes
# ---------------------------------------------------------------------------


def _attribute_parts(ast: ParsedAST, attribute: ts.Node) -> tuple[str | None, ts.Node | None]:
    children = _named_children(attribute)
    if not children or children[0].type != NodeKind.PROPERTY_IDENTIFIER:
        return None, None
    value = children[1] if len(children) > 1 else None
    return ast.get_text(children[0]), value


def _element_name(ast: ParsedAST, tag: ts.Node | None) -> str | None:
    if tag is None or tag.type not in NodeKind.JSX_TAGS:
        return None
    name = tag.child_by_field_name("name")
    if name is None:
        return None
    if name.type == NodeKind.IDENTIFIER:
        return ast.get_text(name)
    if name.type == NodeKind.MEMBER_EXPRESSION:
        return _field_text(ast, name, "property")
    if name.type == NodeKind.NESTED_IDENTIFIER:
        parts = _named_children(name)
        return ast.get_text(parts[-1]) if parts else None
    return None


def _handler_identity(ast: ParsedAST, value: ts.Node | None) -> str:
    if value is None:
        return "anonymous"
    if value.type == NodeKind.JSX_EXPRESSION:
        inner = _named_children(value)
        if not inner:
            return "anonymous"
        return ast.get_text(inner[0]) or "anonymous"
    if value.type == NodeKind.STRING:
        return _string_value(ast, value)
    return "anonymous"


def extract_event_handlers(ast: ParsedAST) -> list[EventHandler]:
    """Collect ``on[A-Z]*`` JSX attributes with their element's tag name."""
    handlers: list[EventHandler] = []
    for node in ast.iter_nodes():
        if node.type != NodeKind.JSX_ATTRIBUTE:
            continue
        name, value = _attribute_parts(ast, node)
        if name is None or not _EVENT_ATTRIBUTE.match(name):
            continue
        handlers.append(
            EventHandler(
                name=name,
                handler=_handler_identity(ast, value),
                element=_element_name(ast, node.parent),
            )
        )
    return handlers


def extract_data_test_ids(ast: ParsedAST) -> list[str]:
    """String values of ``data-testid`` attributes, deduplicated."""
    test_ids: dict[str, None] = {}
    for node in ast.iter_nodes():
        if node.type != NodeKind.JSX_ATTRIBUTE:
            continue
        name, value = _attribute_parts(ast, node)
        if name == TEST_ID_ATTRIBUTE and value is not None and value.type == NodeKind.STRING:
            test_ids[_string_value(ast, value)] = None
    return list(test_ids)


# ---------------------------------------------------------------------------
# Imports
# ---------------------------------------------------------------------------


def analyze_imports(ast: ParsedAST) -> list[ImportDefinition]:
    """One ``ImportDefinition`` per ``import`` statement, in source order."""
    imports: list[ImportDefinition] = []
    for node in ast.iter_nodes():
        if node.type != NodeKind.IMPORT_STATEMENT:
            continue
        source_node = node.child_by_field_name("source")
        if source_node is None:
            continue

        imported: list[str] = []
        namespace: str | None = None
        default_import: str | None = None

        for clause in node.named_children:
            if clause.type != NodeKind.IMPORT_CLAUSE:
                continue
            for child in _named_children(clause):
                if child.type == NodeKind.IDENTIFIER:
                    default_import = ast.get_text(child)
                elif child.type == NodeKind.NAMESPACE_IMPORT:
                    idents = [c for c in child.named_children if c.type == NodeKind.IDENTIFIER]
                    namespace = ast.get_text(idents[0]) if idents else None
                elif child.type == NodeKind.NAMED_IMPORTS:
                    for specifier in child.named_children:
                        if specifier.type != NodeKind.IMPORT_SPECIFIER:
                            continue
                        name_node = specifier.child_by_field_name("name")
                        if name_node is None:
                            continue
                        if name_node.type == NodeKind.STRING:
                            imported.append(_string_value(ast, name_node))
                        else:
                            imported.append(ast.get_text(name_node) or "")

        imports.append(
            ImportDefinition(
                source=_string_value(ast, source_node),
                imported=imported,
                namespace=namespace,
                default_import=default_import,
            )
        )
    return imports


# ---------------------------------------------------------------------------
# Extractor
# ---------------------------------------------------------------------------


class ComponentExtractor:
    """Parse component source and extract its structure.

    Example::

        extractor = ComponentExtractor()
        component = extractor.extract(source)
        print(component.name, [p.name for p in component.props])
    """

    def __init__(self, engine: ASTEngine | None = None) -> None:
        self.engine = engine or ASTEngine()

    def extract(self, source: str, component_name: str | None = None) -> ExtractedComponent:
        """Extract the structural facts of the component in *source*.

        Args:
            source: JSX/TSX source text.
            component_name: Optional name hint; overrides detection.

        Raises:
            ParseError: If *source* does not parse.
            AmbiguousComponentError: If no name is supplied and none can
                be detected.
        """
        ast = self.engine.parse_strict(source)

        name = component_name or extract_component_name(ast)
        if not name:
            raise AmbiguousComponentError(
                "Unable to determine component name. Provide componentName in the payload."
            )

        hooks, state = extract_hooks(ast)
        component = ExtractedComponent(
            name=name,
            type=detect_component_type(ast, name),
            props=extract_props(ast, name),
            state=state,
            hooks=hooks,
            event_handlers=extract_event_handlers(ast),
            data_test_ids=extract_data_test_ids(ast),
            imports=analyze_imports(ast),
        )
        logger.debug(
            "Extracted %s component %s", component.type, name,
            extra={"component": name, "hooks": len(hooks), "props": len(component.props)},
        )
        return component
