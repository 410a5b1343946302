"""Core AST parsing engine for React component source.

This module provides a thin interface around tree-sitter for parsing
JSX/TSX source into ASTs. The component extractor and the test validator
both build on it, so component source and generated tests are checked
against the same grammar.

Usage::

    engine = ASTEngine()
    ast = engine.parse_strict("export const App = () => <div />;")
    for node in engine.find_nodes_by_type(ast, NodeKind.JSX_ATTRIBUTE):
        print(ast.get_text(node))
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator

import tree_sitter as ts
import tree_sitter_javascript as ts_js
import tree_sitter_typescript as ts_ts

from ..core.exceptions import ParseError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Node kinds
# ---------------------------------------------------------------------------


class NodeKind:
    """The closed set of tree-sitter node types the extractors dispatch on."""

    PROGRAM = "program"
    COMMENT = "comment"
    ERROR = "ERROR"

    # Declarations
    IMPORT_STATEMENT = "import_statement"
    IMPORT_CLAUSE = "import_clause"
    NAMED_IMPORTS = "named_imports"
    NAMESPACE_IMPORT = "namespace_import"
    IMPORT_SPECIFIER = "import_specifier"
    EXPORT_STATEMENT = "export_statement"
    FUNCTION_DECLARATION = "function_declaration"
    CLASS_DECLARATION = "class_declaration"
    ABSTRACT_CLASS_DECLARATION = "abstract_class_declaration"
    CLASS_HERITAGE = "class_heritage"
    EXTENDS_CLAUSE = "extends_clause"
    LEXICAL_DECLARATION = "lexical_declaration"
    VARIABLE_DECLARATION = "variable_declaration"
    VARIABLE_DECLARATOR = "variable_declarator"
    INTERFACE_DECLARATION = "interface_declaration"
    TYPE_ALIAS_DECLARATION = "type_alias_declaration"

    # Expressions
    IDENTIFIER = "identifier"
    PROPERTY_IDENTIFIER = "property_identifier"
    MEMBER_EXPRESSION = "member_expression"
    CALL_EXPRESSION = "call_expression"
    ARROW_FUNCTION = "arrow_function"
    FUNCTION_EXPRESSION = "function_expression"
    FUNCTION = "function"  # pre-0.21 grammars name function expressions this way
    STRING = "string"
    ARRAY = "array"
    CLASS = "class"

    # Patterns / parameters
    FORMAL_PARAMETERS = "formal_parameters"
    REQUIRED_PARAMETER = "required_parameter"
    OPTIONAL_PARAMETER = "optional_parameter"
    OBJECT_PATTERN = "object_pattern"
    ARRAY_PATTERN = "array_pattern"
    SHORTHAND_PROPERTY_PATTERN = "shorthand_property_identifier_pattern"
    PAIR_PATTERN = "pair_pattern"
    OBJECT_ASSIGNMENT_PATTERN = "object_assignment_pattern"
    ASSIGNMENT_PATTERN = "assignment_pattern"
    REST_PATTERN = "rest_pattern"

    # Types
    TYPE_ANNOTATION = "type_annotation"
    TYPE_IDENTIFIER = "type_identifier"
    NESTED_TYPE_IDENTIFIER = "nested_type_identifier"
    GENERIC_TYPE = "generic_type"
    TYPE_ARGUMENTS = "type_arguments"
    PARENTHESIZED_TYPE = "parenthesized_type"
    LOOKUP_TYPE = "lookup_type"
    OBJECT_TYPE = "object_type"
    INTERFACE_BODY = "interface_body"
    PROPERTY_SIGNATURE = "property_signature"

    # JSX
    JSX_ATTRIBUTE = "jsx_attribute"
    JSX_EXPRESSION = "jsx_expression"
    JSX_OPENING_ELEMENT = "jsx_opening_element"
    JSX_SELF_CLOSING_ELEMENT = "jsx_self_closing_element"
    JSX_NAMESPACE_NAME = "jsx_namespace_name"
    NESTED_IDENTIFIER = "nested_identifier"

    FUNCTION_VALUES = frozenset({ARROW_FUNCTION, FUNCTION_EXPRESSION, FUNCTION})
    CLASS_DECLARATIONS = frozenset({CLASS_DECLARATION, ABSTRACT_CLASS_DECLARATION})
    VARIABLE_DECLARATIONS = frozenset({LEXICAL_DECLARATION, VARIABLE_DECLARATION})
    JSX_TAGS = frozenset({JSX_OPENING_ELEMENT, JSX_SELF_CLOSING_ELEMENT})


# ---------------------------------------------------------------------------
# ParsedAST wrapper
# ---------------------------------------------------------------------------


class ParsedAST:
    """A parse tree together with the source it came from.

    Node text is sliced from the UTF-8 bytes because tree-sitter reports
    byte offsets, not character offsets.
    """

    __slots__ = ("tree", "source_code", "language", "_encoded")

    def __init__(self, tree: ts.Tree, source_code: str, language: str) -> None:
        self.tree = tree
        self.source_code = source_code
        self.language = language
        self._encoded = source_code.encode("utf-8")

    @property
    def root_node(self) -> ts.Node:
        return self.tree.root_node

    @property
    def has_errors(self) -> bool:
        return self.root_node.has_error

    def get_text(self, node: ts.Node | None) -> str | None:
        """Source text covered by *node*, or ``None`` for a missing node."""
        if node is None:
            return None
        raw = self._encoded[node.start_byte:node.end_byte]
        return raw.decode("utf-8", errors="replace")

    def iter_nodes(self) -> Iterator[ts.Node]:
        """Yield every node in document order."""
        cursor = self.tree.walk()
        visited_children = False
        while True:
            if not visited_children:
                yield cursor.node
                if cursor.goto_first_child():
                    continue
            if cursor.goto_next_sibling():
                visited_children = False
            elif cursor.goto_parent():
                visited_children = True
            else:
                return

    def first_error_node(self) -> ts.Node | None:
        """The earliest ERROR or MISSING node, descending only into erroneous subtrees."""
        pending = [self.root_node]
        while pending:
            node = pending.pop()
            if node.type == NodeKind.ERROR or node.is_missing:
                return node
            if node.has_error:
                pending.extend(reversed(node.children))
        return None

    def syntax_error(self) -> str | None:
        """Describe the first syntax error in the tree.

        Returns:
            ``"<description> (line:column)"`` with a 1-based line and a
            0-based column, or ``None`` when the tree is error-free.
        """
        if not self.has_errors:
            return None

        node = self.first_error_node()
        if node is None:
            node, description = self.root_node, "Unexpected token"
        else:
            description = self._describe_error(node)
        row, column = node.start_point
        return f"{description} ({row + 1}:{column})"

    def _describe_error(self, node: ts.Node) -> str:
        if node.is_missing:
            return f"Missing {node.type!r}"
        text = (self.get_text(node) or "").strip()
        if not text:
            return "Unexpected end of input"
        first_line = text.splitlines()[0]
        if len(first_line) > 30:
            first_line = first_line[:30] + "..."
        return f"Unexpected token {first_line!r}"


# ---------------------------------------------------------------------------
# ASTEngine
# ---------------------------------------------------------------------------

# language name -> grammar loader
_GRAMMARS: dict[str, Callable[[], object]] = {
    "javascript": ts_js.language,
    "typescript": ts_ts.language_typescript,
    "tsx": ts_ts.language_tsx,
}


class ASTEngine:
    """Parses JSX/TSX source with tree-sitter.

    One ``Parser`` per language is created on first use and reused. The
    default language is ``"tsx"``, which accepts plain JSX as well as
    type annotations, interfaces and generics.
    """

    def __init__(self) -> None:
        self._parsers: dict[str, ts.Parser] = {}

    def _get_parser(self, language: str) -> ts.Parser:
        parser = self._parsers.get(language)
        if parser is None:
            loader = _GRAMMARS.get(language)
            if loader is None:
                raise ValueError(
                    f"Unsupported language: {language!r}. "
                    f"Expected one of: {', '.join(sorted(_GRAMMARS))}"
                )
            parser = ts.Parser(language=ts.Language(loader()))
            self._parsers[language] = parser
        return parser

    def parse(self, source_code: str, language: str = "tsx") -> ParsedAST:
        """Parse *source_code*; the tree may contain ERROR nodes.

        Raises:
            ValueError: If *language* is not supported.
        """
        tree = self._get_parser(language).parse(source_code.encode("utf-8"))
        return ParsedAST(tree, source_code, language)

    def parse_strict(self, source_code: str, language: str = "tsx") -> ParsedAST:
        """Parse *source_code*, failing on any syntax error.

        Raises:
            ParseError: If the source does not parse cleanly. ``details``
                carries the parser message including its position.
        """
        ast = self.parse(source_code, language=language)
        message = ast.syntax_error()
        if message is not None:
            logger.debug(f"Rejected {language} source: {message}")
            raise ParseError("Failed to parse component code.", details=message)
        return ast

    def find_nodes_by_type(self, ast: ParsedAST, node_type: str) -> list[ts.Node]:
        return [node for node in ast.iter_nodes() if node.type == node_type]
