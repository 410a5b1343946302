"""React component static analysis.

This package parses JSX/TSX with tree-sitter and extracts the structure
of a component (name, props, state, hooks, handlers, test ids, imports),
then scores it and infers testing recommendations.

Quick start::

    from rtlgen.analysis import ComponentAnalyzer

    analysis = ComponentAnalyzer().analyze(source)
    print(analysis.name, analysis.complexity)
"""

from .analyzer import ComponentAnalyzer
from .ast_engine import ASTEngine, NodeKind, ParsedAST
from .component_parser import (
    ComponentExtractor,
    ExtractedComponent,
    analyze_imports,
    detect_component_type,
    extract_component_name,
    extract_data_test_ids,
    extract_event_handlers,
    extract_hooks,
    extract_props,
)
from .dependency_analyzer import calculate_complexity, identify_testing_library_needs

__all__ = [
    "ASTEngine",
    "ComponentAnalyzer",
    "ComponentExtractor",
    "ExtractedComponent",
    "NodeKind",
    "ParsedAST",
    "analyze_imports",
    "calculate_complexity",
    "detect_component_type",
    "extract_component_name",
    "extract_data_test_ids",
    "extract_event_handlers",
    "extract_hooks",
    "extract_props",
    "identify_testing_library_needs",
]
