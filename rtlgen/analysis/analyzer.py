"""Component analysis: extraction plus scoring into a ``ComponentAnalysis``."""

import logging
from typing import Any

from ..models import ComponentAnalysis
from .component_parser import ComponentExtractor
from .dependency_analyzer import calculate_complexity, identify_testing_library_needs

logger = logging.getLogger(__name__)


class ComponentAnalyzer:
    """Turns component source into a ``ComponentAnalysis``."""

    def __init__(self, extractor: ComponentExtractor | None = None) -> None:
        self.extractor = extractor or ComponentExtractor()

    def analyze(
        self,
        code: str,
        file_path: str | None = None,
        component_name: str | None = None,
        metadata: dict[str, Any] | None = None,
        correlation_id: str | None = None,
    ) -> ComponentAnalysis:
        """Analyze *code*.

        Caller metadata is merged over ``filePath`` and
        ``receivedComponentName`` and otherwise passed through untouched.

        Raises:
            ParseError: If *code* does not parse.
            AmbiguousComponentError: If the component cannot be identified.
        """
        component = self.extractor.extract(code, component_name)

        analysis = ComponentAnalysis(
            name=component.name,
            type=component.type,
            props=component.props,
            state=component.state,
            hooks=component.hooks,
            event_handlers=component.event_handlers,
            imports=component.imports,
            data_test_ids=component.data_test_ids,
            complexity=calculate_complexity(
                component.props,
                component.hooks,
                component.event_handlers,
                component.imports,
            ),
            testing_recommendations=identify_testing_library_needs(
                component.hooks,
                component.event_handlers,
                component.data_test_ids,
                component.imports,
            ),
            metadata={
                "filePath": file_path,
                "receivedComponentName": component_name,
                **(metadata or {}),
            },
        )

        logger.info(
            f"Analysis completed for {analysis.name}",
            extra={
                "correlation_id": correlation_id,
                "component": analysis.name,
                "complexity": analysis.complexity,
                "hooks": len(analysis.hooks),
                "props": len(analysis.props),
            },
        )
        return analysis
