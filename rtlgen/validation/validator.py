"""Static checks on generated React Testing Library tests."""

import logging
import re

from ..analysis.ast_engine import ASTEngine
from ..models import GeneratedTest, ValidationResult

logger = logging.getLogger(__name__)

TEST_BLOCK_MARKERS = ("describe(", "test(", "it(")
TESTING_LIBRARY_MODULE = "@testing-library/react"

ISSUE_EMPTY = "Generated test content is empty."
ISSUE_NO_TEST_BLOCK = "Test should include at least one describe/test/it block."
ISSUE_NO_TESTING_LIBRARY = "Test should import from @testing-library/react."
ISSUE_SYNTAX_PREFIX = "Syntax error detected in generated test"

_POSITION_SUFFIX = re.compile(r"\s*\(\d+:\d+\)$")


class TestValidator:
    """Runs every check on a generated test and accumulates the issues.

    The checks are independent: an empty test reports the empty-content,
    missing-block and missing-import issues together.
    """

    __test__ = False

    def __init__(self, engine: ASTEngine | None = None) -> None:
        self.engine = engine or ASTEngine()

    def validate(
        self,
        generated_test: GeneratedTest,
        component_name: str | None = None,
        correlation_id: str | None = None,
    ) -> ValidationResult:
        issues = self.content_issues(generated_test.content)
        issues.extend(self.syntax_issues(generated_test.content))
        valid = not issues

        extra = {
            "correlation_id": correlation_id,
            "component": component_name,
            "issues": len(issues),
        }
        if valid:
            logger.info("Generated test passed validation.", extra=extra)
        else:
            logger.warning("Generated test failed validation.", extra=extra)

        return ValidationResult(valid=valid, issues=issues, generated_test=generated_test)

    @staticmethod
    def content_issues(content: str) -> list[str]:
        issues: list[str] = []
        normalized = content.strip()

        if not normalized:
            issues.append(ISSUE_EMPTY)
        if not any(marker in normalized for marker in TEST_BLOCK_MARKERS):
            issues.append(ISSUE_NO_TEST_BLOCK)
        if TESTING_LIBRARY_MODULE not in normalized:
            issues.append(ISSUE_NO_TESTING_LIBRARY)
        return issues

    def syntax_issues(self, content: str) -> list[str]:
        """Parse *content* as TSX; report the first syntax error, if any."""
        message = self.engine.parse(content).syntax_error()
        if message is None:
            return []
        message = _POSITION_SUFFIX.sub("", message).strip()
        if not message:
            return [f"{ISSUE_SYNTAX_PREFIX}."]
        return [f"{ISSUE_SYNTAX_PREFIX}: {message}"]
