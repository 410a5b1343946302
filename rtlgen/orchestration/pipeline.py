"""The analyze → generate → validate pipeline run by the gateway."""

import logging
import re
import uuid
from datetime import datetime, timezone
from typing import Any

from ..models import (
    ComponentAnalysis,
    ComponentRequest,
    GeneratedTest,
    GenerationOptions,
    ValidationResult,
)
from .service_client import ServiceClient

logger = logging.getLogger(__name__)

TEST_FILE_SUFFIX = ".test.tsx"


def new_correlation_id() -> str:
    return str(uuid.uuid4())


def enrich_analysis(
    analysis: ComponentAnalysis, request: ComponentRequest
) -> ComponentAnalysis:
    """Attach display name, source mode and instructions under ``metadata``."""
    extra: dict[str, Any] = {
        "displayName": request.display_name or request.name or analysis.name,
        "source": request.source,
    }
    if request.instructions:
        extra["instructions"] = request.instructions
    return analysis.with_metadata(**extra)


def build_test_file_name(display_name: str) -> str:
    return re.sub(r"\s+", "", display_name) + TEST_FILE_SUFFIX


def finalize_test(
    validated: GeneratedTest,
    generated: GeneratedTest,
    analysis: ComponentAnalysis,
    request: ComponentRequest,
) -> GeneratedTest:
    """Assign the file name and timestamp and merge stage metadata.

    Values already set by the validation or generation stage win over
    the derived ones.
    """
    display_name = request.display_name or analysis.name or request.name
    metadata: dict[str, Any] = {
        **generated.metadata,
        **validated.metadata,
        "displayName": display_name,
        "source": request.source,
    }
    if request.instructions:
        metadata["instructions"] = request.instructions

    return validated.model_copy(
        update={
            "file_name": validated.file_name
            or generated.file_name
            or build_test_file_name(display_name),
            "relative_path": validated.relative_path or generated.relative_path,
            "generated_at": validated.generated_at or datetime.now(timezone.utc),
            "metadata": metadata,
        }
    )


class TestGenerationPipeline:
    """Runs one component through analysis, generation and validation.

    Stages run strictly in sequence; a failing stage ends the run with
    its typed error. Retries happen only inside a stage's transport call.
    """

    __test__ = False

    def __init__(self, client: ServiceClient) -> None:
        self.client = client

    async def run(
        self,
        request: ComponentRequest,
        correlation_id: str | None = None,
        options: GenerationOptions | None = None,
    ) -> ValidationResult:
        correlation_id = correlation_id or new_correlation_id()
        options = options or request.options
        label = request.display_name or request.name or "component"
        logger.info(
            f"Generating test for component {label}",
            extra={"correlation_id": correlation_id, "component": label},
        )

        analysis = await self.client.analyze_code(request, correlation_id)
        enriched = enrich_analysis(analysis, request)
        generated = await self.client.generate_test(enriched, options, correlation_id)
        validation = await self.client.validate_test(generated, enriched, correlation_id)

        final = finalize_test(validation.generated_test, generated, enriched, request)
        logger.info(
            f"Pipeline finished for {enriched.name}",
            extra={
                "correlation_id": correlation_id,
                "component": enriched.name,
                "issues": len(validation.issues),
            },
        )
        return validation.model_copy(update={"generated_test": final})
