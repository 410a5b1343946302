import json
import logging
import sys
import uuid
from typing import Annotated, Any

from fastmcp import FastMCP
from pydantic import Field

from .analysis import ComponentAnalyzer
from .core import RTLGenError, Settings, configure_logging
from .models import ComponentRequest, GenerationOptions
from .orchestration import ServiceClient, TestGenerationPipeline

# Log to stderr to keep stdout free for JSON-RPC
logging.basicConfig(
    level=logging.INFO,
    format="[%(asctime)s] %(name)s %(levelname)s: %(message)s",
    datefmt="%H:%M:%S",
    stream=sys.stderr,
)
logger = logging.getLogger("rtlgen")

mcp: FastMCP = FastMCP("rtlgen-mcp")

# Initialized lazily so importing the module never opens connections
settings: Settings | None = None
analyzer: ComponentAnalyzer | None = None
service_client: ServiceClient | None = None
pipeline: TestGenerationPipeline | None = None


def _ensure_initialized() -> None:
    global settings, analyzer, service_client, pipeline

    if settings is None:
        settings = Settings.from_env()
        analyzer = ComponentAnalyzer()
        service_client = ServiceClient(settings)
        pipeline = TestGenerationPipeline(service_client)


def _dump(payload: Any) -> str:
    return json.dumps(payload, indent=2, default=str)


def _failure(error: RTLGenError, correlation_id: str) -> str:
    error.with_correlation_id(correlation_id)
    return _dump({"success": False, "error": error.to_dict()})


@mcp.tool
async def analyze_component(
    code: Annotated[str, Field(description="Source of a React component (JSX or TSX)")],
    component_name: Annotated[
        str | None,
        Field(
            description="Component to analyze when the file defines several",
            default=None,
        ),
    ] = None,
    file_path: Annotated[
        str | None,
        Field(description="Path of the component file, recorded in metadata", default=None),
    ] = None,
) -> str:
    """Analyze a React component without calling any service.

    Returns the component's props, state, hooks, event handlers, test ids,
    imports, complexity score and testing recommendations as JSON.
    """
    _ensure_initialized()
    assert analyzer is not None

    correlation_id = str(uuid.uuid4())
    try:
        analysis = analyzer.analyze(
            code, file_path, component_name, correlation_id=correlation_id
        )
    except RTLGenError as e:
        logger.warning(f"Analysis failed: {e.message}")
        return _failure(e, correlation_id)
    return _dump({"success": True, "data": analysis.to_wire(), "correlationId": correlation_id})


@mcp.tool
async def generate_test(
    code: Annotated[str, Field(description="Source of the React component to test")],
    name: Annotated[
        str | None,
        Field(description="Component name; detected from the source when omitted", default=None),
    ] = None,
    display_name: Annotated[
        str | None,
        Field(description="Name used for the test file and in the prompt", default=None),
    ] = None,
    instructions: Annotated[
        str | None,
        Field(description="Extra guidance passed to the model", default=None),
    ] = None,
    model: Annotated[
        str | None,
        Field(description="Ollama model to use instead of the configured one", default=None),
    ] = None,
) -> str:
    """Generate and validate a React Testing Library test for a component.

    Runs analysis, generation and validation through the rtlgen services
    and returns the generated test file with its suggested file name.
    """
    _ensure_initialized()
    assert pipeline is not None

    correlation_id = str(uuid.uuid4())
    request = ComponentRequest(
        code=code,
        name=name,
        display_name=display_name,
        instructions=instructions,
        options=GenerationOptions(model=model) if model else None,
    )
    try:
        result = await pipeline.run(request, correlation_id)
    except RTLGenError as e:
        logger.error(f"Test generation failed: {e.message}")
        return _failure(e, correlation_id)

    return _dump(
        {
            "success": result.valid,
            "data": result.generated_test.to_wire(),
            "issues": result.issues,
            "correlationId": correlation_id,
        }
    )


@mcp.tool
async def service_status() -> str:
    """Report the health and latency of the analysis, generation and validation services."""
    _ensure_initialized()
    assert service_client is not None

    dependencies = await service_client.check_all(str(uuid.uuid4()))
    return _dump([health.to_wire() for health in dependencies])


def main() -> None:
    """Run the MCP server over stdio."""
    _ensure_initialized()
    assert settings is not None
    configure_logging(settings.log_level, settings.log_file)
    mcp.run()


if __name__ == "__main__":
    main()
