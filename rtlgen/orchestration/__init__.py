"""Orchestration of the analysis, generation and validation services."""

from .circuit_breaker import (
    BreakerSnapshot,
    CircuitBreaker,
    CircuitState,
    on_call_attempt,
    on_failure,
    on_success,
)
from .pipeline import (
    TestGenerationPipeline,
    build_test_file_name,
    enrich_analysis,
    finalize_test,
)
from .service_client import (
    CODE_ANALYSIS,
    CORRELATION_HEADER,
    LLM_SERVICE,
    SERVICES,
    TEST_VALIDATION,
    ServiceClient,
)

__all__ = [
    "BreakerSnapshot",
    "CircuitBreaker",
    "CircuitState",
    "on_call_attempt",
    "on_failure",
    "on_success",
    "TestGenerationPipeline",
    "build_test_file_name",
    "enrich_analysis",
    "finalize_test",
    "ServiceClient",
    "CORRELATION_HEADER",
    "CODE_ANALYSIS",
    "LLM_SERVICE",
    "TEST_VALIDATION",
    "SERVICES",
]
