"""rtlgen: React Testing Library test generation from component analysis."""

__version__ = "0.1.0"

from .core import RTLGenError, Settings, configure_logging  # noqa: E402
from .models import (  # noqa: E402
    ComponentAnalysis,
    ComponentRequest,
    GeneratedTest,
    GenerationOptions,
    ValidationResult,
)

__all__ = [
    "__version__",
    "ComponentAnalysis",
    "ComponentRequest",
    "GeneratedTest",
    "GenerationOptions",
    "RTLGenError",
    "Settings",
    "ValidationResult",
    "configure_logging",
]
