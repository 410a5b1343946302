"""FastAPI surfaces for the analysis, generation, validation and gateway services."""

from .analysis_app import create_analysis_app
from .gateway_app import create_gateway_app
from .generation_app import create_generation_app
from .validation_app import create_validation_app

__all__ = [
    "create_analysis_app",
    "create_gateway_app",
    "create_generation_app",
    "create_validation_app",
]
