"""Test validation service: ``POST /api/validate``."""

from typing import Any

from fastapi import Body, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError as PydanticValidationError

from ..core.config import Settings
from ..core.exceptions import ValidationPayloadError
from ..models import GeneratedTest, ValidationRequest
from ..validation import TestValidator
from .common import create_service_app, get_correlation_id, health_payload, success

SERVICE_NAME = "test-validation"


def parse_validation_payload(body: Any) -> ValidationRequest:
    """Accept a bare generated test or a ``{generatedTest, component}`` envelope.

    Raises:
        ValidationPayloadError: If the body matches neither shape.
    """
    try:
        if isinstance(body, dict) and "generatedTest" in body:
            return ValidationRequest.model_validate(body)
        return ValidationRequest(generated_test=GeneratedTest.model_validate(body))
    except PydanticValidationError as e:
        raise ValidationPayloadError(
            "Invalid validation payload.",
            jsonable_encoder(e.errors(include_url=False, include_context=False)),
        ) from e


def create_validation_app(
    settings: Settings | None = None,
    validator: TestValidator | None = None,
) -> FastAPI:
    settings = settings or Settings(service_name=SERVICE_NAME)
    validator = validator or TestValidator()
    app = create_service_app("rtlgen test validation", settings)

    @app.get("/health")
    async def health(request: Request) -> dict[str, Any]:
        return success(health_payload(SERVICE_NAME), get_correlation_id(request))

    @app.post("/api/validate")
    async def validate(request: Request, body: Any = Body(...)) -> dict[str, Any]:
        correlation_id = get_correlation_id(request)
        payload = parse_validation_payload(body)
        result = validator.validate(
            payload.generated_test,
            component_name=payload.component.name if payload.component else None,
            correlation_id=correlation_id,
        )
        return success(result.to_wire(), correlation_id)

    return app
