"""Configuration models for rtlgen.

A ``Settings`` value is built once and handed to every component by
construction. Nothing in the package reads the environment on its own;
``Settings.from_env()`` is the single place where that happens.
"""

import os
from collections.abc import Mapping

from pydantic import BaseModel, Field, ValidationError

from .exceptions import ConfigurationError

# Environment variable -> Settings field
_ENV_FIELDS: dict[str, str] = {
    "RTLGEN_SERVICE_NAME": "service_name",
    "CODE_ANALYSIS_URL": "code_analysis_url",
    "LLM_SERVICE_URL": "llm_service_url",
    "TEST_VALIDATION_URL": "test_validation_url",
    "REQUEST_TIMEOUT": "request_timeout",
    "RETRY_ATTEMPTS": "retry_attempts",
    "RETRY_BASE_DELAY": "retry_base_delay",
    "CIRCUIT_BREAKER_FAILURE_THRESHOLD": "failure_threshold",
    "CIRCUIT_BREAKER_COOLDOWN": "cooldown",
    "RATE_LIMIT_WINDOW": "rate_limit_window",
    "RATE_LIMIT_MAX": "rate_limit_max",
    "OLLAMA_BASE_URL": "ollama_base_url",
    "MODEL_NAME": "model_name",
    "TEMPERATURE": "temperature",
    "MAX_TOKENS": "max_tokens",
    "OLLAMA_TIMEOUT": "ollama_timeout",
    "HEARTBEAT_INTERVAL": "heartbeat_interval",
    "LOG_LEVEL": "log_level",
    "LOG_FILE": "log_file",
}


class Settings(BaseModel):
    """Runtime configuration shared by the services and the gateway client."""

    service_name: str = Field(default="rtlgen", description="Name reported by /health")

    # Downstream services
    code_analysis_url: str = Field(default="http://localhost:3001")
    llm_service_url: str = Field(default="http://localhost:3002")
    test_validation_url: str = Field(default="http://localhost:3003")
    request_timeout: float = Field(default=120.0, gt=0, description="Seconds per transport call")
    retry_attempts: int = Field(default=2, ge=0, description="Retries after the first attempt")
    retry_base_delay: float = Field(default=0.1, ge=0, description="Backoff base in seconds")

    # Circuit breaker
    failure_threshold: int = Field(default=3, ge=1)
    cooldown: float = Field(default=30.0, ge=0, description="Seconds a breaker stays open")

    # Gateway rate limit, per client address
    rate_limit_window: float = Field(default=60.0, gt=0, description="Window length in seconds")
    rate_limit_max: int = Field(default=100, ge=1, description="Requests allowed per window")

    # Ollama
    ollama_base_url: str = Field(default="http://localhost:11434")
    model_name: str = Field(default="deep-seek-rtl-gen:latest")
    temperature: float = Field(default=0.7)
    max_tokens: int = Field(default=2048, gt=0)
    ollama_timeout: float = Field(default=60.0, gt=0)
    heartbeat_interval: float = Field(default=15.0, gt=0)

    # Logging
    log_level: str = Field(default="INFO")
    log_file: str | None = Field(default=None)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from environment variables.

        Blank values are ignored so that ``MODEL_NAME=`` falls back to the
        default rather than producing an empty model name.

        Raises:
            ConfigurationError: If a variable holds a value of the wrong type.
        """
        environ = os.environ if environ is None else environ
        values = {
            field_name: environ[var].strip()
            for var, field_name in _ENV_FIELDS.items()
            if environ.get(var, "").strip()
        }
        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigurationError(
                "Invalid rtlgen configuration.",
                e.errors(include_url=False, include_context=False),
            ) from e
