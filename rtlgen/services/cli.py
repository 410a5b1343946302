"""``rtlgen-serve``: run one rtlgen service under uvicorn."""

import argparse
import os
import sys
from collections.abc import Callable

import uvicorn
from fastapi import FastAPI

from ..core.config import Settings
from ..core.exceptions import ConfigurationError
from ..core.logging_config import configure_logging
from .analysis_app import create_analysis_app
from .gateway_app import create_gateway_app
from .generation_app import create_generation_app
from .validation_app import create_validation_app

# service -> (factory, default service name, default port)
SERVICES: dict[str, tuple[Callable[[Settings], FastAPI], str, int]] = {
    "gateway": (create_gateway_app, "api-gateway", 3000),
    "analysis": (create_analysis_app, "code-analysis", 3001),
    "generation": (create_generation_app, "llm-service", 3002),
    "validation": (create_validation_app, "test-validation", 3003),
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rtlgen-serve",
        description="Run an rtlgen HTTP service.",
    )
    parser.add_argument("service", choices=sorted(SERVICES))
    parser.add_argument("--host", default=os.environ.get("HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=None)
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    factory, service_name, default_port = SERVICES[args.service]

    try:
        settings = Settings.from_env()
    except ConfigurationError as e:
        print(f"Configuration error: {e.message}", file=sys.stderr)
        for detail in e.details or []:
            print(f"  {detail}", file=sys.stderr)
        sys.exit(2)

    if "RTLGEN_SERVICE_NAME" not in os.environ:
        settings = settings.model_copy(update={"service_name": service_name})
    configure_logging(settings.log_level, settings.log_file)

    port = args.port or int(os.environ.get("PORT", default_port))
    uvicorn.run(factory(settings), host=args.host, port=port, log_level="info")


if __name__ == "__main__":
    main()
