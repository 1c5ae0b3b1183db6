"""Application factory wiring the envelope layer into Flask."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

from flask import Flask
from flask_cors import CORS

from .handlers import register_error_handlers
from .middleware.logging import REQUEST_ID_HEADER, setup_request_logging
from .observability import configure_structured_logging
from .responses import ResponseFormatter, get_formatter
from .utils.config import (
    EnvironmentSettings,
    StatusConfig,
    load_environment_settings,
    log_configuration_snapshot,
    parse_bool,
    split_env_list,
)


def _cors_configuration(app: Flask) -> dict[str, Any]:
    """Build the CORS configuration for the application."""

    origins = list(app.config.get("CORS_ORIGINS", ()))
    cors_origins: Any = origins if origins else "*"
    return {
        "origins": cors_origins,
        "methods": ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        "allow_headers": ["Authorization", "Content-Type", REQUEST_ID_HEADER],
        "expose_headers": [REQUEST_ID_HEADER],
        "supports_credentials": False,
    }


def _register_health_endpoint(app: Flask) -> None:
    @app.route("/health")
    def health():
        return get_formatter().ok_response("Service is healthy", {"service": "api-envelope"})


def create_app(status_overrides: Mapping[str, Any] | None = None) -> Flask:
    """Create and configure the Flask application.

    ``status_overrides`` takes dotted keys (``status_codes.not_found``) and
    wins over ``STATUS_CODES__*`` / ``STATUS_TEXTS__*`` environment values.
    """

    project_root = Path(__file__).resolve().parent.parent
    settings: EnvironmentSettings = load_environment_settings(project_root=project_root)
    app = Flask(__name__)

    app.config["APP_ENV"] = settings.name
    app.config["CONFIG_ENV_FILES"] = settings.loaded_files
    app.config["LOG_LEVEL"] = (settings.get("LOG_LEVEL", "INFO") or "INFO").upper()
    app.config["LOGGER_NAME"] = settings.get("LOGGER_NAME", "api_envelope") or "api_envelope"
    app.config["CORS_ORIGINS"] = tuple(split_env_list(settings.get("CORS_ORIGINS", "") or ""))
    app.config["RESPONSE_EXPOSE_EXCEPTIONS"] = parse_bool(
        settings.get("RESPONSE_EXPOSE_EXCEPTIONS"), True
    )
    app.config["APP_PORT"] = int(settings.get("APP_PORT") or settings.get("PORT") or "5000")

    status_config = StatusConfig.from_mapping(status_overrides, settings=settings)

    configure_structured_logging(app)
    setup_request_logging(app)

    log_configuration_snapshot(
        logger=app.logger,
        settings=settings,
        config=app.config,
        keys_of_interest=[
            "APP_ENV",
            "CONFIG_ENV_FILES",
            "LOG_LEVEL",
            "CORS_ORIGINS",
            "RESPONSE_EXPOSE_EXCEPTIONS",
            "APP_PORT",
        ],
        status_config=status_config,
    )

    CORS(app, **_cors_configuration(app))

    formatter = ResponseFormatter(
        status_config,
        app.logger,
        expose_exceptions=app.config["RESPONSE_EXPOSE_EXCEPTIONS"],
    )
    formatter.init_app(app)
    register_error_handlers(app)
    _register_health_endpoint(app)

    return app


if __name__ == "__main__":
    application = create_app()
    port = int(application.config.get("APP_PORT", 5000))
    application.run(host="0.0.0.0", port=port)
