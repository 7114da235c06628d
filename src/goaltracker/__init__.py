"""GoalTracker application factory."""

from __future__ import annotations

from importlib import import_module
from typing import Iterable

from flask import Flask, jsonify

from . import cli as _cli
from .config import BaseConfig, DevConfig, TestConfig
from .logging_config import get_logger, setup_logging

_CONFIG_MAP = {
    "development": DevConfig,
    "testing": TestConfig,
    "default": BaseConfig,
}


def _resolve_config(name: str | None) -> type[BaseConfig]:
    """Return the config class for the provided environment name."""

    if not name:
        return BaseConfig
    return _CONFIG_MAP.get(name.lower(), BaseConfig)


def _blueprint_paths() -> Iterable[str]:
    yield "goaltracker.blueprints.goals"
    yield "goaltracker.blueprints.tasks"
    yield "goaltracker.blueprints.calendar"


def create_app(config_name: str | None = None, config: BaseConfig | None = None) -> Flask:
    """Create and configure the Flask application instance.

    ``config`` takes precedence over ``config_name`` so tests can hand in a
    prepared configuration object.
    """

    app = Flask(__name__, instance_relative_config=True)
    config_obj = config or _resolve_config(config_name or app.config.get("ENV"))()
    app.config.from_object(config_obj)
    app.config["GOALTRACKER_CONFIG"] = config_obj

    setup_logging(config_obj)

    # Imported here so model mappers are configured only when an app is built.
    from .blueprints.api import register_error_handlers
    from .extensions import init_db

    init_db(app)
    _register_blueprints(app, config_obj.API_PREFIX)
    register_error_handlers(app)
    _register_meta_routes(app, config_obj)
    _cli.init_app(app)

    get_logger(__name__).info(
        "Application created",
        extra={"dev_mode": config_obj.DEV_MODE, "api_prefix": config_obj.API_PREFIX},
    )
    return app


def _register_blueprints(app: Flask, prefix: str) -> None:
    """Import and mount every blueprint under the API prefix."""

    for dotted_path in _blueprint_paths():
        module = import_module(dotted_path)
        blueprint = getattr(module, "bp")
        app.register_blueprint(blueprint, url_prefix=f"{prefix}{blueprint.url_prefix}")


def _register_meta_routes(app: Flask, config: BaseConfig) -> None:
    @app.get("/health")
    def health():
        return "OK"

    @app.get(f"{config.API_PREFIX}/auth/config")
    def auth_config():
        return jsonify(
            {
                "domain": config.AUTH0_DOMAIN,
                "audience": config.AUTH0_AUDIENCE,
                "clientId": config.AUTH0_CLIENT_ID,
            }
        )
