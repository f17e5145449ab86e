"""Application factory wiring Flask extensions and blueprints."""

from __future__ import annotations

from flask import Flask

from memorial.core.config import BaseConfig, get_config
from memorial.core.logger import configure_logging, init_app as init_logging

AUTH_STORAGES = ("sqlalchemy", "redis")


def _check_auth_settings(app: Flask) -> None:
    """Fail fast on an unusable authentication storage configuration."""

    storage = str(app.config.get("AUTH_STORAGE", "sqlalchemy")).lower()
    if storage not in AUTH_STORAGES:
        raise RuntimeError(f"AUTH_STORAGE must be one of {AUTH_STORAGES}, got {storage!r}")
    if storage == "redis" and not app.config.get("REDIS_URL"):
        raise RuntimeError("AUTH_STORAGE=redis requires REDIS_URL.")
    app.config["AUTH_STORAGE"] = storage


def create_app(
    config: str | type[BaseConfig] | object | None = None,
    *,
    instance_relative_config: bool = True,
    instance_config_filename: str = "config.py",
) -> Flask:
    """Build and configure the Flask application."""

    app = Flask(__name__, instance_relative_config=instance_relative_config)

    app.config.from_object(get_config() if config is None else config)
    if instance_relative_config and instance_config_filename:
        app.config.from_pyfile(instance_config_filename, silent=True)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))
    _check_auth_settings(app)

    # Proxy headers if running behind a reverse proxy (optional module)
    from memorial.core import proxy

    proxy.init_app(app)

    from memorial.core import extensions

    extensions.init_app(app)

    init_logging(app)

    from memorial.core import cors

    cors.init_app(app)

    from memorial.api import init_app as init_api

    init_api(app)

    from memorial.core import errors

    errors.init_app(app)

    from memorial import cli as memorial_cli

    memorial_cli.init_app(app)

    return app
