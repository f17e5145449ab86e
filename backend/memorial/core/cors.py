"""CORS policy for the bearer-token API."""

from __future__ import annotations

from flask import Flask
from flask_cors import CORS

from memorial.core.logger import REQUEST_ID_HEADER

ALLOWED_HEADERS = ("Authorization", "Content-Type", REQUEST_ID_HEADER)


def parse_origins(raw: str | None) -> list[str] | str:
    """Return ``"*"`` for a blank or wildcard setting, else the listed origins."""
    origins = [o.strip() for o in (raw or "").split(",") if o.strip()]
    if not origins or origins == ["*"]:
        return "*"
    return origins


def init_app(app: Flask) -> None:
    """Configure CORS for API endpoints based on application config.

    Parameters
    ----------
    app: flask.Flask
        Application whose ``CORS_ORIGINS`` and ``CORS_MAX_AGE`` settings are
        consulted.

    Notes
    -----
    Credentials travel in the ``Authorization`` header, never in cookies, so
    credentialed CORS stays off. ``X-Request-ID`` is exposed so browser
    clients can quote it when reporting errors.
    """
    CORS(
        app,
        resources={r"/api/*": {"origins": parse_origins(app.config.get("CORS_ORIGINS"))}},
        allow_headers=list(ALLOWED_HEADERS),
        expose_headers=[REQUEST_ID_HEADER],
        supports_credentials=False,
        max_age=app.config.get("CORS_MAX_AGE", 600),
    )
