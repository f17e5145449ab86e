"""Unit tests for application assembly."""

from __future__ import annotations

import pytest
from werkzeug.middleware.proxy_fix import ProxyFix

from memorial.core import config as app_config
from memorial.core.cors import parse_origins
from memorial.factory import create_app


def _config(**overrides) -> type:
    base = {"LOG_LEVEL": "WARNING", "USE_PROXYFIX": False, "REDIS_URL": None}
    return type("OverrideConfig", (app_config.TestingConfig,), {**base, **overrides})


def test_unknown_auth_storage_fails_fast() -> None:
    with pytest.raises(RuntimeError, match="AUTH_STORAGE"):
        create_app(_config(AUTH_STORAGE="memcached"))


def test_redis_storage_requires_url() -> None:
    with pytest.raises(RuntimeError, match="REDIS_URL"):
        create_app(_config(AUTH_STORAGE="redis", REDIS_URL=None))


def test_storage_name_is_normalised() -> None:
    app = create_app(_config(AUTH_STORAGE="SQLAlchemy"))
    assert app.config["AUTH_STORAGE"] == "sqlalchemy"


def test_proxyfix_is_applied_when_enabled() -> None:
    app = create_app(_config(USE_PROXYFIX=True, PROXYFIX_HOPS=2))
    assert isinstance(app.wsgi_app, ProxyFix)
    assert app.wsgi_app.x_for == 2


def test_cli_groups_are_registered(app) -> None:
    assert {"users", "auth"} <= set(app.cli.commands)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("", "*"),
        ("*", "*"),
        (None, "*"),
        ("https://a.example, https://b.example", ["https://a.example", "https://b.example"]),
    ],
)
def test_parse_origins(raw, expected) -> None:
    assert parse_origins(raw) == expected


def test_cors_preflight_allows_bearer_header(client) -> None:
    resp = client.options(
        "/api/v1/auth/me",
        headers={
            "Origin": "https://admin.example",
            "Access-Control-Request-Method": "GET",
            "Access-Control-Request-Headers": "Authorization",
        },
    )
    assert "authorization" in resp.headers.get("Access-Control-Allow-Headers", "").lower()
