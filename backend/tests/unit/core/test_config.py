"""Unit tests for environment-driven settings."""

from __future__ import annotations

import pytest

from memorial.core import config as app_config
from memorial.core.config import env_bool, env_int, get_config


@pytest.mark.parametrize(("raw", "expected"), [("1", True), ("Yes", True), ("off", False)])
def test_env_bool(monkeypatch, raw, expected) -> None:
    monkeypatch.setenv("MEMORIAL_FLAG", raw)
    assert env_bool("MEMORIAL_FLAG") is expected


def test_env_bool_default(monkeypatch) -> None:
    monkeypatch.delenv("MEMORIAL_FLAG", raising=False)
    assert env_bool("MEMORIAL_FLAG", True) is True


def test_env_int_parses_and_defaults(monkeypatch) -> None:
    monkeypatch.delenv("MEMORIAL_TTL", raising=False)
    assert env_int("MEMORIAL_TTL", 60) == 60

    monkeypatch.setenv("MEMORIAL_TTL", " 15 ")
    assert env_int("MEMORIAL_TTL", 60) == 15

    monkeypatch.setenv("MEMORIAL_TTL", "")
    assert env_int("MEMORIAL_TTL", 60) == 60


@pytest.mark.parametrize("raw", ["0", "-5", "ten"])
def test_env_int_rejects_non_positive_or_garbage(monkeypatch, raw) -> None:
    monkeypatch.setenv("MEMORIAL_TTL", raw)
    with pytest.raises(ValueError):
        env_int("MEMORIAL_TTL", 60)


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("testing", app_config.TestingConfig),
        ("PRODUCTION", app_config.ProductionConfig),
        ("unknown", app_config.DevelopmentConfig),
    ],
)
def test_get_config_selects_by_app_env(monkeypatch, name, expected) -> None:
    monkeypatch.setenv("APP_ENV", name)
    assert get_config() is expected


def test_testing_config_uses_relational_storage() -> None:
    assert app_config.TestingConfig.AUTH_STORAGE == "sqlalchemy"
    assert app_config.TestingConfig.REDIS_URL is None
    assert app_config.TestingConfig.TOKEN_HASH_SECRET
