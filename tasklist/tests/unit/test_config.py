"""
Unit tests for config.py: validate_config and the env-var helpers.
"""

from __future__ import annotations

from datetime import timedelta
from types import SimpleNamespace

import pytest

from tasklist import config as cfg


def _app(**settings) -> SimpleNamespace:
    base = {
        "JWT_SECRET_KEY": "x" * cfg.MIN_SECRET_KEY_BYTES,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
    }
    base.update(settings)
    return SimpleNamespace(config=base)


class TestValidateConfig:

    def test_valid_config_passes(self):
        cfg.validate_config(_app())

    @pytest.mark.parametrize("secret", [None, ""])
    def test_missing_signing_key_fails(self, secret):
        with pytest.raises(ValueError, match="JWT_SECRET_KEY"):
            cfg.validate_config(_app(JWT_SECRET_KEY=secret))

    def test_short_signing_key_fails(self):
        with pytest.raises(ValueError, match="at least"):
            cfg.validate_config(_app(JWT_SECRET_KEY="x" * (cfg.MIN_SECRET_KEY_BYTES - 1)))

    def test_missing_database_url_fails(self):
        with pytest.raises(ValueError, match="DATABASE_URL"):
            cfg.validate_config(_app(SQLALCHEMY_DATABASE_URI=""))


class TestEnvHelpers:

    def test_first_non_empty_env_skips_empty_values(self, monkeypatch):
        monkeypatch.setenv("TASKLIST_A", "")
        monkeypatch.setenv("TASKLIST_B", "b")
        assert cfg._first_non_empty_env("TASKLIST_A", "TASKLIST_B", default="d") == "b"

    def test_first_non_empty_env_default(self, monkeypatch):
        monkeypatch.delenv("TASKLIST_A", raising=False)
        assert cfg._first_non_empty_env("TASKLIST_A", default=None) is None

    def test_parse_int_env_falls_back_on_garbage(self, monkeypatch):
        monkeypatch.setenv("TASKLIST_N", "twelve")
        assert cfg._parse_int_env("TASKLIST_N", default=12) == 12

    def test_ttl_defaults_to_24_hours(self, monkeypatch):
        monkeypatch.delenv("JWT_ACCESS_TOKEN_EXPIRES", raising=False)
        monkeypatch.delenv("JWT_ACCESS_TOKEN_EXPIRES_MINUTES", raising=False)
        assert cfg._access_ttl_seconds() == 86400

    def test_ttl_in_seconds(self, monkeypatch):
        monkeypatch.setenv("JWT_ACCESS_TOKEN_EXPIRES", "600")
        assert cfg._access_ttl_seconds() == 600

    def test_ttl_minutes_alias(self, monkeypatch):
        monkeypatch.delenv("JWT_ACCESS_TOKEN_EXPIRES", raising=False)
        monkeypatch.setenv("JWT_ACCESS_TOKEN_EXPIRES_MINUTES", "15")
        assert cfg._access_ttl_seconds() == 900

    def test_postgres_scheme_is_normalised(self):
        assert cfg._normalise_db_url("postgres://u:p@h/db") == "postgresql://u:p@h/db"
        assert cfg._normalise_db_url("sqlite:///:memory:") == "sqlite:///:memory:"


def test_testing_config_is_self_contained():
    testing = cfg.config_by_name["testing"]
    assert len(testing.JWT_SECRET_KEY.encode("utf-8")) >= cfg.MIN_SECRET_KEY_BYTES
    assert testing.JWT_ACCESS_TOKEN_EXPIRES == timedelta(minutes=5)
    assert testing.JWT_ALGORITHM == "HS256"


def test_config_classes_carry_only_settings_the_app_reads():
    for config_class in cfg.config_by_name.values():
        assert not hasattr(config_class, "JSON_SORT_KEYS")
    assert not hasattr(cfg, "ActiveConfig")
