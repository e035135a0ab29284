from __future__ import annotations

import logging
from pathlib import Path

import pytest

from influxsync.config import (
    ConfigurationError,
    MissingConfigurationError,
    configure_logging,
    get_connection_settings,
    require_env_vars,
)

_ENV_VARS = (
    "INFLUXDB_HOST",
    "INFLUXDB_PORT",
    "INFLUXDB_USE_SSL",
    "INFLUXDB_USE_SYSTEM_STORE",
    "INFLUXDB_CA_BUNDLE",
    "INFLUXDB_TOKEN",
    "INFLUXDB_TOKEN_FILE",
    "INFLUXDB_USERNAME",
    "INFLUXDB_PASSWORD",
    "INFLUXDB_TIMEOUT_SECONDS",
    "INFLUXDB_ADMIN_USER",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "value")

    result = require_env_vars(["EXAMPLE_VAR"])

    assert result["EXAMPLE_VAR"] == "value"


def test_require_env_vars_raises_when_any_missing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_VAR", raising=False)
    monkeypatch.setenv("BLANK_VAR", "   ")

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["MISSING_VAR", "BLANK_VAR"])

    assert "BLANK_VAR, MISSING_VAR" in str(exc.value)


def test_defaults_without_environment() -> None:
    settings = get_connection_settings()

    assert settings.host == "localhost"
    assert settings.port == 8086
    assert settings.use_ssl is True
    assert settings.use_system_store is False
    assert settings.ca_bundle is None
    assert settings.token is None
    assert settings.token_file == Path("~/.influxdb_token").expanduser()
    assert settings.username is None
    assert settings.password is None
    assert settings.timeout_seconds == 30.0
    assert settings.admin_user == "admin"


def test_reads_values_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("INFLUXDB_HOST", "foo.bar.com")
    monkeypatch.setenv("INFLUXDB_PORT", "9999")
    monkeypatch.setenv("INFLUXDB_USE_SSL", "no")
    monkeypatch.setenv("INFLUXDB_USE_SYSTEM_STORE", "true")
    monkeypatch.setenv("INFLUXDB_CA_BUNDLE", "/etc/ssl/ca.pem")
    monkeypatch.setenv("INFLUXDB_TOKEN", "puppetlabs")
    monkeypatch.setenv("INFLUXDB_TOKEN_FILE", "/tmp/token")
    monkeypatch.setenv("INFLUXDB_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("INFLUXDB_ADMIN_USER", "operator")

    settings = get_connection_settings()

    assert settings.host == "foo.bar.com"
    assert settings.port == 9999
    assert settings.use_ssl is False
    assert settings.use_system_store is True
    assert settings.ca_bundle == Path("/etc/ssl/ca.pem")
    assert settings.token is not None
    assert settings.token.get_secret_value() == "puppetlabs"
    assert settings.token_file == Path("/tmp/token")
    assert settings.timeout_seconds == 2.5
    assert settings.admin_user == "operator"


def test_token_is_not_exposed_in_repr(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("INFLUXDB_TOKEN", "very-secret")

    assert "very-secret" not in repr(get_connection_settings())


def test_basic_auth_requires_both_halves(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("INFLUXDB_USERNAME", "admin")

    with pytest.raises(MissingConfigurationError) as exc:
        get_connection_settings()

    assert "INFLUXDB_PASSWORD" in str(exc.value)


def test_basic_auth_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("INFLUXDB_USERNAME", "admin")
    monkeypatch.setenv("INFLUXDB_PASSWORD", "hunter2")

    settings = get_connection_settings()

    assert settings.username == "admin"
    assert settings.password is not None
    assert settings.password.get_secret_value() == "hunter2"


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("INFLUXDB_PORT", "eighty"),
        ("INFLUXDB_USE_SSL", "maybe"),
        ("INFLUXDB_TIMEOUT_SECONDS", "soon"),
    ],
)
def test_malformed_values_raise(monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(ConfigurationError) as exc:
        get_connection_settings()

    assert name in str(exc.value)


def test_configure_logging_sets_root_level() -> None:
    root = logging.getLogger()
    previous_level = root.level
    previous_handlers = list(root.handlers)
    try:
        configure_logging(level=logging.DEBUG, force=True)
        assert root.level == logging.DEBUG
        assert root.handlers
    finally:
        for handler in root.handlers:
            root.removeHandler(handler)
        for handler in previous_handlers:
            root.addHandler(handler)
        root.setLevel(previous_level)


def test_configure_logging_accepts_level_name_and_quiets_http_loggers() -> None:
    root = logging.getLogger()
    httpx_logger = logging.getLogger("httpx")
    previous = (root.level, list(root.handlers), httpx_logger.level)
    try:
        configure_logging(level="debug", force=True)
        assert root.level == logging.DEBUG
        assert httpx_logger.level == logging.WARNING
    finally:
        for handler in root.handlers:
            root.removeHandler(handler)
        for handler in previous[1]:
            root.addHandler(handler)
        root.setLevel(previous[0])
        httpx_logger.setLevel(previous[2])
