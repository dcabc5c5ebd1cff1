from __future__ import annotations

import pytest

from kiket_sdk.config import load_sdk_config
from kiket_sdk.errors import ConfigError

_ENV = (
    "KIKET_BASE_URL",
    "KIKET_AUTH_MODE",
    "KIKET_WEBHOOK_SECRET",
    "KIKET_WORKSPACE_TOKEN",
    "KIKET_SDK_TELEMETRY_URL",
    "KIKET_SDK_TELEMETRY_OPTOUT",
    "KIKET_EXTENSION_ID",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch) -> None:
    for name in _ENV:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    config = load_sdk_config()
    assert config.base_url == "https://kiket.dev"
    assert config.auth_mode == "jwt"
    assert config.telemetry_enabled is True
    assert config.telemetry_url == "https://kiket.dev/api/v1/ext"
    assert config.settings == {}


def test_environment_overrides_defaults(monkeypatch) -> None:
    monkeypatch.setenv("KIKET_BASE_URL", "https://staging.kiket.test/")
    monkeypatch.setenv("KIKET_EXTENSION_ID", "ext-env")
    config = load_sdk_config()
    assert config.base_url == "https://staging.kiket.test"
    assert config.extension_id == "ext-env"
    assert config.telemetry_url == "https://staging.kiket.test/api/v1/ext"


def test_arguments_override_environment(monkeypatch) -> None:
    monkeypatch.setenv("KIKET_EXTENSION_ID", "ext-env")
    assert load_sdk_config(extension_id="ext-arg").extension_id == "ext-arg"


def test_telemetry_opt_out(monkeypatch) -> None:
    monkeypatch.setenv("KIKET_SDK_TELEMETRY_OPTOUT", "1")
    assert load_sdk_config(telemetry_enabled=True).telemetry_enabled is False


def test_hmac_mode_requires_secret() -> None:
    with pytest.raises(ConfigError, match="not configured"):
        load_sdk_config(auth_mode="hmac")


def test_hmac_mode_with_secret_from_env(monkeypatch) -> None:
    monkeypatch.setenv("KIKET_AUTH_MODE", "HMAC")
    monkeypatch.setenv("KIKET_WEBHOOK_SECRET", "s3cret")
    config = load_sdk_config()
    assert config.auth_mode == "hmac"
    assert config.webhook_secret == "s3cret"


def test_unknown_auth_mode() -> None:
    with pytest.raises(ConfigError):
        load_sdk_config(auth_mode="basic")


def test_rejects_non_http_base_url() -> None:
    with pytest.raises(ConfigError):
        load_sdk_config(base_url="ftp://kiket.dev")
