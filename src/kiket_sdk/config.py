"""
SDK configuration.

Resolved once when the SDK is constructed and immutable afterwards.
Explicit arguments win over environment variables, which win over defaults.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Callable, Literal, Mapping
from urllib.parse import urlparse

from .errors import ConfigError

__all__ = [
    "AUTH_MODES",
    "DEFAULT_BASE_URL",
    "FeedbackHook",
    "SDKConfig",
    "load_sdk_config",
]

DEFAULT_BASE_URL = "https://kiket.dev"
AUTH_MODES = ("jwt", "hmac")

AuthMode = Literal["jwt", "hmac"]
FeedbackHook = Callable[[dict[str, Any]], Any]


@dataclass(frozen=True)
class SDKConfig:
    """Immutable SDK configuration."""

    base_url: str
    auth_mode: AuthMode
    workspace_token: str | None = None
    extension_api_key: str | None = None
    webhook_secret: str | None = None
    extension_id: str | None = None
    extension_version: str | None = None
    telemetry_enabled: bool = True
    telemetry_url: str | None = None
    feedback_hook: FeedbackHook | None = None
    settings: Mapping[str, Any] = field(default_factory=dict)


def _env_str(name: str) -> str | None:
    raw = os.getenv(name)
    if raw is None:
        return None
    value = raw.strip()
    return value or None


def _pick(explicit: Any, env_name: str, default: Any = None) -> Any:
    if explicit is not None:
        return explicit
    env_value = _env_str(env_name)
    if env_value is not None:
        return env_value
    return default


def load_sdk_config(
    *,
    base_url: str | None = None,
    auth_mode: str | None = None,
    workspace_token: str | None = None,
    extension_api_key: str | None = None,
    webhook_secret: str | None = None,
    extension_id: str | None = None,
    extension_version: str | None = None,
    telemetry_enabled: bool | None = None,
    telemetry_url: str | None = None,
    feedback_hook: FeedbackHook | None = None,
    settings: Mapping[str, Any] | None = None,
) -> SDKConfig:
    """
    Build an SDKConfig from arguments and the environment.

    Raises:
        ConfigError: unknown auth mode, hmac mode without a webhook secret,
            or a base URL that is not http(s).
    """
    resolved_base_url = str(_pick(base_url, "KIKET_BASE_URL", DEFAULT_BASE_URL)).strip()
    parsed = urlparse(resolved_base_url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigError(f"base_url must be an http(s) URL: {resolved_base_url!r}")
    resolved_base_url = resolved_base_url.rstrip("/")

    mode = str(_pick(auth_mode, "KIKET_AUTH_MODE", "jwt")).strip().lower()
    if mode not in AUTH_MODES:
        raise ConfigError(f"auth_mode must be one of {', '.join(AUTH_MODES)}")

    secret = _pick(webhook_secret, "KIKET_WEBHOOK_SECRET")
    if mode == "hmac" and not secret:
        raise ConfigError("Webhook secret not configured")

    if telemetry_enabled is None:
        telemetry_enabled = True
    if _env_str("KIKET_SDK_TELEMETRY_OPTOUT") == "1":
        telemetry_enabled = False

    resolved_telemetry_url = _pick(telemetry_url, "KIKET_SDK_TELEMETRY_URL")
    if resolved_telemetry_url is None:
        resolved_telemetry_url = f"{resolved_base_url}/api/v1/ext"

    return SDKConfig(
        base_url=resolved_base_url,
        auth_mode=mode,  # type: ignore[arg-type]
        workspace_token=_pick(workspace_token, "KIKET_WORKSPACE_TOKEN"),
        extension_api_key=_pick(extension_api_key, "KIKET_EXTENSION_API_KEY"),
        webhook_secret=secret,
        extension_id=_pick(extension_id, "KIKET_EXTENSION_ID"),
        extension_version=_pick(extension_version, "KIKET_EXTENSION_VERSION"),
        telemetry_enabled=bool(telemetry_enabled),
        telemetry_url=resolved_telemetry_url,
        feedback_hook=feedback_hook,
        settings=dict(settings or {}),
    )
