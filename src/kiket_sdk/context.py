from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal, Mapping

from .client import Endpoints, KiketClient
from .scopes import ScopeChecker
from .secret_resolver import SecretResolver

__all__ = ["AuthContext", "HandlerContext", "build_auth_context"]


@dataclass(frozen=True)
class AuthContext:
    runtime_token: str | None
    token_type: Literal["runtime"] = "runtime"
    expires_at: str | None = None
    scopes: tuple[str, ...] = ()
    org_id: str | None = None
    ext_id: str | None = None
    proj_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "runtime_token": self.runtime_token,
            "token_type": self.token_type,
            "expires_at": self.expires_at,
            "scopes": list(self.scopes),
            "org_id": self.org_id,
            "ext_id": self.ext_id,
            "proj_id": self.proj_id,
        }


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _expires_at(value: Any) -> str | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc).isoformat()
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def build_auth_context(claims: Mapping[str, Any], payload: Mapping[str, Any]) -> AuthContext:
    """Combine verified claims with the payload's raw runtime token."""
    raw_auth = payload.get("authentication") if isinstance(payload, Mapping) else None
    if not isinstance(raw_auth, Mapping):
        raw_auth = {}
    scopes = claims.get("scopes") or []
    if isinstance(scopes, str):
        scopes = [scopes]
    return AuthContext(
        runtime_token=_optional_str(raw_auth.get("runtime_token")),
        expires_at=_expires_at(claims.get("exp", claims.get("expires_at"))),
        scopes=tuple(str(scope) for scope in scopes),
        org_id=_optional_str(claims.get("org_id")),
        ext_id=_optional_str(claims.get("ext_id")),
        proj_id=_optional_str(claims.get("proj_id")),
    )


@dataclass
class HandlerContext:
    """Everything a webhook handler receives besides the payload."""

    event: str
    event_version: str
    auth: AuthContext
    client: KiketClient
    endpoints: Endpoints
    secrets: SecretResolver
    require_scopes: ScopeChecker
    headers: dict[str, str] = field(default_factory=dict)
    settings: dict[str, Any] = field(default_factory=dict)
    extension_id: str | None = None
    extension_version: str | None = None

    @property
    def payload_secrets(self) -> Mapping[Any, Any]:
        return self.secrets.payload_secrets

    def secret(self, key: Any) -> Any | None:
        return self.secrets.resolve(key)
