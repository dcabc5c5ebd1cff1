"""
Webhook request lifecycle.

Received -> BodyParsed -> Authenticated -> VersionResolved -> HandlerResolved
-> ScopeChecked -> Executed -> Responded. Any step may end the request with a
DispatchFailure, which becomes a JSON error response. Exactly one telemetry
outcome is recorded per request.
"""
from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping
from urllib.parse import urlparse

import httpx

from .client import Endpoints, KiketClient
from .config import SDKConfig
from .context import AuthContext, HandlerContext, build_auth_context
from .errors import AuthenticationError, ConfigError
from .log import log_json
from .registry import EventRegistry, HandlerRegistration
from .scopes import build_scope_checker, check_scopes
from .secret_resolver import SecretResolver
from .signature import verify_signature_headers
from .telemetry import DispatchOutcome, TelemetryRecorder
from .tokens import TokenVerifier

__all__ = [
    "EVENT_VERSION_HEADER",
    "DispatchFailure",
    "DispatchResponse",
    "FailureKind",
    "RequestDispatcher",
    "WebhookRequest",
]

_LOGGER = logging.getLogger(__name__)

EVENT_VERSION_HEADER = "x-kiket-event-version"


class FailureKind(Enum):
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    INTERNAL_ERROR = 500


@dataclass(frozen=True)
class DispatchFailure:
    kind: FailureKind
    message: str
    error_class: str | None = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    @property
    def status_code(self) -> int:
        return self.kind.value

    def body(self) -> dict[str, Any]:
        return {"error": self.message, **self.extra}


@dataclass(frozen=True)
class WebhookRequest:
    event: str
    body: bytes
    headers: Mapping[str, str] = field(default_factory=dict)
    path_version: str | None = None
    query: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class DispatchResponse:
    status_code: int
    body: Any
    outcome: DispatchOutcome


class RequestDispatcher:
    def __init__(
        self,
        config: SDKConfig,
        registry: EventRegistry,
        token_verifier: TokenVerifier,
        telemetry: TelemetryRecorder,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if config.auth_mode == "hmac" and not config.webhook_secret:
            raise ConfigError("Webhook secret not configured")
        self._config = config
        self._registry = registry
        self._token_verifier = token_verifier
        self._telemetry = telemetry
        self._transport = transport

    @property
    def registry(self) -> EventRegistry:
        return self._registry

    def dispatch(self, request: WebhookRequest) -> DispatchResponse:
        start = time.perf_counter()
        headers = {k.lower(): v for k, v in request.headers.items()}
        request_version: str | None = None

        payload = _parse_body(request.body)
        if isinstance(payload, DispatchFailure):
            result: Any = payload
        else:
            result, request_version = self._run(request, headers, payload)

        duration_ms = (time.perf_counter() - start) * 1000
        if isinstance(result, DispatchFailure):
            outcome = DispatchOutcome(
                event=request.event,
                version=request_version,
                status="error",
                duration_ms=duration_ms,
                error_message=result.message,
                error_class=result.error_class,
            )
            response = DispatchResponse(result.status_code, result.body(), outcome)
            log_json(
                logging.WARNING,
                "webhook.rejected",
                webhook_event=request.event,
                version=request_version,
                status_code=result.status_code,
                error=result.message,
            )
        else:
            outcome = DispatchOutcome(
                event=request.event,
                version=request_version,
                status="ok",
                duration_ms=duration_ms,
            )
            response = DispatchResponse(200, result, outcome)
            log_json(
                logging.INFO,
                "webhook.dispatched",
                webhook_event=request.event,
                version=request_version,
                duration_ms=round(duration_ms, 3),
            )
        self._record(outcome)
        return response

    def _run(
        self,
        request: WebhookRequest,
        headers: dict[str, str],
        payload: dict[str, Any],
    ) -> tuple[Any, str | None]:
        auth = self._authenticate(request, headers, payload)
        if isinstance(auth, DispatchFailure):
            return auth, None

        version = _resolve_version(request, headers)
        if version is None:
            return DispatchFailure(FailureKind.BAD_REQUEST, "Event version required"), None

        registration = self._registry.lookup(request.event, version)
        if registration is None:
            return (
                DispatchFailure(
                    FailureKind.NOT_FOUND,
                    f"No handler registered for event '{request.event}' with version '{version}'",
                ),
                version,
            )

        missing = check_scopes(registration.required_scopes, auth.scopes)
        if missing:
            return (
                DispatchFailure(
                    FailureKind.FORBIDDEN,
                    "Insufficient scopes",
                    error_class="ScopeError",
                    extra={
                        "required_scopes": list(registration.required_scopes),
                        "missing_scopes": missing,
                    },
                ),
                version,
            )

        return self._execute(request, headers, payload, registration, auth), version

    def _authenticate(
        self,
        request: WebhookRequest,
        headers: dict[str, str],
        payload: dict[str, Any],
    ) -> AuthContext | DispatchFailure:
        try:
            if self._config.auth_mode == "hmac":
                verify_signature_headers(self._config.webhook_secret, request.body, headers)
                claims = _signed_payload_claims(payload)
            else:
                claims = self._token_verifier.verify(payload, self._config.base_url)
        except (AuthenticationError, ConfigError) as exc:
            return DispatchFailure(FailureKind.UNAUTHORIZED, str(exc), error_class=type(exc).__name__)
        return build_auth_context(claims, payload)

    def _execute(
        self,
        request: WebhookRequest,
        headers: dict[str, str],
        payload: dict[str, Any],
        registration: HandlerRegistration,
        auth: AuthContext,
    ) -> Any:
        client = KiketClient(
            _api_base_url(payload, self._config.base_url),
            self._config.workspace_token,
            registration.version,
            extension_api_key=self._config.extension_api_key,
            runtime_token=auth.runtime_token,
            transport=self._transport,
        )
        context = HandlerContext(
            event=request.event,
            event_version=registration.version,
            auth=auth,
            client=client,
            endpoints=Endpoints(client, self._config.extension_id, registration.version),
            secrets=SecretResolver(payload.get("secrets")),
            require_scopes=build_scope_checker(auth.scopes),
            headers=headers,
            settings=dict(self._config.settings),
            extension_id=self._config.extension_id,
            extension_version=self._config.extension_version,
        )
        try:
            result = registration.invoke(payload, context)
        except Exception as exc:
            log_json(
                logging.ERROR,
                "webhook.handler_failed",
                exc_info=True,
                webhook_event=request.event,
                version=registration.version,
                error_class=type(exc).__name__,
                error=str(exc),
            )
            return DispatchFailure(
                FailureKind.INTERNAL_ERROR,
                str(exc),
                error_class=type(exc).__name__,
            )
        finally:
            client.close()

        if result is None:
            return {"ok": True}
        try:
            json.dumps(result, allow_nan=False)
        except (TypeError, ValueError) as exc:
            return DispatchFailure(
                FailureKind.INTERNAL_ERROR,
                "Handler returned a non-JSON-serializable result",
                error_class=type(exc).__name__,
            )
        return result

    def _record(self, outcome: DispatchOutcome) -> None:
        try:
            self._telemetry.record(outcome)
        except Exception as exc:
            _LOGGER.warning("telemetry.record_failed error=%s", exc)


def _parse_body(body: bytes) -> dict[str, Any] | DispatchFailure:
    try:
        payload = json.loads(body or b"")
    except (ValueError, UnicodeDecodeError):
        return DispatchFailure(FailureKind.BAD_REQUEST, "Invalid JSON payload")
    if not isinstance(payload, dict):
        return DispatchFailure(FailureKind.BAD_REQUEST, "Payload must be a JSON object")
    return payload


def _resolve_version(request: WebhookRequest, headers: Mapping[str, str]) -> str | None:
    for candidate in (
        request.path_version,
        headers.get(EVENT_VERSION_HEADER),
        request.query.get("version"),
    ):
        if candidate is not None and candidate.strip():
            return candidate.strip()
    return None


def _signed_payload_claims(payload: Mapping[str, Any]) -> dict[str, Any]:
    auth = payload.get("authentication")
    if not isinstance(auth, Mapping):
        return {}
    return {
        "scopes": auth.get("scopes") or [],
        "org_id": auth.get("org_id"),
        "ext_id": auth.get("ext_id"),
        "proj_id": auth.get("proj_id"),
        "expires_at": auth.get("expires_at"),
    }


def _api_base_url(payload: Mapping[str, Any], default: str) -> str:
    """API base URL the platform sent for this delivery; keys are never fetched from it."""
    api = payload.get("api")
    candidate = api.get("base_url") if isinstance(api, Mapping) else None
    if not isinstance(candidate, str):
        return default
    parsed = urlparse(candidate.strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return default
    return candidate.strip().rstrip("/")
