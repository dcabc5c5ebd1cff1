from __future__ import annotations

from typing import Any, Callable, Iterable, TypeVar

import httpx
import uvicorn
from fastapi import FastAPI

from .app import create_app
from .config import SDKConfig, load_sdk_config
from .dispatcher import RequestDispatcher
from .jwks import KeySetCache
from .registry import EventRegistry, HandlerRegistration, WebhookHandler
from .telemetry import TelemetryRecorder
from .tokens import TokenVerifier

__all__ = ["KiketSDK"]

F = TypeVar("F", bound=Callable[..., Any])


class KiketSDK:
    """
    Entry point for building a Kiket extension.

    Example::

        sdk = KiketSDK(extension_id="acme.triage")

        @sdk.webhook("issue.created", version="1", required_scopes=["issues.read"])
        def on_issue_created(payload, context):
            token = context.secret("SLACK_BOT_TOKEN")
            ...

        sdk.run(port=8080)
    """

    def __init__(
        self,
        config: SDKConfig | None = None,
        *,
        key_cache: KeySetCache | None = None,
        telemetry: TelemetryRecorder | None = None,
        transport: httpx.BaseTransport | None = None,
        **options: Any,
    ) -> None:
        self.config = config or load_sdk_config(**options)
        self.registry = EventRegistry()
        self.key_cache = key_cache or KeySetCache(transport=transport)
        self.telemetry = telemetry or TelemetryRecorder(
            self.config.telemetry_enabled,
            self.config.telemetry_url,
            self.config.feedback_hook,
            self.config.extension_id,
            self.config.extension_version,
            transport=transport,
        )
        self.dispatcher = RequestDispatcher(
            self.config,
            self.registry,
            TokenVerifier(self.key_cache),
            self.telemetry,
            transport=transport,
        )
        self._app: FastAPI | None = None

    def register(
        self,
        event: str,
        handler: WebhookHandler,
        *,
        version: str,
        required_scopes: Iterable[str] = (),
    ) -> HandlerRegistration:
        return self.registry.register(event, version, handler, required_scopes)

    def webhook(
        self,
        event: str,
        *,
        version: str,
        required_scopes: Iterable[str] = (),
    ) -> Callable[[F], F]:
        def decorator(handler: F) -> F:
            self.register(event, handler, version=version, required_scopes=required_scopes)
            return handler

        return decorator

    @property
    def app(self) -> FastAPI:
        if self._app is None:
            self._app = create_app(self)
        return self._app

    def run(self, host: str = "127.0.0.1", port: int = 8000) -> None:
        uvicorn.run(self.app, host=host, port=port, reload=False)
