from __future__ import annotations

import inspect
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterable, Protocol

if TYPE_CHECKING:
    from .context import HandlerContext

__all__ = ["EventRegistry", "HandlerRegistration", "WebhookHandler"]


class WebhookHandler(Protocol):
    def __call__(self, payload: dict[str, Any], context: HandlerContext) -> Any:
        ...


@dataclass(frozen=True)
class HandlerRegistration:
    event: str
    version: str
    handler: WebhookHandler
    required_scopes: tuple[str, ...] = field(default_factory=tuple)

    @property
    def key(self) -> str:
        return _make_key(self.event, self.version)

    def invoke(self, payload: dict[str, Any], context: HandlerContext) -> Any:
        return self.handler(payload, context)


def _make_key(event: str, version: str) -> str:
    return f"{event}:{version}"


class EventRegistry:
    """
    Handlers keyed by (event, version).

    Versions are opaque labels. Registering the same pair again replaces
    the earlier handler. The mapping is swapped copy-on-write so concurrent
    readers see either the old or the new table.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, HandlerRegistration] = {}
        self._lock = threading.Lock()

    def register(
        self,
        event: str,
        version: str,
        handler: WebhookHandler,
        required_scopes: Iterable[str] = (),
    ) -> HandlerRegistration:
        if not isinstance(event, str) or event.strip() == "":
            raise ValueError("event must be a non-empty string")
        version = str(version)
        if version.strip() == "":
            raise ValueError("version must be a non-empty string")
        if not callable(handler):
            raise TypeError("handler must be callable")
        if inspect.iscoroutinefunction(handler):
            raise TypeError("coroutine handlers are not supported; register a plain function")
        if isinstance(required_scopes, str):
            required_scopes = (required_scopes,)
        registration = HandlerRegistration(
            event=event,
            version=version,
            handler=handler,
            required_scopes=tuple(required_scopes),
        )
        with self._lock:
            handlers = dict(self._handlers)
            handlers[registration.key] = registration
            self._handlers = handlers
        return registration

    def lookup(self, event: str, version: str) -> HandlerRegistration | None:
        return self._handlers.get(_make_key(event, str(version)))

    def event_names(self) -> list[str]:
        names: list[str] = []
        for registration in self._handlers.values():
            if registration.event not in names:
                names.append(registration.event)
        return names

    def all(self) -> list[HandlerRegistration]:
        return list(self._handlers.values())

    def __len__(self) -> int:
        return len(self._handlers)
