from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal, Mapping

import httpx

from .config import FeedbackHook

__all__ = ["DispatchOutcome", "TelemetryRecorder", "telemetry_endpoint"]

_LOGGER = logging.getLogger(__name__)

TELEMETRY_TIMEOUT_S = 5.0


@dataclass(frozen=True)
class DispatchOutcome:
    event: str
    version: str | None
    status: Literal["ok", "error"]
    duration_ms: float
    error_message: str | None = None
    error_class: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)


def telemetry_endpoint(url: str) -> str:
    trimmed = url.rstrip("/")
    if trimmed.endswith("/telemetry"):
        return trimmed
    return f"{trimmed}/telemetry"


class TelemetryRecorder:
    """
    Best-effort reporting of dispatch outcomes.

    The feedback hook runs inline; HTTP delivery runs on a single background
    thread. Failures in either are logged and dropped.
    """

    def __init__(
        self,
        enabled: bool,
        telemetry_url: str | None,
        feedback_hook: FeedbackHook | None = None,
        extension_id: str | None = None,
        extension_version: str | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._enabled = enabled
        self._feedback_hook = feedback_hook
        self._extension_id = extension_id
        self._extension_version = extension_version
        self._endpoint = telemetry_endpoint(telemetry_url) if telemetry_url else None
        self._transport = transport
        self._executor: ThreadPoolExecutor | None = None
        self._client: httpx.Client | None = None
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def endpoint(self) -> str | None:
        return self._endpoint

    def build_record(self, outcome: DispatchOutcome) -> dict[str, Any]:
        return {
            "event": outcome.event,
            "version": outcome.version,
            "status": outcome.status,
            "duration_ms": outcome.duration_ms,
            "error_message": outcome.error_message,
            "error_class": outcome.error_class,
            "extension_id": self._extension_id,
            "extension_version": self._extension_version,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "metadata": dict(outcome.metadata),
        }

    def record(self, outcome: DispatchOutcome) -> Future[None] | None:
        if not self._enabled:
            return None
        record = self.build_record(outcome)

        if self._feedback_hook is not None:
            try:
                self._feedback_hook(record)
            except Exception as exc:
                _LOGGER.warning("telemetry.feedback_hook_failed error=%s", exc)

        if self._endpoint is None:
            return None
        return self._executor_instance().submit(self._send, record)

    def close(self) -> None:
        """Wait for pending deliveries and release the HTTP client."""
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)
        if self._client is not None:
            self._client.close()
            self._client = None

    def _executor_instance(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="kiket-telemetry")
            return self._executor

    def _send(self, record: dict[str, Any]) -> None:
        try:
            if self._client is None:
                self._client = httpx.Client(timeout=TELEMETRY_TIMEOUT_S, transport=self._transport)
            resp = self._client.post(self._endpoint, json=record)
            if resp.status_code >= 400:
                _LOGGER.warning(
                    "telemetry.send_failed endpoint=%s status=%s", self._endpoint, resp.status_code
                )
        except Exception as exc:
            _LOGGER.warning("telemetry.send_failed endpoint=%s error=%s", self._endpoint, exc)
