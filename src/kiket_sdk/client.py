from __future__ import annotations

from datetime import datetime, timezone
from importlib.metadata import PackageNotFoundError, version
from typing import Any, Mapping

import httpx

__all__ = ["DEFAULT_TIMEOUT_S", "Endpoints", "KiketClient", "get_sdk_version"]

DEFAULT_TIMEOUT_S = 30.0


def get_sdk_version() -> str:
    try:
        return version("kiket-sdk")
    except PackageNotFoundError:
        return "unknown"


class KiketClient:
    """
    Thin JSON client for the Kiket API, scoped to one webhook delivery.

    Responses are parsed JSON (None for an empty body); 4xx/5xx raise
    httpx.HTTPStatusError.
    """

    def __init__(
        self,
        base_url: str,
        workspace_token: str | None = None,
        event_version: str | None = None,
        *,
        extension_api_key: str | None = None,
        runtime_token: str | None = None,
        transport: httpx.BaseTransport | None = None,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._workspace_token = workspace_token
        self._event_version = event_version
        self._extension_api_key = extension_api_key
        self._runtime_token = runtime_token
        self._transport = transport
        self._timeout_s = timeout_s
        self._client: httpx.Client | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def runtime_token(self) -> str | None:
        return self._runtime_token

    def headers(self) -> dict[str, str]:
        headers = {
            "content-type": "application/json",
            "user-agent": f"kiket-sdk-python/{get_sdk_version()}",
        }
        if self._workspace_token:
            headers["authorization"] = f"Bearer {self._workspace_token}"
        if self._event_version:
            headers["x-kiket-event-version"] = self._event_version
        if self._runtime_token:
            headers["x-kiket-runtime-token"] = self._runtime_token
        if self._extension_api_key:
            headers["x-kiket-api-key"] = self._extension_api_key
        return headers

    def get(self, path: str, params: Mapping[str, Any] | None = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, data: Any = None) -> Any:
        return self.request("POST", path, json=data)

    def put(self, path: str, data: Any = None) -> Any:
        return self.request("PUT", path, json=data)

    def patch(self, path: str, data: Any = None) -> Any:
        return self.request("PATCH", path, json=data)

    def delete(self, path: str) -> Any:
        return self.request("DELETE", path)

    def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        resp = self._http().request(
            method,
            path,
            json=json,
            params=dict(params) if params else None,
            headers=self.headers(),
        )
        resp.raise_for_status()
        if not resp.content:
            return None
        return resp.json()

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def _http(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                base_url=self._base_url,
                timeout=self._timeout_s,
                transport=self._transport,
            )
        return self._client

    def __enter__(self) -> KiketClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class Endpoints:
    """High-level extension calls built on a KiketClient."""

    def __init__(self, client: KiketClient, extension_id: str | None, event_version: str | None) -> None:
        self._client = client
        self._extension_id = extension_id
        self._event_version = event_version

    def log_event(self, event: str, data: Mapping[str, Any]) -> Any:
        return self._client.post(
            f"/extensions/{self._extension_id}/events",
            {
                "event": event,
                "version": self._event_version,
                "data": dict(data),
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )

    def get_metadata(self) -> Any:
        return self._client.get(f"/extensions/{self._extension_id}")

    def rate_limit(self) -> dict[str, Any]:
        response = self._client.get("/api/v1/ext/rate_limit")
        if not isinstance(response, Mapping):
            return {}
        limit = response.get("rate_limit", {})
        return dict(limit) if isinstance(limit, Mapping) else {}
