from __future__ import annotations

from typing import Any, Mapping

__all__ = ["allow", "deny", "pending"]


def allow(
    message: str | None = None,
    data: Mapping[str, Any] | None = None,
    output_fields: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Build an ``allow`` response.

    ``output_fields`` are shown in the extension configuration UI after setup.
    """
    metadata = dict(data or {})
    if output_fields:
        metadata["output_fields"] = dict(output_fields)
    response: dict[str, Any] = {"status": "allow", "metadata": metadata}
    if message is not None:
        response["message"] = message
    return response


def deny(message: str, data: Mapping[str, Any] | None = None) -> dict[str, Any]:
    return {"status": "deny", "message": message, "metadata": dict(data or {})}


def pending(message: str, data: Mapping[str, Any] | None = None) -> dict[str, Any]:
    return {"status": "pending", "message": message, "metadata": dict(data or {})}
