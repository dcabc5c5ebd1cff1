"""
Legacy shared-secret webhook signatures.

signature = hex(HMAC-SHA256(secret, "{unix_timestamp}.{raw_body}"))

The timestamp travels in X-Kiket-Timestamp and must lie within
MAX_SKEW_SECONDS of the receiver's clock in either direction.
"""
from __future__ import annotations

import hashlib
import hmac
import time
from typing import Callable, Mapping, TypedDict

from .errors import ConfigError, InvalidSignatureError, MissingHeaderError, StaleRequestError

__all__ = [
    "SIGNATURE_HEADER",
    "TIMESTAMP_HEADER",
    "MAX_SKEW_SECONDS",
    "SignatureData",
    "compute_signature",
    "generate_signature",
    "verify_signature",
    "verify_signature_headers",
]

SIGNATURE_HEADER = "X-Kiket-Signature"
TIMESTAMP_HEADER = "X-Kiket-Timestamp"
MAX_SKEW_SECONDS = 300


class SignatureData(TypedDict):
    signature: str
    timestamp: str


def _to_bytes(value: str | bytes) -> bytes:
    if isinstance(value, bytes):
        return value
    return value.encode("utf-8")


def compute_signature(secret: str | bytes, body: str | bytes, timestamp: str | int) -> str:
    message = f"{timestamp}.".encode("utf-8") + _to_bytes(body)
    return hmac.new(_to_bytes(secret), message, hashlib.sha256).hexdigest()


def generate_signature(
    secret: str | bytes,
    body: str | bytes,
    timestamp: int | str | None = None,
) -> SignatureData:
    """Sign ``body`` the way the platform does; used by test harnesses and replays."""
    if timestamp is None:
        timestamp = int(time.time())
    timestamp_str = str(timestamp)
    return {
        "signature": compute_signature(secret, body, timestamp_str),
        "timestamp": timestamp_str,
    }


def verify_signature(
    secret: str | bytes | None,
    body: str | bytes,
    signature: str | None,
    timestamp: str | None,
    *,
    clock: Callable[[], float] = time.time,
) -> None:
    """
    Verify a legacy webhook signature.

    Raises:
        ConfigError: no webhook secret is configured.
        MissingHeaderError: signature or timestamp header absent.
        StaleRequestError: timestamp outside the freshness window or unparseable.
        InvalidSignatureError: HMAC mismatch.
    """
    if not secret:
        raise ConfigError("Webhook secret not configured")
    if not signature:
        raise MissingHeaderError(SIGNATURE_HEADER)
    if not timestamp:
        raise MissingHeaderError(TIMESTAMP_HEADER)

    try:
        request_time = int(str(timestamp).strip())
    except ValueError as exc:
        raise StaleRequestError("Invalid request timestamp") from exc
    if abs(int(clock()) - request_time) > MAX_SKEW_SECONDS:
        raise StaleRequestError()

    expected = compute_signature(secret, body, timestamp)
    if not hmac.compare_digest(expected.encode("ascii"), _to_bytes(signature.strip())):
        raise InvalidSignatureError()


def verify_signature_headers(
    secret: str | bytes | None,
    body: str | bytes,
    headers: Mapping[str, str],
    *,
    clock: Callable[[], float] = time.time,
) -> None:
    lowered = {k.lower(): v for k, v in headers.items()}
    verify_signature(
        secret,
        body,
        lowered.get(SIGNATURE_HEADER.lower()),
        lowered.get(TIMESTAMP_HEADER.lower()),
        clock=clock,
    )
