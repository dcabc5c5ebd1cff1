from __future__ import annotations

import time
from typing import Any, Callable, Mapping, Sequence

from jose import jwk, jwt
from jose.exceptions import ExpiredSignatureError, JWKError, JWTError

from .errors import (
    InvalidIssuerError,
    InvalidTokenError,
    MissingTokenError,
    NoSigningKeyError,
    TokenExpiredError,
)
from .jwks import KeySetCache

__all__ = [
    "ALGORITHM",
    "ISSUER",
    "TokenVerifier",
    "extract_runtime_token",
    "select_signing_key",
]

ALGORITHM = "ES256"
ISSUER = "kiket.dev"
KEY_USE = "sig"

_DECODE_OPTIONS = {
    "verify_signature": True,
    "verify_exp": True,
    "verify_iat": True,
    "verify_aud": False,
}


def extract_runtime_token(payload: Any) -> str:
    auth = payload.get("authentication") if isinstance(payload, Mapping) else None
    token = auth.get("runtime_token") if isinstance(auth, Mapping) else None
    if not isinstance(token, str) or token == "":
        raise MissingTokenError()
    return token


def select_signing_key(keys: Sequence[Mapping[str, Any]]) -> Any:
    """Construct the first ES256 signature key in ``keys``."""
    for entry in keys:
        if entry.get("alg") != ALGORITHM or entry.get("use") != KEY_USE:
            continue
        try:
            return jwk.construct(dict(entry), ALGORITHM)
        except JWKError as exc:
            raise NoSigningKeyError(f"Invalid signing key in JWKS: {exc}") from exc
    raise NoSigningKeyError()


class TokenVerifier:
    """Verifies platform-issued runtime tokens against the published JWKS."""

    def __init__(
        self,
        key_cache: KeySetCache,
        *,
        issuer: str = ISSUER,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._key_cache = key_cache
        self._issuer = issuer
        self._clock = clock

    @property
    def key_cache(self) -> KeySetCache:
        return self._key_cache

    def verify(self, payload: Any, base_url: str) -> dict[str, Any]:
        token = extract_runtime_token(payload)
        return self.decode(token, base_url)

    def decode(self, token: str, base_url: str) -> dict[str, Any]:
        key = select_signing_key(self._key_cache.get(base_url))
        try:
            claims = jwt.decode(
                token,
                key,
                algorithms=[ALGORITHM],
                options=dict(_DECODE_OPTIONS),
            )
        except ExpiredSignatureError as exc:
            raise TokenExpiredError() from exc
        except JWTError as exc:
            raise InvalidTokenError(f"Invalid token: {exc}") from exc
        # jose only type-checks iat
        issued_at = claims.get("iat")
        if issued_at is not None:
            if isinstance(issued_at, bool) or not isinstance(issued_at, (int, float)):
                raise InvalidTokenError("Invalid token: malformed iat claim")
            if issued_at > self._clock():
                raise InvalidTokenError("Invalid token: issued in the future")
        # jose folds an issuer mismatch into a generic claims error
        if claims.get("iss") != self._issuer:
            raise InvalidIssuerError()
        return claims
