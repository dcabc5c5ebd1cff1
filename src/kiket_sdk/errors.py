from __future__ import annotations

from typing import Iterable

__all__ = [
    "KiketError",
    "ConfigError",
    "AuthenticationError",
    "MissingTokenError",
    "TokenExpiredError",
    "InvalidIssuerError",
    "InvalidTokenError",
    "NoSigningKeyError",
    "MissingHeaderError",
    "StaleRequestError",
    "InvalidSignatureError",
    "FetchError",
    "ScopeError",
]


class KiketError(Exception):
    """Base error for the SDK."""

    code = "kiket_error"


class ConfigError(KiketError):
    """Authentication or runtime configuration is missing or invalid."""

    code = "config_error"


class AuthenticationError(KiketError):
    """Inbound request could not be authenticated."""

    code = "unauthorized"


class MissingTokenError(AuthenticationError):
    code = "missing_token"

    def __init__(self, message: str = "Missing runtime_token in payload") -> None:
        super().__init__(message)


class TokenExpiredError(AuthenticationError):
    code = "token_expired"

    def __init__(self, message: str = "Runtime token has expired") -> None:
        super().__init__(message)


class InvalidIssuerError(AuthenticationError):
    code = "invalid_issuer"

    def __init__(self, message: str = "Invalid token issuer") -> None:
        super().__init__(message)


class InvalidTokenError(AuthenticationError):
    code = "invalid_token"


class NoSigningKeyError(AuthenticationError):
    code = "no_signing_key"

    def __init__(self, message: str = "No suitable signing key found in JWKS") -> None:
        super().__init__(message)


class MissingHeaderError(AuthenticationError):
    code = "missing_header"

    def __init__(self, header: str) -> None:
        super().__init__(f"Missing {header} header")
        self.header = header


class StaleRequestError(AuthenticationError):
    code = "stale_request"

    def __init__(self, message: str = "Request timestamp too old") -> None:
        super().__init__(message)


class InvalidSignatureError(AuthenticationError):
    code = "invalid_signature"

    def __init__(self, message: str = "Invalid signature") -> None:
        super().__init__(message)


class FetchError(AuthenticationError):
    """JWKS document could not be retrieved or parsed."""

    code = "jwks_fetch_failed"


class ScopeError(KiketError):
    """Granted scopes do not cover the scopes a handler requires."""

    code = "insufficient_scopes"

    def __init__(
        self,
        required_scopes: Iterable[str],
        available_scopes: Iterable[str],
        missing_scopes: Iterable[str] | None = None,
    ) -> None:
        self.required_scopes = list(required_scopes)
        self.available_scopes = list(available_scopes)
        if missing_scopes is None:
            available = set(self.available_scopes)
            missing_scopes = [scope for scope in self.required_scopes if scope not in available]
        self.missing_scopes = list(missing_scopes)
        super().__init__(f"Insufficient scopes: missing {', '.join(self.missing_scopes)}")
