from __future__ import annotations

import time

import pytest

from conftest import BASE_URL, KeyPair
from kiket_sdk.errors import (
    FetchError,
    InvalidIssuerError,
    InvalidTokenError,
    MissingTokenError,
    NoSigningKeyError,
    TokenExpiredError,
)
from kiket_sdk.jwks import KeySetCache
from kiket_sdk.tokens import TokenVerifier, select_signing_key


def _verifier(platform) -> TokenVerifier:
    return TokenVerifier(KeySetCache(transport=platform.transport()))


def test_valid_token_returns_claims(platform, keypair, make_payload) -> None:
    token = keypair.token(scopes=["issues.read"])
    claims = _verifier(platform).verify(make_payload(token), BASE_URL)
    assert claims["scopes"] == ["issues.read"]
    assert claims["org_id"] == "org-1"
    assert claims["iss"] == "kiket.dev"


@pytest.mark.parametrize("payload", [{}, {"authentication": {}}, {"authentication": {"runtime_token": ""}}, []])
def test_missing_token(platform, payload) -> None:
    with pytest.raises(MissingTokenError, match="Missing runtime_token"):
        _verifier(platform).verify(payload, BASE_URL)
    assert platform.jwks_requests == 0


def test_expired_token(platform, keypair, make_payload) -> None:
    now = int(time.time())
    token = keypair.token(iat=now - 600, exp=now - 60)
    with pytest.raises(TokenExpiredError, match="expired"):
        _verifier(platform).verify(make_payload(token), BASE_URL)


def test_wrong_issuer(platform, keypair, make_payload) -> None:
    with pytest.raises(InvalidIssuerError):
        _verifier(platform).verify(make_payload(keypair.token(iss="evil.example")), BASE_URL)


def test_token_signed_by_other_key(platform, make_payload) -> None:
    other = KeyPair(kid="other")
    with pytest.raises(InvalidTokenError, match="Invalid token"):
        _verifier(platform).verify(make_payload(other.token()), BASE_URL)


def test_garbage_token(platform, make_payload) -> None:
    with pytest.raises(InvalidTokenError):
        _verifier(platform).verify(make_payload("not-a-jwt"), BASE_URL)


def test_no_matching_signing_key(platform, keypair, make_payload) -> None:
    platform.keys = [dict(keypair.jwk(), use="enc")]
    with pytest.raises(NoSigningKeyError):
        _verifier(platform).verify(make_payload(keypair.token()), BASE_URL)


def test_jwks_failure_surfaces_as_fetch_error(platform, keypair, make_payload) -> None:
    platform.jwks_status = 500
    with pytest.raises(FetchError):
        _verifier(platform).verify(make_payload(keypair.token()), BASE_URL)


def test_selects_first_es256_signature_key(keypair) -> None:
    rsa_like = {"kty": "RSA", "alg": "RS256", "use": "sig", "n": "x", "e": "AQAB"}
    key = select_signing_key([rsa_like, keypair.jwk()])
    assert key.to_dict()["x"] == keypair.jwk()["x"]


def test_repeated_verification_uses_cached_keys(platform, keypair, make_payload) -> None:
    verifier = _verifier(platform)
    for _ in range(3):
        verifier.verify(make_payload(keypair.token()), BASE_URL)
    assert platform.jwks_requests == 1


def test_token_issued_in_the_future(platform, keypair, make_payload) -> None:
    now = int(time.time())
    token = keypair.token(iat=now + 365 * 86400, exp=now + 366 * 86400)
    with pytest.raises(InvalidTokenError, match="issued in the future"):
        _verifier(platform).verify(make_payload(token), BASE_URL)


def test_issued_at_compared_against_clock(platform, keypair, make_payload) -> None:
    now = int(time.time())
    token = keypair.token(iat=now)
    verifier = TokenVerifier(KeySetCache(transport=platform.transport()), clock=lambda: now - 30)
    with pytest.raises(InvalidTokenError):
        verifier.verify(make_payload(token), BASE_URL)


def test_token_without_iat_is_accepted(platform, keypair, make_payload) -> None:
    claims = _verifier(platform).verify(make_payload(keypair.token(iat=None)), BASE_URL)
    assert "iat" not in claims
