from __future__ import annotations

import time
from typing import Any, Callable

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from jose import jwk, jwt

from kiket_sdk.tokens import ALGORITHM, ISSUER

BASE_URL = "https://kiket.test"


class KeyPair:
    def __init__(self, kid: str = "test-key") -> None:
        self.kid = kid
        self.private_key = ec.generate_private_key(ec.SECP256R1())
        self.private_pem = self.private_key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        ).decode("ascii")

    def jwk(self) -> dict[str, Any]:
        public_pem = self.private_key.public_key().public_bytes(
            serialization.Encoding.PEM,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode("ascii")
        data = jwk.construct(public_pem, ALGORITHM).to_dict()
        data.update({"alg": ALGORITHM, "use": "sig", "kid": self.kid})
        return data

    def token(self, **overrides: Any) -> str:
        now = int(time.time())
        claims: dict[str, Any] = {
            "iss": ISSUER,
            "iat": now,
            "exp": now + 300,
            "scopes": [],
            "org_id": "org-1",
            "ext_id": "ext-1",
            "proj_id": "proj-1",
        }
        claims.update(overrides)
        claims = {k: v for k, v in claims.items() if v is not None}
        return jwt.encode(claims, self.private_pem, algorithm=ALGORITHM, headers={"kid": self.kid})


class FakePlatform:
    """Serves the JWKS document and records every other outbound request."""

    def __init__(self, keypair: KeyPair) -> None:
        self.keys = [keypair.jwk()]
        self.jwks_status = 200
        self.jwks_requests = 0
        self.requests: list[httpx.Request] = []
        self.responses: dict[tuple[str, str], httpx.Response] = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/.well-known/jwks.json":
            self.jwks_requests += 1
            if self.jwks_status != 200:
                return httpx.Response(self.jwks_status, text="unavailable")
            return httpx.Response(200, json={"keys": self.keys})
        self.requests.append(request)
        canned = self.responses.get((request.method, request.url.path))
        if canned is not None:
            return canned
        return httpx.Response(200, json={"ok": True})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def keypair() -> KeyPair:
    return KeyPair()


@pytest.fixture
def platform(keypair: KeyPair) -> FakePlatform:
    return FakePlatform(keypair)


@pytest.fixture
def make_payload(keypair: KeyPair) -> Callable[..., dict[str, Any]]:
    def _make(token: str | None = None, **fields: Any) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "authentication": {"runtime_token": token if token is not None else keypair.token()},
            "secrets": {},
        }
        payload.update(fields)
        return payload

    return _make
