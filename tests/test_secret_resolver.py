from __future__ import annotations

from kiket_sdk.secret_resolver import SecretResolver


def test_payload_secret_wins_over_environment() -> None:
    resolver = SecretResolver({"SHARED_KEY": "from-payload"}, environ={"SHARED_KEY": "from-env"})
    assert resolver.resolve("SHARED_KEY") == "from-payload"


def test_falls_back_to_environment(monkeypatch) -> None:
    monkeypatch.setenv("ENV_ONLY_SECRET", "from-env")
    resolver = SecretResolver({})
    assert resolver.resolve("ENV_ONLY_SECRET") == "from-env"


def test_missing_everywhere_is_none(monkeypatch) -> None:
    monkeypatch.delenv("NONEXISTENT_SECRET", raising=False)
    assert SecretResolver({"OTHER": "x"}).resolve("NONEXISTENT_SECRET") is None


def test_non_string_keys_fall_back_to_string_form() -> None:
    resolver = SecretResolver({"42": "answer", 7: "seven"}, environ={})
    assert resolver.resolve(42) == "answer"
    assert resolver.resolve(7) == "seven"


def test_invalid_payload_secrets_are_ignored() -> None:
    resolver = SecretResolver(["not", "a", "mapping"], environ={"KEY": "env"})
    assert resolver("KEY") == "env"


def test_unhashable_key_does_not_raise() -> None:
    assert SecretResolver({}, environ={}).resolve(["KEY"]) is None
