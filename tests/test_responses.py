from __future__ import annotations

from kiket_sdk import allow, deny, pending


def test_allow_with_output_fields() -> None:
    response = allow(
        message="Successfully configured",
        data={"route_id": 123},
        output_fields={"inbound_email": "abc@parse.example.com"},
    )
    assert response == {
        "status": "allow",
        "message": "Successfully configured",
        "metadata": {"route_id": 123, "output_fields": {"inbound_email": "abc@parse.example.com"}},
    }


def test_allow_without_message_omits_it() -> None:
    assert allow() == {"status": "allow", "metadata": {}}


def test_deny_and_pending() -> None:
    assert deny("Not permitted") == {"status": "deny", "message": "Not permitted", "metadata": {}}
    assert pending("Working", data={"job": "j-1"}) == {
        "status": "pending",
        "message": "Working",
        "metadata": {"job": "j-1"},
    }
