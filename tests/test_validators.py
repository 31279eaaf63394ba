from __future__ import annotations

from frontend.validators import parse_conversation_key, parse_group_key


def test_phone_numbers_are_normalized() -> None:
    info = parse_conversation_key("+972 50-000-0001")
    assert info.kind == "phone"
    assert info.normalized == "972500000001@s.whatsapp.net"


def test_lid_and_group_keys_pass_through() -> None:
    assert parse_conversation_key("123456789@lid").kind == "lid"
    assert parse_conversation_key("120363000000000000@g.us").normalized == "120363000000000000@g.us"


def test_invalid_keys() -> None:
    assert parse_conversation_key("").error == "key is required"
    assert parse_conversation_key("someone@example.com").kind == "invalid"
    assert parse_conversation_key("12345").kind == "invalid"
    assert parse_conversation_key("abc@g.us").error == "group id must be numeric"


def test_group_allow_list_accepts_only_groups() -> None:
    assert parse_group_key("120363000000000000@g.us").error is None
    assert parse_group_key("972500000001").error == "only group keys (@g.us) can be allowed"
