from __future__ import annotations

from core.contact_names import ContactNameBook, NameSource
from core.identity_map import IdentityMap
from core.message_store import MessageStore

PHONE = "972500000001@s.whatsapp.net"


def test_lower_ranked_name_does_not_overwrite() -> None:
    names = ContactNameBook()
    assert names.record(PHONE, "Dana Cohen", NameSource.EXPLICIT)
    assert not names.record(PHONE, "dana", NameSource.PUSH)
    assert not names.record(PHONE, "Dana Ltd", NameSource.VERIFIED)
    assert names.get(PHONE).name == "Dana Cohen"


def test_equal_or_higher_rank_overwrites() -> None:
    names = ContactNameBook()
    names.record(PHONE, "dana", NameSource.PUSH)
    assert names.record(PHONE, "Family chat", NameSource.CHAT)
    assert names.get(PHONE).source is NameSource.CHAT
    assert names.record(PHONE, "Dana Ltd", NameSource.VERIFIED)
    assert names.get(PHONE).name == "Dana Ltd"


def test_empty_values_are_ignored() -> None:
    names = ContactNameBook()
    assert not names.record(PHONE, "", NameSource.EXPLICIT)
    assert not names.record(None, "Dana", NameSource.EXPLICIT)
    assert len(names) == 0


def test_record_both_writes_raw_and_resolved() -> None:
    names = ContactNameBook()
    names.record_both("123@lid", PHONE, "Dana", NameSource.PUSH)
    assert names.get("123@lid").name == "Dana"
    assert names.get(PHONE).name == "Dana"


def test_load_maps_legacy_phone_source_to_explicit() -> None:
    names = ContactNameBook()
    loaded = names.load(
        {
            PHONE: {"name": "Dana", "source": "phone", "updatedAt": "2024-01-01T00:00:00+00:00"},
            "empty@s.whatsapp.net": {"name": ""},
        }
    )
    assert loaded == 1
    assert names.get(PHONE).source is NameSource.EXPLICIT
    assert names.as_dict()[PHONE]["source"] == "explicit"


def test_backfill_uses_latest_inbound_push_name() -> None:
    store = MessageStore(IdentityMap())
    store.upsert(PHONE, {"key": {"id": "A", "remoteJid": PHONE}, "pushName": "Old", "messageTimestamp": 100})
    store.upsert(PHONE, {"key": {"id": "B", "remoteJid": PHONE}, "pushName": "New", "messageTimestamp": 200})
    store.upsert(
        PHONE,
        {"key": {"id": "C", "remoteJid": PHONE, "fromMe": True}, "pushName": "Me", "messageTimestamp": 300},
    )
    store.upsert("120363000000000000@g.us", {"key": {"id": "D"}, "pushName": "Group", "messageTimestamp": 1})

    names = ContactNameBook()
    assert names.backfill_from_store(store) == 1
    assert names.get(PHONE).name == "New"
    assert names.get("120363000000000000@g.us") is None
