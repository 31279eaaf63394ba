from __future__ import annotations

from adapters.evolution_mapper import lookup_from_payload, map_webhook, normalize_event_name
from core.events import (
    ConnectionChanged,
    ContactsSynced,
    HistoryBatchArrived,
    MessagesArrived,
    MessageStatusUpdated,
    PhoneShared,
)

LID = "123456789@lid"
PHONE = "972500000001@s.whatsapp.net"


def _message(msg_id: str = "A") -> dict:
    return {"key": {"id": msg_id, "remoteJid": PHONE, "fromMe": False}, "message": {"conversation": "hi"}}


def test_event_names_are_normalized() -> None:
    assert normalize_event_name("MESSAGES_UPSERT") == "messages.upsert"
    assert normalize_event_name("messaging-history.set") == "messaging.history.set"
    assert normalize_event_name(None) == ""


def test_live_upsert_from_bare_record() -> None:
    [event] = map_webhook({"event": "messages.upsert", "instance": "main", "data": _message()})
    assert isinstance(event, MessagesArrived)
    assert not event.historical
    assert event.messages[0]["key"]["id"] == "A"


def test_upsert_with_append_type_is_historical() -> None:
    [event] = map_webhook({"event": "MESSAGES_UPSERT", "data": {"messages": [_message()], "type": "append"}})
    assert event.historical


def test_message_update_shapes() -> None:
    events = map_webhook(
        {
            "event": "messages.update",
            "data": [
                {"key": {"id": "A", "remoteJid": PHONE}, "update": {"status": 4}},
                {"keyId": "B", "remoteJid": PHONE, "fromMe": False, "status": "READ"},
            ],
        }
    )
    assert all(isinstance(event, MessageStatusUpdated) for event in events)
    assert (events[0].message_id, events[0].patch) == ("A", {"status": 4})
    assert (events[1].conversation_key, events[1].message_id, events[1].patch) == (PHONE, "B", {"status": "READ"})


def test_contacts_carry_evidence() -> None:
    [event] = map_webhook(
        {"event": "contacts.update", "data": [{"id": PHONE, "lid": LID, "pushName": "Dana"}]}
    )
    assert isinstance(event, ContactsSynced)
    assert event.update
    assert event.contacts[0].notify == "Dana"
    assert [(item.lid, item.phone) for item in event.evidence] == [(LID, PHONE)]


def test_history_set_emits_contacts_then_batch() -> None:
    events = map_webhook(
        {
            "event": "messaging-history.set",
            "data": {
                "contacts": [{"id": PHONE, "name": "Dana"}],
                "chats": [{"id": PHONE, "lid": LID, "conversationTitle": "Dana"}],
                "messages": [_message("A"), _message("B")],
                "syncType": 2,
                "progress": 40,
                "isLatest": False,
            },
        }
    )
    assert [type(event) for event in events] == [ContactsSynced, HistoryBatchArrived]
    batch = events[1]
    assert len(batch.messages) == 2
    assert batch.chats[0].conversation_title == "Dana"
    assert batch.evidence[0].lid == LID
    assert (batch.sync_type, batch.progress, batch.is_latest) == ("2", 40, False)


def test_phone_share_and_connection() -> None:
    [share] = map_webhook({"event": "chats.phoneNumberShare", "data": {"lid": LID, "jid": PHONE}})
    assert share == PhoneShared(lid=LID, phone=PHONE)

    [state] = map_webhook({"event": "CONNECTION_UPDATE", "data": {"state": "open"}})
    assert state == ConnectionChanged(state="open")


def test_unknown_events_are_ignored() -> None:
    assert map_webhook({"event": "presence.update", "data": {}}) == []
    assert map_webhook({"data": {}}) == []
    assert map_webhook({"event": "messages.upsert", "data": "garbage"}) == []


def test_lookup_results_get_suffixes() -> None:
    results = lookup_from_payload(
        [
            {"exists": True, "jid": PHONE, "lid": "123456789"},
            {"exists": True, "number": "972500000002", "lid": {"id": "555@lid"}},
            {"exists": False},
            "noise",
        ],
        requested=[PHONE, "972500000002@s.whatsapp.net", "972500000003@s.whatsapp.net"],
    )
    assert [(item.phone, item.exists, item.lid) for item in results] == [
        (PHONE, True, LID),
        ("972500000002@s.whatsapp.net", True, "555@lid"),
        ("972500000003@s.whatsapp.net", False, None),
    ]
