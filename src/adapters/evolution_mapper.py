"""Gateway-to-core event mapping adapter.

Webhook payloads are `{event, instance, data}` objects. This module turns
them into typed core events so no payload shape sniffing leaks into the
reconciliation engine.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from core.events import (
    ConnectionChanged,
    GatewayEvent,
    MessagesArrived,
    MessageStatusUpdated,
    PhoneShared,
    contacts_event,
    history_event,
)
from core.jids import LID_SUFFIX, PHONE_SUFFIX, with_suffix
from core.models import ChatMetadata, ContactRecord, LookupResult

LOGGER = logging.getLogger(__name__)


def normalize_event_name(name: Any) -> str:
    """Fold "MESSAGES_UPSERT", "messages.upsert" and "messaging-history.set" alike."""

    if not isinstance(name, str):
        return ""
    return name.strip().lower().replace("_", ".").replace("-", ".")


def _str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def _items(value: Any) -> list[dict[str, Any]]:
    if isinstance(value, dict):
        return [value]
    if isinstance(value, list):
        return [item for item in value if isinstance(item, dict)]
    return []


def contact_from_payload(raw: dict[str, Any]) -> ContactRecord:
    return ContactRecord(
        id=_str(raw.get("id")) or _str(raw.get("remoteJid")),
        lid=_str(raw.get("lid")),
        jid=_str(raw.get("jid")) or _str(raw.get("phoneNumber")),
        name=_str(raw.get("name")),
        verified_name=_str(raw.get("verifiedName")),
        notify=_str(raw.get("notify")) or _str(raw.get("pushName")),
    )


def chat_from_payload(raw: dict[str, Any]) -> ChatMetadata:
    return ChatMetadata(
        id=_str(raw.get("id")),
        lid=_str(raw.get("lid")),
        name=_str(raw.get("name")),
        notify=_str(raw.get("notify")),
        conversation_title=_str(raw.get("conversationTitle")),
    )


def _messages_event(data: Any) -> list[GatewayEvent]:
    # Baileys-style {messages, type} or a bare record / list of records.
    if isinstance(data, dict) and isinstance(data.get("messages"), list):
        records = _items(data["messages"])
        historical = data.get("type", "notify") != "notify"
    else:
        records = _items(data)
        historical = False
    if not records:
        return []
    return [MessagesArrived(messages=tuple(records), historical=historical)]


def _update_events(data: Any) -> list[GatewayEvent]:
    events: list[GatewayEvent] = []
    for item in _items(data):
        key = item.get("key") if isinstance(item.get("key"), dict) else {}
        if isinstance(item.get("update"), dict):
            patch = dict(item["update"])
        else:
            patch = {
                field: value
                for field, value in item.items()
                if field not in ("key", "keyId", "id", "remoteJid", "fromMe", "participant", "instanceId")
            }
        events.append(
            MessageStatusUpdated(
                conversation_key=_str(key.get("remoteJid")) or _str(item.get("remoteJid")),
                message_id=_str(key.get("id")) or _str(item.get("keyId")) or _str(item.get("id")),
                patch=patch,
            )
        )
    return events


def _history_events(data: Any) -> list[GatewayEvent]:
    if not isinstance(data, dict):
        return []
    events: list[GatewayEvent] = []
    contacts = _items(data.get("contacts"))
    if contacts:
        events.append(contacts_event(contact_from_payload(item) for item in contacts))
    events.append(
        history_event(
            messages=_items(data.get("messages")),
            chats=[chat_from_payload(item) for item in _items(data.get("chats"))],
            sync_type=str(data["syncType"]) if data.get("syncType") is not None else None,
            progress=data.get("progress") if isinstance(data.get("progress"), int) else None,
            is_latest=data.get("isLatest") if isinstance(data.get("isLatest"), bool) else None,
        )
    )
    return events


def _phone_share_events(data: Any) -> list[GatewayEvent]:
    events: list[GatewayEvent] = []
    for item in _items(data):
        events.append(PhoneShared(lid=_str(item.get("lid")), phone=_str(item.get("jid")) or _str(item.get("phoneNumber"))))
    return events


def _connection_events(data: Any) -> list[GatewayEvent]:
    if not isinstance(data, dict):
        return []
    state = _str(data.get("state")) or _str(data.get("connection"))
    if state is None:
        return []
    return [ConnectionChanged(state=state)]


_HANDLERS = {
    "contacts.upsert": lambda data: [contacts_event(contact_from_payload(item) for item in _items(data))],
    "contacts.set": lambda data: [contacts_event(contact_from_payload(item) for item in _items(data))],
    "contacts.update": lambda data: [
        contacts_event((contact_from_payload(item) for item in _items(data)), update=True)
    ],
    "messages.upsert": _messages_event,
    "messages.set": lambda data: [MessagesArrived(messages=tuple(_items(data)), historical=True)] if _items(data) else [],
    "messages.update": _update_events,
    "messaging.history.set": _history_events,
    "chats.phonenumbershare": _phone_share_events,
    "phone.number.share": _phone_share_events,
    "connection.update": _connection_events,
}


def map_webhook(payload: dict[str, Any]) -> list[GatewayEvent]:
    """Map one webhook payload to zero or more core events."""

    name = normalize_event_name(payload.get("event"))
    handler = _HANDLERS.get(name)
    if handler is None:
        LOGGER.debug("Ignoring gateway event %r", payload.get("event"))
        return []
    return handler(payload.get("data"))


def lookup_from_payload(items: Iterable[Any], requested: Iterable[str] = ()) -> list[LookupResult]:
    """Map existence/identity lookup results, appending missing suffixes.

    The gateway answers with `[{exists, jid, number, lid}]` where lid may be a
    bare identifier, a full LID key or an `{id}` object.
    """

    requested = list(requested)
    results: list[LookupResult] = []
    for position, item in enumerate(items):
        if not isinstance(item, dict):
            continue
        phone = _str(item.get("jid")) or _str(item.get("number"))
        if phone is None and position < len(requested):
            phone = requested[position]
        if phone is None:
            continue

        raw_lid = item.get("lid")
        if isinstance(raw_lid, dict):
            raw_lid = raw_lid.get("id")
        lid = with_suffix(raw_lid, LID_SUFFIX) if isinstance(raw_lid, str) and raw_lid else None

        results.append(
            LookupResult(
                phone=with_suffix(phone, PHONE_SUFFIX),
                exists=bool(item.get("exists", False)),
                lid=lid,
            )
        )
    return results
