"""Accessors for gateway message records (core domain).

Records are WebMessageInfo-shaped dicts. Every accessor tolerates missing
or partial fields because history backfill routinely delivers stubs.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from core.jids import user_part
from core.models import FormattedMessage, QuotedInfo
from core.time_window import message_timestamp_ms

MEDIA_TYPES = {"image", "video", "audio", "document", "sticker"}

_CAPTIONED = ("imageMessage", "videoMessage", "documentMessage")
_CONTEXT_CARRIERS = (
    "extendedTextMessage",
    "imageMessage",
    "videoMessage",
    "audioMessage",
    "documentMessage",
    "stickerMessage",
)


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def message_key(record: Mapping[str, Any]) -> dict[str, Any]:
    return _as_dict(record.get("key"))


def message_id(record: Mapping[str, Any]) -> Optional[str]:
    value = message_key(record).get("id")
    if isinstance(value, str) and value:
        return value
    return None


def remote_key(record: Mapping[str, Any]) -> Optional[str]:
    value = message_key(record).get("remoteJid")
    if isinstance(value, str) and value:
        return value
    return None


def is_from_me(record: Mapping[str, Any]) -> bool:
    return message_key(record).get("fromMe") is True


def sender_key(record: Mapping[str, Any]) -> str:
    key = message_key(record)
    return key.get("participant") or key.get("remoteJid") or "unknown"


def sender_name(record: Mapping[str, Any]) -> str:
    push_name = record.get("pushName")
    if isinstance(push_name, str) and push_name:
        return push_name
    return user_part(sender_key(record))


def has_payload(record: Mapping[str, Any]) -> bool:
    return bool(record.get("message"))


def plain_text(record: Mapping[str, Any]) -> str:
    """Return only typed text (no captions), as used for auto-replies."""

    payload = _as_dict(record.get("message"))
    text = payload.get("conversation") or _as_dict(payload.get("extendedTextMessage")).get("text")
    return text if isinstance(text, str) else ""


def message_content(record: Mapping[str, Any]) -> Optional[str]:
    """Return text or media caption, whichever the payload carries."""

    payload = _as_dict(record.get("message"))
    if not payload:
        return None
    text = plain_text(record)
    if text:
        return text
    for field in _CAPTIONED:
        caption = _as_dict(payload.get(field)).get("caption")
        if caption:
            return caption
    return None


def message_type(record: Mapping[str, Any]) -> str:
    payload = _as_dict(record.get("message"))
    if not payload:
        return "unknown"
    if payload.get("conversation") or "extendedTextMessage" in payload:
        return "text"
    for field, kind in (
        ("imageMessage", "image"),
        ("videoMessage", "video"),
        ("audioMessage", "audio"),
        ("documentMessage", "document"),
        ("stickerMessage", "sticker"),
    ):
        if field in payload:
            return kind
    if "contactMessage" in payload or "contactsArrayMessage" in payload:
        return "contact"
    if "locationMessage" in payload or "liveLocationMessage" in payload:
        return "location"
    if "reactionMessage" in payload:
        return "reaction"
    if "pollCreationMessage" in payload or "pollCreationMessageV3" in payload:
        return "poll"
    return "other"


def quoted_info(record: Mapping[str, Any]) -> Optional[QuotedInfo]:
    payload = _as_dict(record.get("message"))
    context: dict[str, Any] = {}
    for field in _CONTEXT_CARRIERS:
        context = _as_dict(_as_dict(payload.get(field)).get("contextInfo"))
        if context:
            break

    quoted = _as_dict(context.get("quotedMessage"))
    stanza_id = context.get("stanzaId")
    if not quoted or not stanza_id:
        return None

    content: Optional[str] = None
    kind = "unknown"
    if quoted.get("conversation"):
        content, kind = quoted["conversation"], "text"
    elif _as_dict(quoted.get("extendedTextMessage")).get("text"):
        content, kind = quoted["extendedTextMessage"]["text"], "text"
    else:
        for field, name in (
            ("imageMessage", "image"),
            ("videoMessage", "video"),
            ("audioMessage", "audio"),
            ("documentMessage", "document"),
            ("stickerMessage", "sticker"),
        ):
            if field in quoted:
                kind = name
                content = _as_dict(quoted[field]).get("caption") or None
                break

    return QuotedInfo(
        id=stanza_id,
        sender_key=context.get("participant") or "unknown",
        content=content,
        type=kind,
    )


def format_message(record: Mapping[str, Any]) -> FormattedMessage:
    ts = message_timestamp_ms(record)
    return FormattedMessage(
        id=message_id(record) or "",
        sender_key=sender_key(record),
        sender_name=sender_name(record),
        from_me=is_from_me(record),
        content=message_content(record),
        type=message_type(record),
        timestamp=datetime.fromtimestamp(ts / 1000, tz=timezone.utc).isoformat(),
        timestamp_ms=ts,
        quoted=quoted_info(record),
    )
