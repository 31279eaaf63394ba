"""Validation helpers for config editing."""

from __future__ import annotations

from dataclasses import dataclass

from core.jids import GROUP_SUFFIX, is_group, is_lid, is_phone, normalize_phone_to_jid


@dataclass
class ConversationKeyInfo:
    normalized: str | None
    kind: str
    error: str | None = None


def parse_conversation_key(raw_value: str) -> ConversationKeyInfo:
    raw_value = raw_value.strip()
    if not raw_value:
        return ConversationKeyInfo(None, "invalid", "key is required")

    if is_group(raw_value):
        if not raw_value[: -len(GROUP_SUFFIX)].replace("-", "").isdigit():
            return ConversationKeyInfo(None, "invalid", "group id must be numeric")
        return ConversationKeyInfo(raw_value, "group")

    if is_lid(raw_value):
        return ConversationKeyInfo(raw_value, "lid")

    if "@" in raw_value and not is_phone(raw_value):
        return ConversationKeyInfo(None, "invalid", "key must end in @s.whatsapp.net, @lid or @g.us")

    try:
        return ConversationKeyInfo(normalize_phone_to_jid(raw_value), "phone")
    except ValueError as exc:
        return ConversationKeyInfo(None, "invalid", str(exc))


def parse_group_key(raw_value: str) -> ConversationKeyInfo:
    info = parse_conversation_key(raw_value)
    if info.error is None and info.kind != "group":
        return ConversationKeyInfo(None, "invalid", "only group keys (@g.us) can be allowed")
    return info
