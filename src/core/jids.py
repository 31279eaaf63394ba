"""Helpers for working with WhatsApp conversation keys (JIDs)."""

from __future__ import annotations

import re
from typing import Optional

PHONE_SUFFIX = "@s.whatsapp.net"
LID_SUFFIX = "@lid"
GROUP_SUFFIX = "@g.us"
STATUS_BROADCAST = "status@broadcast"

_NON_DIGITS = re.compile(r"\D")


def is_phone(key: Optional[str]) -> bool:
    return bool(key) and key.endswith(PHONE_SUFFIX)


def is_lid(key: Optional[str]) -> bool:
    return bool(key) and key.endswith(LID_SUFFIX)


def is_group(key: Optional[str]) -> bool:
    return bool(key) and key.endswith(GROUP_SUFFIX)


def is_personal(key: Optional[str]) -> bool:
    """Return True for one-to-one chats (phone or LID keys)."""

    return is_phone(key) or is_lid(key)


def is_broadcast(key: Optional[str]) -> bool:
    return key == STATUS_BROADCAST


def user_part(key: str) -> str:
    """Return the part before the server suffix, e.g. the phone digits."""

    return key.split("@", 1)[0]


def with_suffix(value: str, suffix: str) -> str:
    """Append a server suffix when the gateway returned a bare identifier."""

    if "@" in value:
        return value
    return f"{value}{suffix}"


def normalize_phone_to_jid(raw: str) -> str:
    """Normalize a phone number or JID to a canonical phone JID.

    Accepts "972548841488@s.whatsapp.net", "+972548841488" or
    "054-884-1488" style input. Raises ValueError when fewer than seven
    digits remain.
    """

    if raw.endswith(PHONE_SUFFIX):
        return raw

    digits = _NON_DIGITS.sub("", raw)
    if len(digits) < 7:
        raise ValueError(
            f"Invalid phone number: {raw!r}. Provide a full international number "
            f"like 972548841488 or a JID like 972548841488{PHONE_SUFFIX}"
        )
    return f"{digits}{PHONE_SUFFIX}"
