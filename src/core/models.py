"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to the gateway's payload shapes. Message records themselves stay
plain JSON dicts in the gateway's WebMessageInfo shape so they can be
persisted and re-served untouched.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ContactRecord:
    """A contact as delivered by contact sync or contact update events."""

    id: Optional[str]
    lid: Optional[str] = None
    jid: Optional[str] = None
    name: Optional[str] = None
    verified_name: Optional[str] = None
    notify: Optional[str] = None


@dataclass(frozen=True)
class ChatMetadata:
    """Chat-level metadata carried by history backfill batches."""

    id: Optional[str]
    lid: Optional[str] = None
    name: Optional[str] = None
    notify: Optional[str] = None
    conversation_title: Optional[str] = None


@dataclass(frozen=True)
class LookupResult:
    """One answer of the gateway's combined existence/identity lookup."""

    phone: str
    exists: bool
    lid: Optional[str] = None


@dataclass(frozen=True)
class QuotedInfo:
    id: str
    sender_key: str
    content: Optional[str]
    type: str


@dataclass(frozen=True)
class FormattedMessage:
    """Read model returned by conversation queries."""

    id: str
    sender_key: str
    sender_name: str
    from_me: bool
    content: Optional[str]
    type: str
    timestamp: str
    timestamp_ms: int
    quoted: Optional[QuotedInfo] = None


@dataclass(frozen=True)
class SearchHit:
    conversation_key: str
    message: FormattedMessage


class AutoReplyOverride(enum.Enum):
    """Per-contact auto-reply override; UNSET defers to global config."""

    ON = "on"
    OFF = "off"
    UNSET = "unset"

    @classmethod
    def parse(cls, value: Optional[str]) -> "AutoReplyOverride":
        if value in ("on", "off"):
            return cls(value)
        return cls.UNSET


@dataclass(frozen=True)
class ResponderRequest:
    key: str
    instruction: str
    observed_text: str


@dataclass(frozen=True)
class ResponderResult:
    ok: bool
    text: Optional[str] = None
    error: Optional[str] = None
    source: str = "primary"


@dataclass(frozen=True)
class Contributor:
    sender_key: str
    sender_name: str
    count: int


@dataclass(frozen=True)
class ChatStats:
    """Activity summary for one conversation over a time window."""

    conversation_key: str
    display_name: str
    since: str
    total_messages: int
    unique_senders: int
    top_contributors: tuple[Contributor, ...]
    message_types: dict[str, int]
    hourly_activity: dict[int, int]
    daily_activity: dict[str, int]
