"""Display names with provenance (core domain)."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from core.jids import is_phone
from core.message_store import MessageStore
from core.messages import is_from_me
from core.time_window import message_timestamp_ms


class NameSource(enum.Enum):
    """Where a display name was observed, mapped to a trust rank."""

    EXPLICIT = "explicit"
    VERIFIED = "verified"
    PUSH = "push"
    CHAT = "chat"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    @classmethod
    def parse(cls, value: Optional[str]) -> "NameSource":
        if value == "phone":
            # Older snapshots called user/address-book names "phone".
            return cls.EXPLICIT
        try:
            return cls(value)
        except ValueError:
            return cls.PUSH


_RANKS = {
    NameSource.EXPLICIT: 3,
    NameSource.VERIFIED: 2,
    NameSource.PUSH: 1,
    NameSource.CHAT: 1,
}


@dataclass(frozen=True)
class ContactName:
    name: str
    source: NameSource
    updated_at: str


class ContactNameBook:
    """Conversation key -> best known display name."""

    def __init__(self) -> None:
        self._names: dict[str, ContactName] = {}

    def __len__(self) -> int:
        return len(self._names)

    def get(self, key: str) -> Optional[ContactName]:
        return self._names.get(key)

    def record(self, key: Optional[str], name: Optional[str], source: NameSource) -> bool:
        """Store a name unless a higher-ranked name already exists."""

        if not key or not name:
            return False
        existing = self._names.get(key)
        if existing is not None and existing.source.rank > source.rank:
            return False
        self._names[key] = ContactName(
            name=name,
            source=source,
            updated_at=datetime.now(timezone.utc).isoformat(),
        )
        return True

    def record_both(self, raw_key: Optional[str], resolved_key: Optional[str], name: Optional[str], source: NameSource) -> None:
        """Record under the raw key and, when different, the resolved key."""

        self.record(raw_key, name, source)
        if resolved_key and resolved_key != raw_key:
            self.record(resolved_key, name, source)

    def backfill_from_store(self, store: MessageStore) -> int:
        """Name unnamed phone conversations from their latest inbound push name."""

        count = 0
        for key in store.keys():
            if not is_phone(key) or key in self._names:
                continue
            best_name: Optional[str] = None
            best_ts = 0
            for record in store.messages_for(key):
                push_name = record.get("pushName")
                if is_from_me(record) or not push_name:
                    continue
                ts = message_timestamp_ms(record)
                if ts > best_ts:
                    best_ts = ts
                    best_name = push_name
            if best_name and self.record(key, best_name, NameSource.PUSH):
                count += 1
        return count

    def as_dict(self) -> dict[str, dict[str, str]]:
        return {
            key: {"name": entry.name, "source": entry.source.value, "updatedAt": entry.updated_at}
            for key, entry in self._names.items()
        }

    def load(self, data: Mapping[str, Mapping[str, Any]]) -> int:
        self._names.clear()
        for key, entry in data.items():
            if not isinstance(entry, Mapping) or not entry.get("name"):
                continue
            self._names[key] = ContactName(
                name=str(entry["name"]),
                source=NameSource.parse(entry.get("source")),
                updated_at=str(entry.get("updatedAt") or ""),
            )
        return len(self._names)
