"""Conversation-keyed message store (core domain).

Records are kept per conversation key in arrival order, with a secondary
index by message id so upserts stay cheap on long conversations. All
mutation and snapshotting happens under one re-entrant lock, which makes a
migration atomic for any reader that goes through the store.
"""

from __future__ import annotations

import copy
import logging
import threading
from typing import Any, Iterable, Mapping, Optional

from core.identity_map import IdentityMap
from core.jids import is_lid
from core.messages import message_id

LOGGER = logging.getLogger(__name__)

MessageRecord = dict[str, Any]


class MessageStore:
    """In-memory store of message records keyed by conversation key."""

    def __init__(self, identity: IdentityMap) -> None:
        self._identity = identity
        self._conversations: dict[str, list[MessageRecord]] = {}
        self._index: dict[str, dict[str, int]] = {}
        self._lock = threading.RLock()

    def upsert(self, conversation_key: str, message: MessageRecord) -> bool:
        """Insert or overwrite a record; return True when it was new.

        LID keys that already resolve to a phone key are migrated first so
        the conversation never ends up split across both keys.
        """

        msg_id = message_id(message)
        if not conversation_key or msg_id is None:
            LOGGER.debug("Dropping message without key or id under %r", conversation_key)
            return False

        with self._lock:
            target = self._identity.resolve(conversation_key)
            if target != conversation_key and is_lid(conversation_key):
                self.migrate(conversation_key, target)
            return self._put(target, msg_id, message)

    def _put(self, key: str, msg_id: str, message: MessageRecord) -> bool:
        records = self._conversations.setdefault(key, [])
        index = self._index.setdefault(key, {})
        position = index.get(msg_id)
        if position is not None:
            records[position] = message
            return False
        index[msg_id] = len(records)
        records.append(message)
        return True

    def migrate(self, source_key: str, target_key: str) -> int:
        """Move records from source_key to target_key and drop source_key.

        Records whose id already exists at the target are skipped, so the
        call is idempotent. Returns the number of records moved.
        """

        if source_key == target_key:
            return 0
        with self._lock:
            records = self._conversations.pop(source_key, None)
            self._index.pop(source_key, None)
            if not records:
                return 0

            moved = 0
            for record in records:
                msg_id = message_id(record)
                if msg_id is None or msg_id in self._index.get(target_key, {}):
                    continue
                self._put(target_key, msg_id, record)
                moved += 1

        LOGGER.info(
            "Migrated %s of %s messages from %s to %s",
            moved,
            len(records),
            source_key,
            target_key,
        )
        return moved

    def migrate_resolved(self) -> int:
        """Migrate every LID conversation whose LID is now mapped."""

        total = 0
        with self._lock:
            for key in [key for key in self._conversations if is_lid(key)]:
                target = self._identity.resolve(key)
                if target != key:
                    total += self.migrate(key, target)
        if total:
            LOGGER.info("Total messages migrated: %s", total)
        return total

    def update_in_place(self, conversation_key: str, msg_id: str, patch: Mapping[str, Any]) -> bool:
        """Merge patch fields into an existing record.

        The raw key is tried first, then the resolved key. A miss (for
        example an update racing a migration) is a silent no-op.
        """

        with self._lock:
            for key in (conversation_key, self._identity.resolve(conversation_key)):
                position = self._index.get(key, {}).get(msg_id)
                if position is not None:
                    self._conversations[key][position].update(patch)
                    return True
        LOGGER.debug("Update for unknown message %s in %s dropped", msg_id, conversation_key)
        return False

    def get(self, conversation_key: str, msg_id: str) -> Optional[MessageRecord]:
        with self._lock:
            position = self._index.get(conversation_key, {}).get(msg_id)
            if position is None:
                return None
            return self._conversations[conversation_key][position]

    def messages_for(self, conversation_key: str) -> list[MessageRecord]:
        with self._lock:
            return list(self._conversations.get(conversation_key, ()))

    def has(self, conversation_key: str) -> bool:
        with self._lock:
            return bool(self._conversations.get(conversation_key))

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._conversations)

    def counts(self) -> tuple[int, int]:
        """Return (conversations, messages)."""

        with self._lock:
            return (
                len(self._conversations),
                sum(len(records) for records in self._conversations.values()),
            )

    def snapshot(self) -> dict[str, list[MessageRecord]]:
        """Return a deep copy that is safe to serialize off the event loop."""

        with self._lock:
            return copy.deepcopy(self._conversations)

    def load(self, data: Mapping[str, Iterable[MessageRecord]]) -> None:
        """Replace contents from a snapshot, keeping the last duplicate id."""

        with self._lock:
            self._conversations.clear()
            self._index.clear()
            for key, records in data.items():
                if not isinstance(records, list):
                    continue
                for record in records:
                    msg_id = message_id(record) if isinstance(record, dict) else None
                    if msg_id is None:
                        continue
                    self._put(key, msg_id, record)
