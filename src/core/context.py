"""Process-wide bridge state.

BridgeContext owns the identity map, the message store and the contact
name book. It is created once at startup, restored from snapshots and
flushed periodically and at shutdown.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from core.contact_names import ContactNameBook
from core.identity_map import IdentityMap
from core.message_store import MessageStore
from core.ports import SnapshotPort

LOGGER = logging.getLogger(__name__)

IDENTITY_BLOB = "lid-map"
STORE_BLOB = "message-store"
NAMES_BLOB = "contact-names"


@dataclass
class BridgeContext:
    identity: IdentityMap = field(default_factory=IdentityMap)
    store: MessageStore = None  # type: ignore[assignment]
    names: ContactNameBook = field(default_factory=ContactNameBook)

    def __post_init__(self) -> None:
        if self.store is None:
            self.store = MessageStore(self.identity)

    def snapshot(self) -> dict[str, Any]:
        """Copy all three blobs; the result can be written off-loop."""

        return {
            IDENTITY_BLOB: self.identity.as_dict(),
            STORE_BLOB: self.store.snapshot(),
            NAMES_BLOB: self.names.as_dict(),
        }

    def restore(self, snapshots: SnapshotPort) -> None:
        """Load every blob that exists; a missing blob leaves that part empty."""

        identity = snapshots.load(IDENTITY_BLOB)
        if isinstance(identity, dict):
            LOGGER.info("LID map restored: %s mappings", self.identity.load(identity))

        store = snapshots.load(STORE_BLOB)
        if isinstance(store, dict):
            self.store.load(store)
            conversations, messages = self.store.counts()
            LOGGER.info("Store restored: %s chats, %s messages", conversations, messages)

        names = snapshots.load(NAMES_BLOB)
        if isinstance(names, dict):
            LOGGER.info("Contact names restored: %s contacts", self.names.load(names))

        migrated = self.store.migrate_resolved()
        if migrated:
            LOGGER.info("Migrated %s messages left under resolved LIDs", migrated)
        named = self.names.backfill_from_store(self.store)
        if named:
            LOGGER.info("Bootstrapped %s contact names from message store", named)


def write_snapshot(snapshots: SnapshotPort, payload: dict[str, Any]) -> int:
    """Persist each blob independently; return how many were written.

    A failed blob is logged and skipped so the next flush retries it.
    """

    written = 0
    for name, data in payload.items():
        try:
            snapshots.save(name, data)
        except OSError:
            LOGGER.exception("Failed to flush %s", name)
            continue
        written += 1
    return written
