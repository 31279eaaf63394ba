"""Identity reconciliation engine.

This module is integration-agnostic. It consumes typed gateway events,
feeds identity evidence into the IdentityMap, keeps the MessageStore keyed
by the canonical conversation key and records display names. The only
network round-trip it makes is the bulk identity lookup, which always runs
as a background task.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from typing import Any, Callable, Iterable, Optional

from core.contact_names import NameSource
from core.context import BridgeContext
from core.events import (
    ConnectionChanged,
    ContactsSynced,
    GatewayEvent,
    HistoryBatchArrived,
    MessagesArrived,
    MessageStatusUpdated,
    PhoneShared,
)
from core.evidence import IdentityEvidence, from_lookup, from_phone_share
from core.identity_map import RegistrationOutcome
from core.jids import is_personal, is_phone
from core.messages import is_from_me, message_id, remote_key
from core.ports import TransportError, TransportPort
from core.tasks import BackgroundTasks

LOGGER = logging.getLogger(__name__)

InboundHook = Callable[[dict[str, Any]], None]


class ReconciliationEngine:
    """Applies gateway events to the bridge context."""

    def __init__(
        self,
        context: BridgeContext,
        on_inbound: Optional[InboundHook] = None,
        transport: Optional[TransportPort] = None,
        tasks: Optional[BackgroundTasks] = None,
        bootstrap_delay: float = 10.0,
    ) -> None:
        self._context = context
        self.on_inbound = on_inbound
        self._transport = transport
        self._tasks = tasks or BackgroundTasks()
        self._bootstrap_delay = bootstrap_delay
        self.connection_state = "close"

    @property
    def tasks(self) -> BackgroundTasks:
        return self._tasks

    async def handle(self, event: GatewayEvent) -> None:
        """Apply one event; bad input is logged and never raised."""

        if isinstance(event, MessagesArrived):
            self.on_messages(event)
        elif isinstance(event, MessageStatusUpdated):
            self.on_message_update(event)
        elif isinstance(event, HistoryBatchArrived):
            self.on_history_batch(event)
        elif isinstance(event, ContactsSynced):
            self.on_contacts(event)
        elif isinstance(event, PhoneShared):
            self.on_phone_shared(event)
        elif isinstance(event, ConnectionChanged):
            self.on_connection(event)
        else:
            LOGGER.warning("Ignoring unknown event type %s", type(event).__name__)

    def register(self, evidence: IdentityEvidence) -> RegistrationOutcome:
        """Register one pair and migrate the LID conversation when accepted."""

        outcome = self._context.identity.register(evidence.lid, evidence.phone)
        if outcome in (RegistrationOutcome.NEW, RegistrationOutcome.REMAPPED):
            LOGGER.debug("Mapping from %s: %s -> %s", evidence.source.value, evidence.lid, evidence.phone)
        if outcome.accepted:
            self._context.store.migrate(evidence.lid, evidence.phone)
        return outcome

    def register_all(self, evidence: Iterable[IdentityEvidence]) -> int:
        return sum(1 for item in evidence if self.register(item).accepted)

    def on_messages(self, event: MessagesArrived) -> None:
        for record in event.messages:
            key = remote_key(record)
            if key is None or message_id(record) is None:
                LOGGER.debug("Skipping message without remoteJid or id")
                continue
            self._context.store.upsert(key, record)
            self._record_push_name(record)
            if not event.historical and self.on_inbound is not None:
                self.on_inbound(record)

    def on_message_update(self, event: MessageStatusUpdated) -> None:
        if not event.conversation_key or not event.message_id or not event.patch:
            LOGGER.debug("Skipping incomplete message update")
            return
        self._context.store.update_in_place(event.conversation_key, event.message_id, event.patch)

    def on_history_batch(self, event: HistoryBatchArrived) -> None:
        # Chat metadata first so messages later in the batch land under the phone key.
        learned = self.register_all(event.evidence)

        added = 0
        overwritten = 0
        per_key: Counter[str] = Counter()
        for record in event.messages:
            key = remote_key(record)
            if key is None or message_id(record) is None:
                continue
            resolved = self._context.identity.resolve(key)
            if is_personal(key):
                self._record_push_name(record)
            if self._context.store.upsert(key, record):
                added += 1
            else:
                overwritten += 1
            per_key[resolved] += 1

        names = self._context.names
        for chat in event.chats:
            if not chat.id:
                continue
            resolved = self._context.identity.resolve(chat.id)
            if chat.name:
                names.record_both(chat.id, resolved, chat.name, NameSource.EXPLICIT)
            elif chat.conversation_title:
                names.record_both(chat.id, resolved, chat.conversation_title, NameSource.CHAT)
            elif chat.notify:
                names.record_both(chat.id, resolved, chat.notify, NameSource.PUSH)

        LOGGER.info(
            "History sync (%s): %s new, %s updated, %s chats, %s mappings learned",
            event.sync_type or "unknown",
            added,
            overwritten,
            len(event.chats),
            learned,
        )
        for key, count in per_key.most_common():
            LOGGER.debug("  %s: %s messages", key, count)

    def on_contacts(self, event: ContactsSynced) -> None:
        learned = self.register_all(event.evidence)
        named = 0
        for contact in event.contacts:
            if not contact.id:
                continue
            resolved = self._context.identity.resolve(contact.id)
            if contact.name:
                self._context.names.record_both(contact.id, resolved, contact.name, NameSource.EXPLICIT)
            elif contact.verified_name:
                self._context.names.record_both(contact.id, resolved, contact.verified_name, NameSource.VERIFIED)
            elif contact.notify:
                self._context.names.record_both(contact.id, resolved, contact.notify, NameSource.PUSH)
            else:
                continue
            named += 1
        if event.contacts:
            LOGGER.info(
                "Contacts %s: %s received, %s named, %s mappings",
                "update" if event.update else "sync",
                len(event.contacts),
                named,
                learned,
            )

    def on_phone_shared(self, event: PhoneShared) -> None:
        evidence = from_phone_share(event.lid or "", event.phone or "")
        if not evidence:
            LOGGER.debug("Ignoring phone share without a valid pair: %r %r", event.lid, event.phone)
            return
        self.register_all(evidence)

    def on_connection(self, event: ConnectionChanged) -> None:
        previous = self.connection_state
        self.connection_state = event.state
        if event.state == previous:
            return
        LOGGER.info("Gateway connection: %s", event.state)
        if event.state == "open" and self._transport is not None:
            self._tasks.spawn(self._delayed_bootstrap(), name="lid-bootstrap")

    async def _delayed_bootstrap(self) -> int:
        if self._bootstrap_delay > 0:
            await asyncio.sleep(self._bootstrap_delay)
        count = await self.bootstrap_mappings()
        if count:
            LOGGER.info("LID bootstrap complete: %s mappings", count)
        return count

    async def bootstrap_mappings(self) -> int:
        """Pull LIDs for stored phone conversations that lack one.

        Returns the number of pairs registered. Transport failures are logged
        and yield 0.
        """

        if self._transport is None:
            return 0
        identity = self._context.identity
        candidates = [
            key for key in self._context.store.keys() if is_phone(key) and identity.lid_for(key) is None
        ]
        if not candidates:
            return 0

        try:
            results = await self._transport.resolve_existence_and_identity(candidates)
        except TransportError as exc:
            LOGGER.error("LID bootstrap error: %s", exc)
            return 0

        count = self.register_all(from_lookup(results))
        if count:
            LOGGER.info("Bootstrapped %s LID mappings via lookup", count)
            self._context.store.migrate_resolved()
        return count

    def _record_push_name(self, record: dict[str, Any]) -> None:
        push_name = record.get("pushName")
        if is_from_me(record) or not isinstance(push_name, str) or not push_name:
            return
        key = record.get("key", {}).get("participant") or remote_key(record)
        if not is_personal(key):
            return
        self._context.names.record_both(key, self._context.identity.resolve(key), push_name, NameSource.PUSH)
