"""Read side of the bridge: conversation queries, search and stats."""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Optional

from core.context import BridgeContext
from core.messages import format_message, has_payload, message_content, sender_key, sender_name
from core.models import ChatStats, Contributor, FormattedMessage, SearchHit
from core.reconciliation import ReconciliationEngine
from core.time_window import message_timestamp_ms, parse_since

LOGGER = logging.getLogger(__name__)

DEFAULT_SINCE = "24h"
DEFAULT_LIMIT = 200
CONTEXT_SINCE = "2h"
CONTEXT_LIMIT = 30


class ConversationQueryService:
    """Query surface consumed by the API and by the responder prompt."""

    def __init__(self, context: BridgeContext, engine: Optional[ReconciliationEngine] = None) -> None:
        self._context = context
        self._engine = engine

    def resolve(self, key: str) -> str:
        return self._context.identity.resolve(key)

    def query(
        self,
        key: str,
        since: Optional[str] = DEFAULT_SINCE,
        limit: int = DEFAULT_LIMIT,
        now: Optional[int] = None,
    ) -> list[FormattedMessage]:
        """Return the most recent `limit` messages since the cutoff, oldest first.

        When the resolved key has nothing and differs from the raw key the raw
        key is queried instead; this covers a mapping learned before its
        migration ran.
        """

        cutoff = parse_since(since, now)
        resolved = self.resolve(key)
        result = self._window(resolved, cutoff, limit)
        if not result and resolved != key:
            LOGGER.debug("No messages under %s, falling back to %s", resolved, key)
            result = self._window(key, cutoff, limit)
        return result

    def _window(self, key: str, cutoff: int, limit: int) -> list[FormattedMessage]:
        selected = [
            format_message(record)
            for record in self._context.store.messages_for(key)
            if has_payload(record) and message_timestamp_ms(record) >= cutoff
        ]
        selected.sort(key=lambda item: item.timestamp_ms)
        if limit <= 0:
            return []
        return selected[-limit:]

    def recent_context(self, key: str) -> list[FormattedMessage]:
        """Short recent history used to ground generated replies."""

        return self.query(key, since=CONTEXT_SINCE, limit=CONTEXT_LIMIT)

    def get_raw_message(self, key: str, msg_id: str) -> Optional[dict[str, Any]]:
        store = self._context.store
        return store.get(key, msg_id) or store.get(self.resolve(key), msg_id)

    def search_messages(
        self,
        text: str,
        key: Optional[str] = None,
        since: Optional[str] = None,
        limit: int = 50,
    ) -> list[SearchHit]:
        """Case-insensitive content search across one or all conversations, newest first."""

        needle = text.lower()
        if not needle:
            return []
        cutoff = parse_since(since) if since else 0
        keys = [self.resolve(key)] if key else self._context.store.keys()

        hits: list[SearchHit] = []
        for conversation_key in keys:
            for record in self._context.store.messages_for(conversation_key):
                if message_timestamp_ms(record) < cutoff:
                    continue
                content = message_content(record)
                if content and needle in content.lower():
                    hits.append(SearchHit(conversation_key, format_message(record)))

        hits.sort(key=lambda hit: hit.message.timestamp_ms, reverse=True)
        return hits[: max(limit, 0)]

    def chat_stats(self, key: str, since: str = "7d", now: Optional[int] = None) -> ChatStats:
        resolved = self.resolve(key)
        cutoff = parse_since(since, now)

        senders: Counter[str] = Counter()
        sender_names: dict[str, str] = {}
        types: Counter[str] = Counter()
        hourly: Counter[int] = Counter()
        daily: Counter[str] = Counter()
        total = 0
        for record in self._context.store.messages_for(resolved):
            ts = message_timestamp_ms(record)
            if ts < cutoff or not has_payload(record):
                continue
            total += 1
            sender = sender_key(record)
            senders[sender] += 1
            sender_names.setdefault(sender, sender_name(record))
            formatted = format_message(record)
            types[formatted.type] += 1
            moment = datetime.fromtimestamp(ts / 1000, tz=timezone.utc)
            hourly[moment.hour] += 1
            daily[moment.date().isoformat()] += 1

        name = self.contact_name(resolved) or resolved
        return ChatStats(
            conversation_key=resolved,
            display_name=name,
            since=since,
            total_messages=total,
            unique_senders=len(senders),
            top_contributors=tuple(
                Contributor(sender, sender_names[sender], count) for sender, count in senders.most_common(10)
            ),
            message_types=dict(types),
            hourly_activity=dict(sorted(hourly.items())),
            daily_activity=dict(sorted(daily.items())),
        )

    def contact_name(self, key: str) -> Optional[str]:
        names = self._context.names
        entry = names.get(key) or names.get(self.resolve(key))
        return entry.name if entry else None

    def get_identity_map(self) -> dict[str, dict[str, str]]:
        return self._context.identity.as_dict()

    def register_mapping(self, lid: str, phone: str) -> bool:
        """Register a pair by hand and migrate its conversation."""

        outcome = self._context.identity.register(lid, phone)
        if outcome.accepted:
            self._context.store.migrate(lid, phone)
        return outcome.accepted

    async def bootstrap_mappings(self) -> int:
        if self._engine is None:
            return 0
        return await self._engine.bootstrap_mappings()

    def store_counts(self) -> dict[str, int]:
        conversations, messages = self._context.store.counts()
        return {
            "conversations": conversations,
            "messages": messages,
            "mappings": len(self._context.identity),
            "names": len(self._context.names),
        }
