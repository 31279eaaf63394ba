"""Typed gateway events consumed by the reconciliation engine.

Adapters build these at the transport boundary; evidence is extracted once
when the event is built.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Tuple, Union

from core import evidence as evidence_mod
from core.evidence import IdentityEvidence
from core.models import ChatMetadata, ContactRecord

MessageRecord = dict[str, Any]


@dataclass(frozen=True)
class ContactsSynced:
    contacts: Tuple[ContactRecord, ...]
    evidence: Tuple[IdentityEvidence, ...] = ()
    update: bool = False


@dataclass(frozen=True)
class MessagesArrived:
    messages: Tuple[MessageRecord, ...]
    historical: bool = False


@dataclass(frozen=True)
class MessageStatusUpdated:
    conversation_key: Optional[str]
    message_id: Optional[str]
    patch: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class HistoryBatchArrived:
    messages: Tuple[MessageRecord, ...]
    chats: Tuple[ChatMetadata, ...] = ()
    evidence: Tuple[IdentityEvidence, ...] = ()
    sync_type: Optional[str] = None
    progress: Optional[int] = None
    is_latest: Optional[bool] = None


@dataclass(frozen=True)
class PhoneShared:
    lid: Optional[str]
    phone: Optional[str]


@dataclass(frozen=True)
class ConnectionChanged:
    state: str


GatewayEvent = Union[
    ContactsSynced,
    MessagesArrived,
    MessageStatusUpdated,
    HistoryBatchArrived,
    PhoneShared,
    ConnectionChanged,
]


def contacts_event(contacts: Iterable[ContactRecord], update: bool = False) -> ContactsSynced:
    contacts = tuple(contacts)
    return ContactsSynced(
        contacts=contacts,
        evidence=tuple(evidence_mod.collect(contacts=contacts)),
        update=update,
    )


def history_event(
    messages: Iterable[MessageRecord],
    chats: Iterable[ChatMetadata] = (),
    sync_type: Optional[str] = None,
    progress: Optional[int] = None,
    is_latest: Optional[bool] = None,
) -> HistoryBatchArrived:
    chats = tuple(chats)
    return HistoryBatchArrived(
        messages=tuple(messages),
        chats=chats,
        evidence=tuple(evidence_mod.collect(chats=chats)),
        sync_type=sync_type,
        progress=progress,
        is_latest=is_latest,
    )
