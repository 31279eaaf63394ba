"""Identity evidence extraction (core domain).

Each gateway payload shape that can pair a LID with a phone key is reduced
to one IdentityEvidence variant here, so the reconciliation engine never
has to sniff optional fields itself.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterable, List

from core.jids import is_lid, is_phone
from core.models import ChatMetadata, ContactRecord, LookupResult


class EvidenceSource(enum.Enum):
    CONTACT_PHONE_ID = "contact_phone_id"
    CONTACT_LID_ID = "contact_lid_id"
    CONTACT_SIBLINGS = "contact_siblings"
    CHAT_METADATA = "chat_metadata"
    PHONE_SHARE = "phone_share"
    LOOKUP = "lookup"


@dataclass(frozen=True)
class IdentityEvidence:
    lid: str
    phone: str
    source: EvidenceSource


def from_contact(contact: ContactRecord) -> List[IdentityEvidence]:
    """Return every (lid, phone) pair a contact record carries.

    - id is a phone key and lid is a LID
    - id is a LID and jid is a phone key
    - lid and jid are both present in their expected forms
    """

    found: List[IdentityEvidence] = []
    if is_phone(contact.id) and is_lid(contact.lid):
        found.append(IdentityEvidence(contact.lid, contact.id, EvidenceSource.CONTACT_PHONE_ID))
    if is_lid(contact.id) and is_phone(contact.jid):
        found.append(IdentityEvidence(contact.id, contact.jid, EvidenceSource.CONTACT_LID_ID))
    if is_lid(contact.lid) and is_phone(contact.jid):
        found.append(IdentityEvidence(contact.lid, contact.jid, EvidenceSource.CONTACT_SIBLINGS))
    return found


def from_chat(chat: ChatMetadata) -> List[IdentityEvidence]:
    """Chat metadata pairs id and lid in either order."""

    if is_phone(chat.id) and is_lid(chat.lid):
        return [IdentityEvidence(chat.lid, chat.id, EvidenceSource.CHAT_METADATA)]
    if is_lid(chat.id) and is_phone(chat.lid):
        return [IdentityEvidence(chat.id, chat.lid, EvidenceSource.CHAT_METADATA)]
    return []


def from_phone_share(lid: str, phone: str) -> List[IdentityEvidence]:
    if is_lid(lid) and is_phone(phone):
        return [IdentityEvidence(lid, phone, EvidenceSource.PHONE_SHARE)]
    return []


def from_lookup(results: Iterable[LookupResult]) -> List[IdentityEvidence]:
    return [
        IdentityEvidence(result.lid, result.phone, EvidenceSource.LOOKUP)
        for result in results
        if result.lid and is_lid(result.lid) and is_phone(result.phone)
    ]


def collect(contacts: Iterable[ContactRecord] = (), chats: Iterable[ChatMetadata] = ()) -> List[IdentityEvidence]:
    evidence: List[IdentityEvidence] = []
    for contact in contacts:
        evidence.extend(from_contact(contact))
    for chat in chats:
        evidence.extend(from_chat(chat))
    return evidence
