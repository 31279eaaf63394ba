"""Bidirectional LID <-> phone identity map (core domain)."""

from __future__ import annotations

import enum
import logging
from typing import Mapping, Optional

from core.jids import is_lid, is_phone

LOGGER = logging.getLogger(__name__)


class RegistrationOutcome(enum.Enum):
    REJECTED = "rejected"
    NEW = "new"
    UNCHANGED = "unchanged"
    REMAPPED = "remapped"

    @property
    def accepted(self) -> bool:
        return self is not RegistrationOutcome.REJECTED


class ConversationState(enum.Enum):
    """Resolution state of a conversation key, derived from the map."""

    STABLE = "stable"
    UNRESOLVED = "unresolved"
    RESOLVED = "resolved"


class IdentityMap:
    """Keeps lid_to_phone and phone_to_lid in step.

    A LID maps to at most one phone. Registering a different phone for a
    known LID overwrites it (last write wins) and the old phone loses its
    reverse entry. A phone that moves to a new LID only updates
    phone_to_lid: the old LID stays resolved, so a phone may be reached
    from several LIDs while phone_to_lid names the latest one.
    """

    def __init__(self) -> None:
        self._lid_to_phone: dict[str, str] = {}
        self._phone_to_lid: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._lid_to_phone)

    def resolve(self, key: str) -> str:
        """Return the phone key for a mapped LID, otherwise the key itself."""

        if is_lid(key):
            return self._lid_to_phone.get(key, key)
        return key

    def phone_for(self, lid: str) -> Optional[str]:
        return self._lid_to_phone.get(lid)

    def lid_for(self, phone: str) -> Optional[str]:
        return self._phone_to_lid.get(phone)

    def is_resolved(self, lid: str) -> bool:
        return lid in self._lid_to_phone

    def state_of(self, key: str) -> ConversationState:
        if not is_lid(key):
            return ConversationState.STABLE
        if key in self._lid_to_phone:
            return ConversationState.RESOLVED
        return ConversationState.UNRESOLVED

    def register(self, lid: Optional[str], phone: Optional[str]) -> RegistrationOutcome:
        """Record that lid and phone identify the same person.

        Malformed input (missing values or wrong suffixes) is ignored rather
        than raised: partial contact data is routine.
        """

        if not is_lid(lid) or not is_phone(phone):
            LOGGER.debug("Ignoring malformed identity pair lid=%r phone=%r", lid, phone)
            return RegistrationOutcome.REJECTED

        previous_phone = self._lid_to_phone.get(lid)
        previous_lid = self._phone_to_lid.get(phone)
        if previous_phone == phone and previous_lid == lid:
            return RegistrationOutcome.UNCHANGED

        if previous_phone is not None and previous_phone != phone and self._phone_to_lid.get(previous_phone) == lid:
            self._phone_to_lid.pop(previous_phone)

        self._lid_to_phone[lid] = phone
        self._phone_to_lid[phone] = lid

        if previous_phone is not None and previous_phone != phone:
            LOGGER.warning("LID remapped: %s %s -> %s", lid, previous_phone, phone)
            return RegistrationOutcome.REMAPPED
        if previous_lid is not None and previous_lid != lid:
            LOGGER.warning("Phone remapped: %s %s -> %s", phone, previous_lid, lid)
            return RegistrationOutcome.REMAPPED

        LOGGER.info("LID mapping: %s -> %s", lid, phone)
        return RegistrationOutcome.NEW

    def items(self) -> list[tuple[str, str]]:
        """Return (lid, phone) pairs."""

        return list(self._lid_to_phone.items())

    def as_dict(self) -> dict[str, dict[str, str]]:
        return {
            "lidToPhone": dict(self._lid_to_phone),
            "phoneToLid": dict(self._phone_to_lid),
        }

    def load(self, data: Mapping[str, Mapping[str, str]]) -> int:
        """Replace the map from a snapshot and return the number of pairs.

        Pairs are re-registered so a half-written snapshot still loads into a
        consistent state.
        """

        self._lid_to_phone.clear()
        self._phone_to_lid.clear()
        for lid, phone in (data.get("lidToPhone") or {}).items():
            self._load_pair(lid, phone)
        for phone, lid in (data.get("phoneToLid") or {}).items():
            if lid not in self._lid_to_phone:
                self._load_pair(lid, phone)
            elif self._lid_to_phone[lid] == phone:
                self._phone_to_lid[phone] = lid
        return len(self._lid_to_phone)

    def _load_pair(self, lid: str, phone: str) -> None:
        if not is_lid(lid) or not is_phone(phone):
            return
        stale_phone = self._lid_to_phone.get(lid)
        if stale_phone is not None and stale_phone != phone and self._phone_to_lid.get(stale_phone) == lid:
            self._phone_to_lid.pop(stale_phone)
        self._lid_to_phone[lid] = phone
        self._phone_to_lid[phone] = lid
