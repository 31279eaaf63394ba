"""CRM contact records that carry the per-contact auto-reply override.

Only the override is managed here; other CRM fields (tags, notes,
reminders) are preserved untouched when the blob is rewritten.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from core.models import AutoReplyOverride
from core.ports import SnapshotPort

LOGGER = logging.getLogger(__name__)

CRM_BLOB = "crm-data"

OVERRIDE_MODES = ("on", "off", "default")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class CrmStore:
    """Satisfies the OverridePort contract and persists on every change."""

    def __init__(self, snapshots: SnapshotPort) -> None:
        self._snapshots = snapshots
        self._data: dict[str, Any] = {"contacts": {}, "reminders": [], "global_notes": []}

    def load(self) -> int:
        raw = self._snapshots.load(CRM_BLOB)
        if isinstance(raw, dict):
            self._data.update(raw)
        if not isinstance(self._data.get("contacts"), dict):
            self._data["contacts"] = {}
        return len(self._data["contacts"])

    def _contacts(self) -> dict[str, dict[str, Any]]:
        return self._data["contacts"]

    def _ensure_contact(self, key: str, name: Optional[str] = None) -> dict[str, Any]:
        contact = self._contacts().get(key)
        if contact is None:
            timestamp = _now()
            contact = {
                "jid": key,
                "tags": [],
                "notes": [],
                "metadata": {},
                "created_at": timestamp,
                "updated_at": timestamp,
            }
            self._contacts()[key] = contact
        if name and not contact.get("name"):
            contact["name"] = name
        return contact

    def auto_reply_override(self, key: str) -> AutoReplyOverride:
        contact = self._contacts().get(key)
        if not isinstance(contact, dict):
            return AutoReplyOverride.UNSET
        return AutoReplyOverride.parse(contact.get("auto_reply"))

    def set_override(self, key: str, mode: str, name: Optional[str] = None) -> dict[str, Any]:
        """Set "on"/"off" or clear with "default"; returns the contact record."""

        if mode not in OVERRIDE_MODES:
            raise ValueError(f"Unsupported auto-reply mode: {mode!r}")
        contact = self._ensure_contact(key, name)
        if mode == "default":
            contact.pop("auto_reply", None)
        else:
            contact["auto_reply"] = mode
        contact["updated_at"] = _now()
        LOGGER.info("Auto-reply override for %s set to %s", key, mode)
        self.save()
        return contact

    def list_overrides(self) -> list[dict[str, Any]]:
        return [
            {"jid": contact.get("jid", key), "name": contact.get("name"), "auto_reply": contact["auto_reply"]}
            for key, contact in self._contacts().items()
            if isinstance(contact, dict) and contact.get("auto_reply") in ("on", "off")
        ]

    def save(self) -> None:
        try:
            self._snapshots.save(CRM_BLOB, self._data)
        except OSError:
            LOGGER.exception("Failed to save CRM data")
