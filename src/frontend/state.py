"""State containers for config editing and the read-only store views."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from adapters.crm_store import CRM_BLOB
from adapters.json_snapshot import JsonSnapshotStore
from core.context import IDENTITY_BLOB, NAMES_BLOB

from .constants import DEFAULT_STORE_DIR, PROJECT_ROOT


@dataclass
class ConfigState:
    data: dict[str, Any] | None = None
    dirty: bool = False
    error: str | None = None

    def load(self, path: Path) -> bool:
        """Read config.json; on failure data is cleared and error says why."""
        self.dirty = False
        try:
            loaded = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return self._fail(f"{path.name} missing")
        except json.JSONDecodeError as exc:
            return self._fail(f"{path.name} error: {exc.msg} (line {exc.lineno})")
        if not isinstance(loaded, dict):
            return self._fail("config root must be an object")
        self.data = loaded
        self.error = None
        return True

    def save(self, path: Path) -> bool:
        if self.data is None:
            self.error = "Nothing to save"
            return False
        try:
            path.write_text(json.dumps(self.data, indent=2, ensure_ascii=True) + "\n", encoding="utf-8")
        except OSError as exc:
            self.error = f"save failed: {exc.strerror or exc}"
            return False
        self.dirty = False
        self.error = None
        return True

    def set_section(self, section: str, value: Any) -> None:
        if self.data is None:
            self.data = {}
        self.data[section] = value
        self.dirty = True

    def _fail(self, error: str) -> bool:
        self.data = None
        self.error = error
        return False


@dataclass
class StoreView:
    """Snapshot contents shown by the Overrides and Identities tabs."""

    lid_to_phone: dict[str, str] = field(default_factory=dict)
    names: dict[str, str] = field(default_factory=dict)
    overrides: list[dict[str, Any]] = field(default_factory=list)
    store_dir: Path = DEFAULT_STORE_DIR


def store_dir_from_config(config: dict[str, Any] | None) -> Path:
    persistence = (config or {}).get("persistence", {})
    raw = persistence.get("store_dir") if isinstance(persistence, dict) else None
    if not raw:
        return DEFAULT_STORE_DIR
    path = Path(raw)
    return path if path.is_absolute() else PROJECT_ROOT / path


def load_store_view(store_dir: Path) -> StoreView:
    snapshots = JsonSnapshotStore(str(store_dir))
    view = StoreView(store_dir=store_dir)

    identity = snapshots.load(IDENTITY_BLOB)
    if isinstance(identity, dict) and isinstance(identity.get("lidToPhone"), dict):
        view.lid_to_phone = {str(lid): str(phone) for lid, phone in identity["lidToPhone"].items()}

    names = snapshots.load(NAMES_BLOB)
    if isinstance(names, dict):
        view.names = {
            key: str(entry.get("name"))
            for key, entry in names.items()
            if isinstance(entry, dict) and entry.get("name")
        }

    crm = snapshots.load(CRM_BLOB)
    contacts = crm.get("contacts") if isinstance(crm, dict) else None
    if isinstance(contacts, dict):
        view.overrides = [
            {"jid": contact.get("jid", key), "name": contact.get("name"), "auto_reply": contact["auto_reply"]}
            for key, contact in contacts.items()
            if isinstance(contact, dict) and contact.get("auto_reply") in ("on", "off")
        ]
    return view
