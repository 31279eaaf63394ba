"""JSON snapshot adapter.

Implements the core SnapshotPort with one JSON file per blob inside a store
directory. Each file is wrapped in a small versioned envelope:

    {"version": 1, "kind": "lid-map", "saved_at": "...", "data": {...}}

Files written before the envelope existed (a bare payload) load as
version 0. Writes go to a temp file in the same directory and are moved
into place with os.replace, so an interrupted flush never truncates the
previous snapshot.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

LOGGER = logging.getLogger(__name__)

SCHEMA_VERSION = 1


@dataclass(frozen=True)
class Snapshot:
    version: int
    kind: str
    saved_at: Optional[str]
    data: Any


def _is_envelope(raw: Any) -> bool:
    return isinstance(raw, dict) and isinstance(raw.get("version"), int) and "data" in raw and "kind" in raw


class JsonSnapshotStore:
    """Snapshot files under a single directory."""

    def __init__(self, store_dir: str) -> None:
        self.store_dir = store_dir

    def path_for(self, name: str) -> str:
        return os.path.join(self.store_dir, f"{name}.json")

    def read(self, name: str) -> Optional[Snapshot]:
        """Return the snapshot, or None when it is missing or unreadable."""

        path = self.path_for(name)
        if not os.path.exists(path):
            return None
        try:
            with open(path, "r", encoding="utf-8") as handle:
                raw = json.load(handle)
        except (OSError, ValueError) as exc:
            LOGGER.error("Unreadable snapshot %s, starting empty: %s", path, exc)
            return None

        if _is_envelope(raw):
            if raw["version"] > SCHEMA_VERSION:
                LOGGER.warning("Snapshot %s has newer version %s", path, raw["version"])
            return Snapshot(raw["version"], str(raw["kind"]), raw.get("saved_at"), raw["data"])
        return Snapshot(0, name, None, raw)

    def load(self, name: str) -> Optional[Any]:
        snapshot = self.read(name)
        return snapshot.data if snapshot else None

    def save(self, name: str, payload: Any) -> None:
        os.makedirs(self.store_dir, exist_ok=True)
        envelope = {
            "version": SCHEMA_VERSION,
            "kind": name,
            "saved_at": datetime.now(timezone.utc).isoformat(),
            "data": payload,
        }
        fd, temp_path = tempfile.mkstemp(prefix=f".{name}.", suffix=".tmp", dir=self.store_dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(envelope, handle, ensure_ascii=False)
            os.replace(temp_path, self.path_for(name))
        except BaseException:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise
