"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass(frozen=True)
class AutoReplyConfig:
    """Global auto-reply switches."""

    enabled: bool = False
    private_only: bool = True
    group_keys: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "AutoReplyConfig":
        return cls(
            enabled=bool(raw.get("enabled", False)),
            private_only=bool(raw.get("private_only", True)),
            group_keys=frozenset(raw.get("group_keys", []) or []),
        )


@dataclass(frozen=True)
class PersistenceConfig:
    """Snapshot location and flush cadence."""

    store_dir: str
    flush_interval_seconds: float = 30.0
    bootstrap_delay_seconds: float = 10.0
