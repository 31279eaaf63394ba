"""Ports (interfaces) used by the core.

Ports define the minimal contracts for the gateway, the responder, the CRM
override lookup and snapshot persistence so the core can be reused with
different backends.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence

from core.models import AutoReplyOverride, LookupResult, ResponderRequest, ResponderResult


class TransportError(RuntimeError):
    """Raised by gateway adapters when a request fails."""


class TransportPort(Protocol):
    """Gateway operations the core pulls or sends through."""

    async def send_text(self, key: str, text: str) -> str:
        ...

    async def resolve_existence_and_identity(self, phones: Sequence[str]) -> list[LookupResult]:
        ...


class ResponderPort(Protocol):
    """Text generation for automated replies."""

    async def generate(self, request: ResponderRequest) -> ResponderResult:
        ...


class OverridePort(Protocol):
    """Per-contact auto-reply overrides kept with the CRM record."""

    def auto_reply_override(self, key: str) -> AutoReplyOverride:
        ...


class SnapshotPort(Protocol):
    """Durable blobs for the identity map, message store and names."""

    def load(self, name: str) -> Optional[Any]:
        ...

    def save(self, name: str, payload: Any) -> None:
        ...
