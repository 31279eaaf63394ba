"""Auto-reply decision policy and background dispatch.

The policy is a pure decision over one inbound record. Evaluation order:
1) Outbound or keyless records are ignored
2) The conversation key is resolved
3) A per-contact "off" override suppresses (resolved key first, then the
   raw key when the resolved key has none)
4) A per-contact "on" override skips the global enabled switch
5) Without an override, a disabled global switch suppresses
6) Chat-type gate (private_only / group allow-list), even with "on"
7) Broadcast pseudo-chats are rejected
8) Records without typed text are rejected
9) Otherwise a reply is dispatched for (resolved key, text)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from core.config import AutoReplyConfig
from core.jids import is_broadcast, is_group
from core.messages import is_from_me, plain_text, remote_key
from core.models import AutoReplyOverride, ResponderRequest, ResponderResult
from core.ports import OverridePort, ResponderPort, TransportError, TransportPort
from core.tasks import BackgroundTasks

LOGGER = logging.getLogger(__name__)

DEFAULT_PERSONA = "the AI assistant"


@dataclass(frozen=True)
class AutoReplyDecision:
    dispatch: bool
    reason: str
    key: Optional[str] = None
    text: Optional[str] = None


def _suppress(reason: str, key: Optional[str] = None) -> AutoReplyDecision:
    return AutoReplyDecision(dispatch=False, reason=reason, key=key)


class AutoReplyPolicy:
    """Decides whether an inbound record should trigger an automated reply."""

    def __init__(
        self,
        config: AutoReplyConfig,
        resolve: Callable[[str], str],
        overrides: OverridePort,
    ) -> None:
        self.config = config
        self._resolve = resolve
        self._overrides = overrides

    def decide(self, record: Mapping[str, Any]) -> AutoReplyDecision:
        if is_from_me(record):
            return _suppress("outbound")
        raw_key = remote_key(record)
        if raw_key is None:
            return _suppress("no_key")

        key = self._resolve(raw_key)
        override = self._overrides.auto_reply_override(key)
        if override is AutoReplyOverride.UNSET and raw_key != key:
            # Set while the LID was still unresolved.
            override = self._overrides.auto_reply_override(raw_key)
        if override is AutoReplyOverride.OFF:
            return _suppress("override_off", key)
        if override is AutoReplyOverride.UNSET and not self.config.enabled:
            return _suppress("disabled", key)

        if is_group(key):
            if self.config.private_only:
                return _suppress("group_private_only", key)
            if key not in self.config.group_keys:
                return _suppress("group_not_allowed", key)

        if is_broadcast(key) or is_broadcast(raw_key):
            return _suppress("broadcast", key)

        text = plain_text(record)
        if not text:
            return _suppress("no_text", key)

        return AutoReplyDecision(dispatch=True, reason="dispatch", key=key, text=text)


def build_instruction(text: str, persona: str = DEFAULT_PERSONA) -> str:
    return f'Someone sent this message: "{text}". Reply naturally as {persona}. Be helpful and friendly.'


class AutoReplyDispatcher:
    """Generates a reply and sends it back through the gateway."""

    def __init__(
        self,
        responder: ResponderPort,
        transport: TransportPort,
        fallback: Optional[ResponderPort] = None,
        persona: str = DEFAULT_PERSONA,
    ) -> None:
        self._responder = responder
        self._transport = transport
        self._fallback = fallback
        self._persona = persona

    async def generate(self, request: ResponderRequest) -> ResponderResult:
        """Ask the responder, then the fallback once if the first attempt failed."""

        result = await self._responder.generate(request)
        if result.ok or self._fallback is None:
            return result
        LOGGER.warning("[auto-reply] Responder failed for %s (%s), trying fallback", request.key, result.error)
        return await self._fallback.generate(request)

    async def reply(self, key: str, text: str) -> ResponderResult:
        request = ResponderRequest(key=key, instruction=build_instruction(text, self._persona), observed_text=text)
        result = await self.generate(request)
        if not result.ok or not result.text:
            LOGGER.error("[auto-reply] Failed: %s", result.error or "empty reply")
            return result

        try:
            message_id = await self._transport.send_text(key, result.text)
        except TransportError as exc:
            LOGGER.error("[auto-reply] Send to %s failed: %s", key, exc)
            return ResponderResult(ok=False, text=result.text, error=str(exc), source=result.source)

        LOGGER.info("[auto-reply] Replied to %s (%s, %s)", key, result.source, message_id)
        return result


class AutoReplyService:
    """Inbound hook: decide synchronously, dispatch in the background."""

    def __init__(self, policy: AutoReplyPolicy, dispatcher: AutoReplyDispatcher, tasks: BackgroundTasks) -> None:
        self.policy = policy
        self._dispatcher = dispatcher
        self._tasks = tasks

    def handle(self, record: Mapping[str, Any]) -> AutoReplyDecision:
        decision = self.policy.decide(record)
        if not decision.dispatch:
            LOGGER.debug("[auto-reply] Skipped %s: %s", decision.key or remote_key(record), decision.reason)
            return decision

        raw_key = remote_key(record)
        suffix = f" (resolved: {decision.key})" if raw_key != decision.key else ""
        LOGGER.info("[auto-reply] Incoming from %s%s: %r", raw_key, suffix, decision.text[:50])
        self._tasks.spawn(self._dispatcher.reply(decision.key, decision.text), name=f"auto-reply:{decision.key}")
        return decision
