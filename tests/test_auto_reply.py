from __future__ import annotations

import asyncio
from typing import Sequence

from core.auto_reply import (
    AutoReplyDispatcher,
    AutoReplyPolicy,
    AutoReplyService,
    build_instruction,
)
from core.config import AutoReplyConfig
from core.identity_map import IdentityMap
from core.models import AutoReplyOverride, LookupResult, ResponderRequest, ResponderResult
from core.ports import TransportError
from core.tasks import BackgroundTasks

LID = "123456789@lid"
PHONE = "972500000001@s.whatsapp.net"
GROUP = "120363000000000000@g.us"


class FakeOverrides:
    def __init__(self, modes: dict[str, str] | None = None) -> None:
        self.modes = modes or {}

    def auto_reply_override(self, key: str) -> AutoReplyOverride:
        return AutoReplyOverride.parse(self.modes.get(key))


class FakeResponder:
    def __init__(self, result: ResponderResult) -> None:
        self.result = result
        self.requests: list[ResponderRequest] = []

    async def generate(self, request: ResponderRequest) -> ResponderResult:
        self.requests.append(request)
        return self.result


class FakeTransport:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.sent: list[tuple[str, str]] = []

    async def send_text(self, key: str, text: str) -> str:
        if self.fail:
            raise TransportError("HTTP 500")
        self.sent.append((key, text))
        return "MSG1"

    async def resolve_existence_and_identity(self, phones: Sequence[str]) -> list[LookupResult]:
        return []


def _inbound(jid: str, text: str = "hello there", from_me: bool = False) -> dict:
    return {
        "key": {"id": "A", "remoteJid": jid, "fromMe": from_me},
        "message": {"conversation": text},
        "messageTimestamp": 1700000000,
    }


def _policy(
    enabled: bool = True,
    private_only: bool = True,
    groups: tuple[str, ...] = (),
    modes: dict[str, str] | None = None,
    identity: IdentityMap | None = None,
) -> AutoReplyPolicy:
    config = AutoReplyConfig(enabled=enabled, private_only=private_only, group_keys=frozenset(groups))
    resolve = (identity or IdentityMap()).resolve
    return AutoReplyPolicy(config, resolve, FakeOverrides(modes))


def test_override_off_beats_global_enabled() -> None:
    decision = _policy(enabled=True, modes={PHONE: "off"}).decide(_inbound(PHONE))
    assert not decision.dispatch
    assert decision.reason == "override_off"


def test_override_on_beats_global_disabled() -> None:
    decision = _policy(enabled=False, modes={PHONE: "on"}).decide(_inbound(PHONE))
    assert decision.dispatch
    assert decision.key == PHONE
    assert decision.text == "hello there"


def test_chat_type_gate_beats_override_on() -> None:
    decision = _policy(enabled=False, private_only=True, modes={GROUP: "on"}).decide(_inbound(GROUP))
    assert not decision.dispatch
    assert decision.reason == "group_private_only"


def test_unset_override_with_global_disabled() -> None:
    decision = _policy(enabled=False).decide(_inbound(PHONE))
    assert not decision.dispatch
    assert decision.reason == "disabled"


def test_group_not_in_allow_list() -> None:
    decision = _policy(enabled=True, private_only=False, groups=("999@g.us",)).decide(_inbound(GROUP))
    assert not decision.dispatch
    assert decision.reason == "group_not_allowed"

    allowed = _policy(enabled=True, private_only=False, groups=(GROUP,)).decide(_inbound(GROUP))
    assert allowed.dispatch


def test_override_is_looked_up_under_resolved_key() -> None:
    identity = IdentityMap()
    identity.register(LID, PHONE)
    decision = _policy(enabled=True, modes={PHONE: "off"}, identity=identity).decide(_inbound(LID))
    assert decision.reason == "override_off"
    assert decision.key == PHONE


def test_override_stored_under_lid_still_applies_after_resolution() -> None:
    identity = IdentityMap()
    identity.register(LID, PHONE)

    off = _policy(enabled=True, modes={LID: "off"}, identity=identity).decide(_inbound(LID))
    assert off.reason == "override_off"
    assert off.key == PHONE

    # The resolved key wins when both carry an override.
    on = _policy(enabled=True, modes={LID: "off", PHONE: "on"}, identity=identity).decide(_inbound(LID))
    assert on.dispatch


def test_outbound_broadcast_and_textless_records_are_ignored() -> None:
    policy = _policy(enabled=True, private_only=False)
    assert policy.decide(_inbound(PHONE, from_me=True)).reason == "outbound"
    assert policy.decide({"key": {"id": "A"}}).reason == "no_key"
    assert policy.decide(_inbound("status@broadcast")).reason == "broadcast"

    image = _inbound(PHONE)
    image["message"] = {"imageMessage": {"caption": "look"}}
    assert policy.decide(image).reason == "no_text"


def test_instruction_wraps_observed_text() -> None:
    instruction = build_instruction("hi", "Dana's assistant")
    assert '"hi"' in instruction
    assert "Dana's assistant" in instruction


def test_dispatcher_sends_primary_reply() -> None:
    responder = FakeResponder(ResponderResult(ok=True, text="Hi!"))
    transport = FakeTransport()
    dispatcher = AutoReplyDispatcher(responder, transport)

    result = asyncio.run(dispatcher.reply(PHONE, "hello"))

    assert result.ok
    assert transport.sent == [(PHONE, "Hi!")]
    assert responder.requests[0].observed_text == "hello"


def test_dispatcher_falls_back_once() -> None:
    primary = FakeResponder(ResponderResult(ok=False, error="timeout"))
    fallback = FakeResponder(ResponderResult(ok=True, text="Hey", source="fallback"))
    transport = FakeTransport()
    dispatcher = AutoReplyDispatcher(primary, transport, fallback=fallback)

    result = asyncio.run(dispatcher.reply(PHONE, "hello"))

    assert result.source == "fallback"
    assert len(fallback.requests) == 1
    assert transport.sent == [(PHONE, "Hey")]


def test_dispatcher_sends_nothing_when_both_fail() -> None:
    primary = FakeResponder(ResponderResult(ok=False, error="timeout"))
    fallback = FakeResponder(ResponderResult(ok=False, error="down", source="fallback"))
    transport = FakeTransport()

    result = asyncio.run(AutoReplyDispatcher(primary, transport, fallback=fallback).reply(PHONE, "hello"))

    assert not result.ok
    assert transport.sent == []


def test_dispatcher_reports_send_failure() -> None:
    responder = FakeResponder(ResponderResult(ok=True, text="Hi!"))
    result = asyncio.run(AutoReplyDispatcher(responder, FakeTransport(fail=True)).reply(PHONE, "hello"))

    assert not result.ok
    assert result.error == "HTTP 500"


def test_service_dispatches_in_background() -> None:
    responder = FakeResponder(ResponderResult(ok=True, text="Hi!"))
    transport = FakeTransport()
    tasks = BackgroundTasks()
    service = AutoReplyService(_policy(enabled=True), AutoReplyDispatcher(responder, transport), tasks)

    async def _run() -> None:
        decision = service.handle(_inbound(PHONE))
        assert decision.dispatch
        assert tasks.pending == 1
        assert transport.sent == []
        skipped = service.handle(_inbound(PHONE, from_me=True))
        assert not skipped.dispatch
        await tasks.drain()

    asyncio.run(_run())

    assert transport.sent == [(PHONE, "Hi!")]
    assert tasks.completed == 1
    assert tasks.failures == []
