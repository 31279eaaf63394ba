from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from adapters.evolution_transport import EvolutionTransport
from adapters.responder import HttpResponder, PlainTextResponder, build_user_prompt
from core.models import FormattedMessage, ResponderRequest
from core.ports import TransportError

LID = "123456789@lid"
PHONE = "972500000001@s.whatsapp.net"


def _transport(handler) -> EvolutionTransport:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return EvolutionTransport("http://gateway:8080/", "main", api_key="key-1", client=client)


def test_send_text_posts_bare_number_with_api_key() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json={"key": {"id": "3EB0ABC", "remoteJid": PHONE}})

    message_id = asyncio.run(_transport(handler).send_text(PHONE, "hi"))

    assert message_id == "3EB0ABC"
    assert str(seen[0].url) == "http://gateway:8080/message/sendText/main"
    assert seen[0].headers["apikey"] == "key-1"
    assert json.loads(seen[0].content) == {"number": "972500000001", "text": "hi"}


def test_send_text_keeps_full_group_key() -> None:
    seen: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(json.loads(request.content))
        return httpx.Response(200, json={})

    assert asyncio.run(_transport(handler).send_text("120363000000000000@g.us", "hi")) == ""
    assert seen[0]["number"] == "120363000000000000@g.us"


def test_http_errors_become_transport_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="internal")

    with pytest.raises(TransportError):
        asyncio.run(_transport(handler).send_text(PHONE, "hi"))


def test_connection_failures_become_transport_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(TransportError):
        asyncio.run(_transport(handler).connection_state())


def test_lookup_maps_results() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/chat/whatsappNumbers/main"
        assert json.loads(request.content) == {"numbers": [PHONE]}
        return httpx.Response(200, json=[{"exists": True, "jid": PHONE, "lid": "123456789"}])

    [result] = asyncio.run(_transport(handler).resolve_existence_and_identity([PHONE]))

    assert (result.phone, result.exists, result.lid) == (PHONE, True, LID)


def test_lookup_rejects_unexpected_payload() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"error": "nope"})

    with pytest.raises(TransportError):
        asyncio.run(_transport(handler).resolve_existence_and_identity([PHONE]))


def test_connection_state_shapes() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"instance": {"instanceName": "main", "state": "open"}})

    assert asyncio.run(_transport(handler).connection_state()) == "open"


def _request() -> ResponderRequest:
    return ResponderRequest(key=PHONE, instruction="say hi", observed_text="hello")


def test_http_responder_reads_text() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert json.loads(request.content) == {"key": PHONE, "instruction": "say hi"}
        return httpx.Response(200, json={"text": "  Hi there  "})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    result = asyncio.run(HttpResponder("http://responder/api/respond", client=client).generate(_request()))

    assert result.ok
    assert result.text == "Hi there"
    assert result.source == "primary"


def test_http_responder_failures() -> None:
    def empty(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"text": ""})

    def broken(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="bad gateway")

    for handler in (empty, broken):
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        result = asyncio.run(HttpResponder("http://responder", client=client).generate(_request()))
        assert not result.ok
        assert result.error


def test_plain_text_responder_sends_context() -> None:
    bodies: list[dict] = []
    recent = [
        FormattedMessage(
            id="A",
            sender_key=PHONE,
            sender_name="Dana",
            from_me=False,
            content="are you around?",
            type="text",
            timestamp="2024-01-01T00:00:00+00:00",
            timestamp_ms=1704067200000,
        )
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200, text="Sure, what's up?")

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    responder = PlainTextResponder(
        "http://fallback/",
        persona="Dana's assistant",
        context=lambda key: recent,
        names=lambda key: "Dana",
        client=client,
    )
    result = asyncio.run(responder.generate(_request()))

    assert result.ok
    assert result.source == "fallback"
    system, user = bodies[0]["messages"]
    assert "Dana's assistant" in system["content"]
    assert "Contact name: Dana" in system["content"]
    assert "Dana: are you around?" in user["content"]
    assert bodies[0]["model"] == "openai"


def test_plain_text_responder_rejects_short_reply() -> None:
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200, text=" ")))
    result = asyncio.run(PlainTextResponder("http://fallback/", client=client).generate(_request()))
    assert not result.ok


def test_user_prompt_without_context() -> None:
    assert build_user_prompt("say hi", []).startswith("Instruction: say hi")
