from __future__ import annotations

import asyncio

import pairing
from core.ports import TransportError


class FakeTransport:
    instance = "main"

    def __init__(self, states: list[str], qr: dict | None = None, fail_on: str | None = None) -> None:
        self.states = list(states)
        self.qr = qr or {}
        self.fail_on = fail_on

    async def connection_state(self) -> str:
        if self.fail_on == "state":
            raise TransportError("GET /instance/connectionState failed: connection refused")
        return self.states.pop(0)

    async def connect_qr(self) -> dict:
        if self.fail_on == "connect":
            raise TransportError("GET /instance/connect failed: 404")
        return self.qr


def test_pair_reports_gateway_errors(capsys) -> None:
    assert asyncio.run(pairing.pair(FakeTransport([], fail_on="state"))) is False
    assert "Gateway request failed" in capsys.readouterr().out

    assert asyncio.run(pairing.pair(FakeTransport(["close"], fail_on="connect"))) is False
    assert "404" in capsys.readouterr().out


def test_pair_already_connected(capsys) -> None:
    assert asyncio.run(pairing.pair(FakeTransport(["open"]))) is True
    assert "already connected" in capsys.readouterr().out


def test_pair_waits_for_scan(monkeypatch, capsys) -> None:
    monkeypatch.setattr(pairing, "POLL_SECONDS", 0)
    transport = FakeTransport(["close", "connecting", "open"], qr={"pairingCode": "ABCD-1234"})

    assert asyncio.run(pairing.pair(transport, timeout=5)) is True
    out = capsys.readouterr().out
    assert "Pairing code: ABCD-1234" in out
    assert "Connected." in out


def test_pair_without_qr(capsys) -> None:
    assert asyncio.run(pairing.pair(FakeTransport(["close"]))) is False
    assert "did not return a QR code" in capsys.readouterr().out
