"""Interactive pairing with the gateway.

Asks the gateway to connect the instance and prints the returned QR code
in the terminal until the connection opens or the timeout expires.
"""

import asyncio
import logging
import time
from typing import Any, Optional

import qrcode

from adapters.evolution_transport import EvolutionTransport
from core.ports import TransportError

LOGGER = logging.getLogger(__name__)

POLL_SECONDS = 3.0


def _print_qr(data: str) -> None:
    qr = qrcode.QRCode(border=1)
    qr.add_data(data)
    qr.make(fit=True)
    qr.print_ascii(invert=True)


def _qr_payload(result: dict[str, Any]) -> Optional[str]:
    # "code" is the raw pairing string; "base64" is an image we cannot print.
    code = result.get("code")
    if isinstance(code, str) and code:
        return code
    return None


async def pair(transport: EvolutionTransport, timeout: float = 120.0) -> bool:
    try:
        return await _pair(transport, timeout)
    except TransportError as exc:
        LOGGER.error("Pairing %s failed: %s", transport.instance, exc)
        print(f"Gateway request failed: {exc}")
        return False


async def _pair(transport: EvolutionTransport, timeout: float) -> bool:
    state = await transport.connection_state()
    if state == "open":
        print("Instance is already connected.")
        return True

    result = await transport.connect_qr()
    payload = _qr_payload(result)
    if payload:
        print("Scan this code from WhatsApp > Linked devices:\n")
        _print_qr(payload)
    pairing_code = result.get("pairingCode")
    if pairing_code:
        print(f"Pairing code: {pairing_code}")
    if not payload and not pairing_code:
        print("The gateway did not return a QR code. Check the instance in the gateway.")
        return False

    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        await asyncio.sleep(POLL_SECONDS)
        state = await transport.connection_state()
        if state == "open":
            LOGGER.info("Instance %s paired", transport.instance)
            print("Connected.")
            return True
    print("Timed out waiting for the scan.")
    return False
