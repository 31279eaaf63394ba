"""HTTP gateway transport adapter.

Talks to an Evolution-API style gateway that holds the WhatsApp session.
Every failure surfaces as core.ports.TransportError so callers only handle
one exception type.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

import httpx

from adapters.evolution_mapper import lookup_from_payload
from core.jids import is_phone, user_part
from core.models import LookupResult
from core.ports import TransportError

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class EvolutionTransport:
    """Gateway client bound to one instance name."""

    def __init__(
        self,
        base_url: str,
        instance: str,
        api_key: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.instance = instance
        self._api_key = api_key
        self._client = client or httpx.AsyncClient(timeout=timeout)

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self._api_key:
            headers["apikey"] = self._api_key
        return headers

    async def _request(self, method: str, path: str, payload: Optional[dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}{path}/{self.instance}"
        try:
            response = await self._client.request(method, url, json=payload, headers=self._headers())
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise TransportError(f"HTTP {exc.response.status_code} from {path}: {exc.response.text[:200]}") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"{path} failed: {exc}") from exc
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(f"{path} returned invalid JSON") from exc

    async def send_text(self, key: str, text: str) -> str:
        """Send a text message and return the gateway's message id."""

        # Groups and LIDs need the full key; phones accept bare digits too.
        number = user_part(key) if is_phone(key) else key
        result = await self._request("POST", "/message/sendText", {"number": number, "text": text})
        message_id = ""
        if isinstance(result, dict):
            key_info = result.get("key")
            if isinstance(key_info, dict):
                message_id = key_info.get("id") or ""
        LOGGER.debug("Sent text to %s (%s)", key, message_id or "no id")
        return message_id

    async def resolve_existence_and_identity(self, phones: Sequence[str]) -> list[LookupResult]:
        """One combined existence/identity lookup for a batch of phone keys."""

        if not phones:
            return []
        result = await self._request("POST", "/chat/whatsappNumbers", {"numbers": list(phones)})
        if not isinstance(result, list):
            raise TransportError("whatsappNumbers returned an unexpected payload")
        return lookup_from_payload(result, requested=phones)

    async def connect_qr(self) -> dict[str, Any]:
        """Ask the gateway to connect the instance; returns pairing code and QR."""

        result = await self._request("GET", "/instance/connect")
        return result if isinstance(result, dict) else {}

    async def connection_state(self) -> str:
        result = await self._request("GET", "/instance/connectionState")
        if isinstance(result, dict):
            instance = result.get("instance")
            if isinstance(instance, dict) and instance.get("state"):
                return str(instance["state"])
            if result.get("state"):
                return str(result["state"])
        return "unknown"

    async def aclose(self) -> None:
        await self._client.aclose()
