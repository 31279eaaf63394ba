"""Text-generation responder adapters.

HttpResponder calls the primary responder service, which answers JSON.
PlainTextResponder is the fallback path: it builds a chat-style prompt with
recent conversation context and reads a plain-text completion.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Sequence

import httpx

from core.models import FormattedMessage, ResponderRequest, ResponderResult

LOGGER = logging.getLogger(__name__)

ContextProvider = Callable[[str], Sequence[FormattedMessage]]
NameProvider = Callable[[str], Optional[str]]

SYSTEM_PROMPT = """You are {persona}, a friendly and professional assistant replying inside a WhatsApp chat.

- Reply in the same language as the conversation.
- Keep replies short and natural, like a real WhatsApp message.
- Never mention that you were instructed to write the reply.
- Never prefix the reply with your name."""


class HttpResponder:
    """POST {key, instruction} and read {text} back."""

    def __init__(self, url: str, timeout: float = 60.0, client: Optional[httpx.AsyncClient] = None) -> None:
        self.url = url
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def generate(self, request: ResponderRequest) -> ResponderResult:
        try:
            response = await self._client.post(self.url, json={"key": request.key, "instruction": request.instruction})
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            LOGGER.warning("Responder request for %s failed: %s", request.key, exc)
            return ResponderResult(ok=False, error=str(exc) or type(exc).__name__)

        if not isinstance(body, dict):
            return ResponderResult(ok=False, error="unexpected responder payload")
        if body.get("error"):
            return ResponderResult(ok=False, error=str(body["error"]))
        text = body.get("text") or body.get("ai_response")
        if not isinstance(text, str) or not text.strip():
            return ResponderResult(ok=False, error="AI generated empty response")
        return ResponderResult(ok=True, text=text.strip())

    async def aclose(self) -> None:
        await self._client.aclose()


def build_user_prompt(instruction: str, recent: Sequence[FormattedMessage]) -> str:
    lines = [f"{message.sender_name}: {message.content or ''}" for message in recent]
    if not lines:
        return f"Instruction: {instruction}\n\nWrite a natural WhatsApp response."
    conversation = "\n".join(lines)
    return (
        f"Recent conversation:\n{conversation}\n\n"
        f"Instruction: {instruction}\n\n"
        "Write a natural WhatsApp response based on the instruction and conversation context."
    )


def build_system_prompt(persona: str, contact_name: Optional[str] = None) -> str:
    prompt = SYSTEM_PROMPT.format(persona=persona)
    if contact_name:
        prompt += f"\n\nContact name: {contact_name}"
    return prompt


class PlainTextResponder:
    """Chat-completion style endpoint that answers with plain text."""

    def __init__(
        self,
        url: str,
        model: str = "openai",
        persona: str = "the assistant",
        context: Optional[ContextProvider] = None,
        names: Optional[NameProvider] = None,
        timeout: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.url = url
        self.model = model
        self.persona = persona
        self._context = context
        self._names = names
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def generate(self, request: ResponderRequest) -> ResponderResult:
        recent = self._context(request.key) if self._context else ()
        contact_name = self._names(request.key) if self._names else None
        payload = {
            "messages": [
                {"role": "system", "content": build_system_prompt(self.persona, contact_name)},
                {"role": "user", "content": build_user_prompt(request.instruction, recent)},
            ],
            "model": self.model,
            "seed": int(time.time() * 1000),
        }
        try:
            response = await self._client.post(self.url, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            LOGGER.warning("Fallback responder failed for %s: %s", request.key, exc)
            return ResponderResult(ok=False, error=str(exc) or type(exc).__name__, source="fallback")

        text = response.text.strip()
        if len(text) < 2:
            return ResponderResult(ok=False, error="fallback returned no text", source="fallback")
        return ResponderResult(ok=True, text=text, source="fallback")

    async def aclose(self) -> None:
        await self._client.aclose()
