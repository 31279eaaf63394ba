"""Gateway client factory for wabridge.

The gateway URL, instance name and API key are read from .env via
python-dotenv to keep secrets out of the repo.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from dotenv import load_dotenv

from adapters.evolution_transport import DEFAULT_TIMEOUT, EvolutionTransport


def build_transport(timeout: float = DEFAULT_TIMEOUT) -> EvolutionTransport:
    """Create the gateway transport from environment variables."""

    load_dotenv()

    base_url = os.getenv("EVOLUTION_API_URL")
    instance = os.getenv("EVOLUTION_INSTANCE")
    api_key = os.getenv("EVOLUTION_API_KEY")

    # Fail fast on missing credentials instead of failing on the first send.
    if not base_url or not instance:
        raise RuntimeError("Missing EVOLUTION_API_URL or EVOLUTION_INSTANCE in environment")

    logging.getLogger(__name__).info("Initializing gateway client for instance %s", instance)

    return EvolutionTransport(base_url, instance, api_key=api_key, timeout=timeout)


def webhook_secret() -> Optional[str]:
    load_dotenv()
    return os.getenv("WEBHOOK_SECRET") or None
