"""Static configuration for wabridge.

All user-editable settings (webhook, auto-reply, responder, persistence,
logging) live in a single JSON file for quick edits without touching
Python. Secrets stay in .env (see client.py).
"""

import json
import os

from core.config import AutoReplyConfig, PersistenceConfig

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

CONFIG_PATH = os.path.join(PROJECT_ROOT, "config.json")


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _resolve_path(path: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.join(PROJECT_ROOT, path)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Gateway request timeout; URL, instance and key come from .env.
_gateway = _CONFIG.get("gateway", {})
GATEWAY_TIMEOUT = float(_gateway.get("timeout_seconds", 30))

# Webhook/API listener.
_webhook = _CONFIG.get("webhook", {})
WEBHOOK_HOST = _webhook.get("host", "127.0.0.1")
WEBHOOK_PORT = int(_webhook.get("port", 3000))

# Global auto-reply switches; per-contact overrides live in the CRM blob.
AUTO_REPLY = AutoReplyConfig.from_mapping(_CONFIG.get("auto_reply", {}))

# Responder endpoints. fallback_url is optional.
_responder = _CONFIG.get("responder", {})
RESPONDER_URL = _responder.get("url", "http://localhost:3777/api/respond")
RESPONDER_FALLBACK_URL = _responder.get("fallback_url")
RESPONDER_FALLBACK_MODEL = _responder.get("fallback_model", "openai")
RESPONDER_PERSONA = _responder.get("persona", "the AI assistant")
RESPONDER_TIMEOUT = float(_responder.get("timeout_seconds", 60))

# Snapshot directory and cadence.
_persistence = _CONFIG.get("persistence", {})
PERSISTENCE = PersistenceConfig(
    store_dir=_resolve_path(_persistence.get("store_dir", "store")),
    flush_interval_seconds=float(_persistence.get("flush_interval_seconds", 30)),
    bootstrap_delay_seconds=float(_persistence.get("bootstrap_delay_seconds", 10)),
)

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
