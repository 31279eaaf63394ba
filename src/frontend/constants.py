"""Shared constants for the Textual UI."""

from __future__ import annotations

from pathlib import Path

WHATSAPP_GREEN = "#25D366"
PROJECT_ROOT = Path(__file__).resolve().parents[2]
CONFIG_PATH = PROJECT_ROOT / "config.json"
DEFAULT_STORE_DIR = PROJECT_ROOT / "store"
