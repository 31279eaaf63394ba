"""Application entry point for the wabridge service."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from typing import Optional

import uvicorn
from art import tprint
from dotenv import load_dotenv

import settings
from adapters.crm_store import CrmStore
from adapters.evolution_transport import EvolutionTransport
from adapters.json_snapshot import JsonSnapshotStore
from adapters.responder import HttpResponder, PlainTextResponder
from adapters.webhook_server import create_app
from client import build_transport, webhook_secret
from core.auto_reply import AutoReplyDispatcher, AutoReplyPolicy, AutoReplyService
from core.context import BridgeContext, write_snapshot
from core.query import ConversationQueryService
from core.reconciliation import ReconciliationEngine
from core.tasks import BackgroundTasks

NAME = "WABRIDGE"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    formatter = _RedactingFormatter(_collect_redaction_values(config), fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/wabridge.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        file_handler = RotatingFileHandler(
            path,
            maxBytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
            backupCount=int(file_cfg.get("backup_count", 5)),
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


@dataclass
class _Bridge:
    snapshots: JsonSnapshotStore
    context: BridgeContext
    crm: CrmStore
    transport: EvolutionTransport
    tasks: BackgroundTasks
    engine: ReconciliationEngine
    query: ConversationQueryService
    responders: list


def _build_bridge() -> _Bridge:
    logger = logging.getLogger(__name__)

    snapshots = JsonSnapshotStore(settings.PERSISTENCE.store_dir)
    context = BridgeContext()
    context.restore(snapshots)
    crm = CrmStore(snapshots)
    logger.info("CRM loaded: %s contacts", crm.load())

    transport = build_transport(settings.GATEWAY_TIMEOUT)
    tasks = BackgroundTasks()
    engine = ReconciliationEngine(
        context,
        transport=transport,
        tasks=tasks,
        bootstrap_delay=settings.PERSISTENCE.bootstrap_delay_seconds,
    )
    query = ConversationQueryService(context, engine)

    primary = HttpResponder(settings.RESPONDER_URL, timeout=settings.RESPONDER_TIMEOUT)
    responders = [primary]
    fallback = None
    if settings.RESPONDER_FALLBACK_URL:
        fallback = PlainTextResponder(
            settings.RESPONDER_FALLBACK_URL,
            model=settings.RESPONDER_FALLBACK_MODEL,
            persona=settings.RESPONDER_PERSONA,
            context=query.recent_context,
            names=query.contact_name,
            timeout=settings.RESPONDER_TIMEOUT,
        )
        responders.append(fallback)

    # The policy reads overrides through the CRM store on every message.
    service = AutoReplyService(
        AutoReplyPolicy(settings.AUTO_REPLY, context.identity.resolve, crm),
        AutoReplyDispatcher(primary, transport, fallback=fallback, persona=settings.RESPONDER_PERSONA),
        tasks,
    )
    engine.on_inbound = service.handle
    logger.info(
        "Auto-reply %s (private_only=%s, %s allowed groups)",
        "enabled" if settings.AUTO_REPLY.enabled else "disabled",
        settings.AUTO_REPLY.private_only,
        len(settings.AUTO_REPLY.group_keys),
    )

    return _Bridge(snapshots, context, crm, transport, tasks, engine, query, responders)


async def _flush(bridge: _Bridge) -> None:
    # Copy on the loop, write off it.
    payload = bridge.context.snapshot()
    await asyncio.to_thread(write_snapshot, bridge.snapshots, payload)


async def _flush_loop(bridge: _Bridge, interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        await _flush(bridge)


async def _close(bridge: _Bridge) -> None:
    await bridge.transport.aclose()
    for responder in bridge.responders:
        await responder.aclose()


async def _serve() -> None:
    logger = logging.getLogger(__name__)
    bridge = _build_bridge()

    app = create_app(bridge.engine, bridge.query, crm=bridge.crm, secret=webhook_secret())
    server = uvicorn.Server(
        uvicorn.Config(app, host=settings.WEBHOOK_HOST, port=settings.WEBHOOK_PORT, log_config=None)
    )

    flusher = asyncio.create_task(_flush_loop(bridge, settings.PERSISTENCE.flush_interval_seconds))
    logger.info("Listening for gateway events on %s:%s", settings.WEBHOOK_HOST, settings.WEBHOOK_PORT)
    try:
        await server.serve()
    finally:
        flusher.cancel()
        await asyncio.gather(flusher, return_exceptions=True)
        await bridge.tasks.cancel_all()
        await _flush(bridge)
        await _close(bridge)
        logger.info("Final flush complete")


def _run() -> None:
    _print_banner()
    _configure_logging()
    logging.getLogger(__name__).info("Starting wabridge")
    asyncio.run(_serve())


def _setup() -> None:
    _print_banner()
    from frontend.app import ConfigPanelApp

    ConfigPanelApp().run()


def _pair() -> None:
    _print_banner()
    _configure_logging()
    from pairing import pair

    async def _run_pair() -> None:
        transport = build_transport(settings.GATEWAY_TIMEOUT)
        try:
            await pair(transport)
        finally:
            await transport.aclose()

    asyncio.run(_run_pair())


def _bootstrap() -> None:
    _print_banner()
    _configure_logging()

    async def _run_bootstrap() -> None:
        bridge = _build_bridge()
        try:
            count = await bridge.query.bootstrap_mappings()
            await _flush(bridge)
        finally:
            await _close(bridge)
        print(f"Registered {count} LID mappings ({len(bridge.context.identity)} total).")

    asyncio.run(_run_bootstrap())


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="wabridge")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the webhook listener and query API")
    subparsers.add_parser("config", help="Launch the config TUI")
    subparsers.add_parser("pair", help="Link the gateway instance by scanning a QR code")
    subparsers.add_parser(
        "bootstrap",
        help="Look up LIDs for stored phone conversations and migrate their messages.",
    )

    args = parser.parse_args(argv)
    if args.command == "config":
        _setup()
        return
    if args.command == "pair":
        _pair()
        return
    if args.command == "bootstrap":
        _bootstrap()
        return
    _run()


if __name__ == "__main__":
    main()
