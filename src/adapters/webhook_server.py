"""Webhook intake and JSON query API.

The gateway POSTs every event to /webhook. Handler failures are logged and
still acknowledged with 200 so the gateway does not retry the same payload
in a loop. The /api routes are a thin JSON surface over the query service.
"""

from __future__ import annotations

import hmac
import logging
from dataclasses import asdict
from typing import Any, Callable, Optional

from fastapi import FastAPI, Header, HTTPException, Request, Response
from pydantic import BaseModel

from adapters.crm_store import OVERRIDE_MODES, CrmStore
from adapters.evolution_mapper import map_webhook
from core.events import GatewayEvent
from core.query import ConversationQueryService
from core.reconciliation import ReconciliationEngine

LOGGER = logging.getLogger(__name__)

PayloadMapper = Callable[[dict[str, Any]], list[GatewayEvent]]


class MappingRequest(BaseModel):
    lid: str
    phone: str


class AutoReplyUpdate(BaseModel):
    mode: str
    name: Optional[str] = None


def create_app(
    engine: ReconciliationEngine,
    query: ConversationQueryService,
    crm: Optional[CrmStore] = None,
    secret: Optional[str] = None,
    mapper: PayloadMapper = map_webhook,
) -> FastAPI:
    app = FastAPI(title="wabridge", docs_url=None, redoc_url=None)

    @app.post("/webhook")
    async def webhook(
        request: Request,
        x_webhook_secret: Optional[str] = Header(None, alias="X-Webhook-Secret"),
    ) -> Response:
        if secret and (not x_webhook_secret or not hmac.compare_digest(x_webhook_secret, secret)):
            LOGGER.warning("Webhook secret mismatch")
            return Response(status_code=401, content="unauthorized")

        try:
            payload = await request.json()
        except ValueError:
            LOGGER.warning("Webhook body is not valid JSON")
            return Response(status_code=400, content="invalid json")
        if not isinstance(payload, dict):
            return Response(status_code=400, content="invalid payload")

        try:
            events = mapper(payload)
        except Exception:
            LOGGER.exception("Failed to map gateway event %r", payload.get("event"))
            return Response(status_code=200, content="ok")
        for event in events:
            try:
                await engine.handle(event)
            except Exception:
                LOGGER.exception("Failed to handle %s from %r", type(event).__name__, payload.get("event"))
        return Response(status_code=200, content="ok")

    @app.get("/api/status")
    async def status() -> dict[str, Any]:
        return {
            "connection": engine.connection_state,
            "store": query.store_counts(),
            "background_tasks": engine.tasks.pending,
        }

    @app.get("/api/resolve/{key}")
    async def resolve(key: str) -> dict[str, Any]:
        resolved = query.resolve(key)
        return {"key": key, "resolved": resolved, "name": query.contact_name(key)}

    @app.get("/api/messages/{key}")
    async def messages(key: str, since: str = "24h", limit: int = 200) -> dict[str, Any]:
        result = query.query(key, since=since, limit=limit)
        return {
            "key": query.resolve(key),
            "count": len(result),
            "messages": [asdict(message) for message in result],
        }

    @app.get("/api/search")
    async def search(q: str, key: Optional[str] = None, since: Optional[str] = None, limit: int = 50) -> dict[str, Any]:
        hits = query.search_messages(q, key=key, since=since, limit=limit)
        return {
            "query": q,
            "count": len(hits),
            "results": [{"key": hit.conversation_key, **asdict(hit.message)} for hit in hits],
        }

    @app.get("/api/stats/{key}")
    async def stats(key: str, since: str = "7d") -> dict[str, Any]:
        return asdict(query.chat_stats(key, since=since))

    @app.get("/api/identity-map")
    async def identity_map() -> dict[str, Any]:
        return query.get_identity_map()

    @app.post("/api/identity-map")
    async def register_mapping(body: MappingRequest) -> dict[str, Any]:
        if not query.register_mapping(body.lid, body.phone):
            raise HTTPException(status_code=400, detail="lid must end in @lid and phone in @s.whatsapp.net")
        return {"registered": True, "lid": body.lid, "phone": body.phone}

    @app.post("/api/identity-map/bootstrap")
    async def bootstrap() -> dict[str, Any]:
        return {"mappings": await query.bootstrap_mappings()}

    @app.get("/api/contacts/auto-reply")
    async def list_overrides() -> dict[str, Any]:
        if crm is None:
            return {"overrides": []}
        return {"overrides": crm.list_overrides()}

    @app.put("/api/contacts/{key}/auto-reply")
    async def set_override(key: str, body: AutoReplyUpdate) -> dict[str, Any]:
        if crm is None:
            raise HTTPException(status_code=503, detail="CRM store not configured")
        if body.mode not in OVERRIDE_MODES:
            raise HTTPException(status_code=400, detail=f"mode must be one of {', '.join(OVERRIDE_MODES)}")
        contact = crm.set_override(query.resolve(key), body.mode, body.name)
        return {"key": contact["jid"], "auto_reply": contact.get("auto_reply", "default")}

    return app
