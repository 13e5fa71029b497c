"""FastAPI front end: GroupMe and Slack webhook endpoints."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from loguru import logger

from gmbridge import __version__
from gmbridge.adapters import GroupMeAdapter, SlackAdapter
from gmbridge.errors import RelayRejected
from gmbridge.events import GroupMeInbound, SlackInbound
from gmbridge.gateway import RoutingTable


async def _read_payload(request: Request) -> dict[str, Any]:
    """Parse a JSON or form-encoded body into a dict. Unparseable bodies become {}."""
    content_type = request.headers.get("content-type", "")
    if "application/x-www-form-urlencoded" in content_type or "multipart/form-data" in content_type:
        form = await request.form()
        return {key: value for key, value in form.items() if isinstance(value, str)}
    body = await request.body()
    if not body:
        return {}
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning("{}: body is not valid JSON", request.url.path)
        return {}
    return data if isinstance(data, dict) else {}


def create_app(router: RoutingTable, groupme: GroupMeAdapter, slack: SlackAdapter) -> FastAPI:
    """Create the bridge app. Delivery queues run for the lifetime of the app."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await groupme.start()
        await slack.start()
        try:
            yield
        finally:
            logger.info("Bridge shutting down")
            await groupme.stop()
            await slack.stop()

    app = FastAPI(title="gmbridge", version=__version__, docs_url=None, redoc_url=None, lifespan=lifespan)

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "gateways": len(router),
            "pending": {groupme.name: groupme.pending, slack.name: slack.pending},
        }

    @app.post("/groupme", response_class=PlainTextResponse)
    async def groupme_inbound(request: Request) -> PlainTextResponse:
        payload = GroupMeInbound.from_payload(await _read_payload(request))
        try:
            result = groupme.handle_inbound(payload)
        except RelayRejected as exc:
            return PlainTextResponse(exc.reason, status_code=400)
        return PlainTextResponse(result.message)

    @app.post("/slack", response_class=PlainTextResponse)
    async def slack_inbound(request: Request) -> PlainTextResponse:
        payload = SlackInbound.from_payload(await _read_payload(request))
        try:
            result = slack.handle_inbound(payload)
        except RelayRejected as exc:
            return PlainTextResponse(exc.reason, status_code=400)
        return PlainTextResponse(result.message)

    return app
