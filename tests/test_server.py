"""Integration tests for the webhook endpoints."""

from __future__ import annotations

import json

import pytest
from httpx import ASGITransport, AsyncClient

from gmbridge.adapters import GroupMeAdapter, SlackAdapter
from gmbridge.server import create_app
from tests.conftest import GROUPME_API_URL, SLACK_WEBHOOK_URL


@pytest.fixture
def adapters(bus, router):
    groupme = GroupMeAdapter(bus, router, api_url=GROUPME_API_URL)
    slack = SlackAdapter(bus, router, webhook_url=SLACK_WEBHOOK_URL, self_user_id="USLACK")
    bus.register(groupme)
    bus.register(slack)
    return groupme, slack


@pytest.fixture
def app(router, adapters):
    groupme, slack = adapters
    return create_app(router, groupme, slack)


def _client(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


def _groupme_body(**overrides):
    body = {
        "group_id": "G1",
        "user_id": "U2",
        "name": "Alice",
        "text": "hi",
        "avatar_url": None,
        "attachments": [
            {"type": "image", "url": "http://x/a.png"},
            {"type": "location", "url": "http://x/b"},
        ],
    }
    body.update(overrides)
    return body


def _slack_form(**overrides):
    form = {
        "token": "tok-general",
        "channel_name": "general",
        "user_id": "U5",
        "user_name": "bob",
        "text": "hello from slack",
    }
    form.update(overrides)
    return form


class TestGroupMeEndpoint:
    @pytest.mark.asyncio
    async def test_message_is_queued_for_slack(self, app, adapters):
        groupme, slack = adapters
        async with _client(app) as client:
            resp = await client.post("/groupme", json=_groupme_body())

        assert resp.status_code == 200
        assert resp.text == "request queued"
        assert resp.headers["content-type"].startswith("text/plain")
        assert slack.pending == 1
        assert groupme.pending == 0
        task = slack._queue.get_nowait()
        assert task.body_text == "hi"
        assert task.attachment_urls == ("http://x/a.png",)
        assert task.destination.name == "general"

    @pytest.mark.asyncio
    async def test_self_message_acknowledged_not_queued(self, app, adapters):
        _, slack = adapters
        async with _client(app) as client:
            resp = await client.post("/groupme", json=_groupme_body(user_id="U1"))
        assert resp.status_code == 200
        assert resp.text == "ignoring message from self"
        assert slack.pending == 0

    @pytest.mark.asyncio
    async def test_unknown_group(self, app, adapters):
        _, slack = adapters
        async with _client(app) as client:
            resp = await client.post("/groupme", json=_groupme_body(group_id="G404"))
        assert resp.status_code == 400
        assert resp.text == "unknown room"
        assert slack.pending == 0

    @pytest.mark.asyncio
    async def test_no_text_or_attachments(self, app, adapters):
        _, slack = adapters
        async with _client(app) as client:
            resp = await client.post(
                "/groupme", json=_groupme_body(text="", attachments=[{"type": "location"}])
            )
        assert resp.status_code == 400
        assert resp.text == "expected text or attachments"
        assert slack.pending == 0

    @pytest.mark.asyncio
    async def test_invalid_json_is_unknown_room(self, app):
        async with _client(app) as client:
            resp = await client.post(
                "/groupme", content=b"{not json", headers={"content-type": "application/json"}
            )
        assert resp.status_code == 400
        assert resp.text == "unknown room"

    @pytest.mark.asyncio
    async def test_json_list_body(self, app):
        async with _client(app) as client:
            resp = await client.post("/groupme", content=json.dumps([1, 2]))
        assert resp.status_code == 400


class TestSlackEndpoint:
    @pytest.mark.asyncio
    async def test_form_message_is_queued_for_groupme(self, app, adapters):
        groupme, slack = adapters
        async with _client(app) as client:
            resp = await client.post("/slack", data=_slack_form())
        assert resp.status_code == 200
        assert resp.text == "request queued"
        assert groupme.pending == 1
        assert slack.pending == 0
        task = groupme._queue.get_nowait()
        assert task.source_display_name == "bob"
        assert task.destination.bot_id == "BOT1"

    @pytest.mark.asyncio
    async def test_json_body_also_accepted(self, app, adapters):
        groupme, _ = adapters
        async with _client(app) as client:
            resp = await client.post("/slack", json=_slack_form())
        assert resp.status_code == 200
        assert groupme.pending == 1

    @pytest.mark.asyncio
    async def test_wrong_token(self, app, adapters):
        groupme, _ = adapters
        async with _client(app) as client:
            resp = await client.post("/slack", data=_slack_form(token="forged"))
        assert resp.status_code == 400
        assert resp.text == "invalid or missing token"
        assert groupme.pending == 0

    @pytest.mark.asyncio
    async def test_missing_token(self, app, adapters):
        groupme, _ = adapters
        form = _slack_form()
        del form["token"]
        async with _client(app) as client:
            resp = await client.post("/slack", data=form)
        assert resp.status_code == 400
        assert resp.text == "invalid or missing token"
        assert groupme.pending == 0

    @pytest.mark.asyncio
    async def test_unknown_channel(self, app):
        async with _client(app) as client:
            resp = await client.post("/slack", data=_slack_form(channel_name="off-topic"))
        assert resp.status_code == 400
        assert resp.text == "unknown room"

    @pytest.mark.asyncio
    async def test_self_message(self, app, adapters):
        groupme, _ = adapters
        async with _client(app) as client:
            resp = await client.post("/slack", data=_slack_form(user_id="USLACK"))
        assert resp.status_code == 200
        assert resp.text == "ignoring message from self"
        assert groupme.pending == 0


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, app):
        async with _client(app) as client:
            resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "gateways": 2, "pending": {"groupme": 0, "slack": 0}}

    @pytest.mark.asyncio
    async def test_get_on_webhook_not_allowed(self, app):
        async with _client(app) as client:
            resp = await client.get("/groupme")
        assert resp.status_code == 405
