"""Shared fixtures: a two-gateway config, routing table, bus and stubbed HTTP."""

from __future__ import annotations

import asyncio
import copy
from typing import Any

import httpx
import pytest

from gmbridge.events import RelayTask
from gmbridge.gateway import Bus, RoutingTable

SLACK_WEBHOOK_URL = "https://hooks.slack.test/services/T0/B0/xyz"
GROUPME_API_URL = "https://api.groupme.test/v3/bots/post"

CONFIG: dict[str, Any] = {
    "groupme": {
        "groups": [
            {"group_id": "G1", "name": "Friends", "bot_id": "BOT1", "user_id": "U1"},
            {"group_id": "G2", "name": "Family", "bot_id": "BOT2"},
        ]
    },
    "slack": {
        "webhook_url": SLACK_WEBHOOK_URL,
        "user_id": "USLACK",
        "channels": [
            {"name": "general", "token": "tok-general"},
            {"name": "random", "token": "tok-random"},
        ],
    },
    "gateways": [
        {"groupme": "G1", "slack": "general"},
        {"groupme": "G2", "slack": "random"},
    ],
}


class TaskRecorder:
    """Bus target that records every RelayTask."""

    def __init__(self) -> None:
        self.tasks: list[RelayTask] = []

    def accept_event(self, source: str, evt: object) -> bool:
        return isinstance(evt, RelayTask)

    def push_event(self, source: str, evt: object) -> None:
        self.tasks.append(evt)  # type: ignore[arg-type]


class RecordingTransport:
    """httpx handler that records requests and the start/end order of each call."""

    def __init__(
        self,
        *,
        status_code: int = 200,
        body: str = "ok",
        delay: float = 0.0,
        error: type[httpx.HTTPError] | None = None,
    ) -> None:
        self.status_code = status_code
        self.body = body
        self.delay = delay
        self.error = error
        self.requests: list[httpx.Request] = []
        self.timeline: list[tuple[str, int]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        index = len(self.requests)
        self.requests.append(request)
        self.timeline.append(("start", index))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.error is not None:
                raise self.error("simulated failure", request=request)
            return httpx.Response(self.status_code, text=self.body)
        finally:
            self.in_flight -= 1
            self.timeline.append(("end", index))


@pytest.fixture
def config_data() -> dict[str, Any]:
    return copy.deepcopy(CONFIG)


@pytest.fixture
def router(config_data: dict[str, Any]) -> RoutingTable:
    return RoutingTable.from_config(config_data)


@pytest.fixture
def bus() -> Bus:
    return Bus()


@pytest.fixture
def recorder(bus: Bus) -> TaskRecorder:
    rec = TaskRecorder()
    bus.register(rec)
    return rec
