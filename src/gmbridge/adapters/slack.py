"""Slack adapter: outgoing-webhook requests in, incoming-webhook posts out."""

from __future__ import annotations

import hmac
from typing import TYPE_CHECKING, Any

import httpx
from loguru import logger

from gmbridge.adapters.base import AdapterBase
from gmbridge.errors import BridgeConfigurationError, EmptyMessage, InvalidCredential, UnknownRoom
from gmbridge.events import InboundResult, RelayTask, SlackInbound, relay_task
from gmbridge.formatting import slack_attachments, slack_username
from gmbridge.gateway.router import SlackRoom

if TYPE_CHECKING:
    from gmbridge.gateway import Bus, RoutingTable


def _token_matches(given: str | None, expected: str) -> bool:
    if not given:
        return False
    return hmac.compare_digest(given.encode(), expected.encode())


class SlackAdapter(AdapterBase):
    """Relays Slack channel messages to GroupMe; posts GroupMe messages via the webhook."""

    def __init__(
        self,
        bus: Bus,
        router: RoutingTable,
        *,
        webhook_url: str,
        self_user_id: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
        delay: float = 0.0,
    ) -> None:
        super().__init__(bus, router, client=client, timeout=timeout, delay=delay)
        if not webhook_url:
            raise BridgeConfigurationError("slack.webhook_url is required", code="missing_slack_webhook_url")
        self._webhook_url = webhook_url
        self._self_user_id = self_user_id

    @property
    def name(self) -> str:
        return "slack"

    def handle_inbound(self, payload: SlackInbound) -> InboundResult:
        """Authenticate a Slack outgoing-webhook request and queue it for GroupMe.

        Raises UnknownRoom, InvalidCredential or EmptyMessage; nothing is
        queued in that case.
        """
        pairing = self._router.lookup_by_slack(payload.channel_name)
        if pairing is None:
            logger.warning("slack: unknown channel {}", payload.channel_name)
            raise UnknownRoom(details={"channel": payload.channel_name})

        if not _token_matches(payload.token, pairing.slack.token):
            logger.warning(
                "slack: invalid or missing token for channel {} from user {}",
                payload.channel_name,
                payload.user_name,
            )
            raise InvalidCredential(details={"channel": payload.channel_name})

        if self._self_user_id is not None and payload.user_id == self._self_user_id:
            return InboundResult(relayed=False, message="ignoring message from self")

        try:
            _, task = relay_task(
                "groupme",
                payload.user_name or "unknown",
                pairing.groupme,
                body_text=payload.text,
            )
        except EmptyMessage:
            logger.warning("slack: POST without text in channel {}", payload.channel_name)
            raise

        if not self._bus.publish(self.name, task):
            logger.error("slack: no delivery queue took the task for groupme group {}", pairing.groupme.name)
        return InboundResult(relayed=True, message="request queued")

    def post_url(self, task: RelayTask) -> str:
        return self._webhook_url

    def is_success(self, response: httpx.Response) -> bool:
        return response.status_code == 200

    def format_payload(self, task: RelayTask) -> dict[str, Any]:
        channel = task.destination
        if not isinstance(channel, SlackRoom):
            raise TypeError(f"slack task destination must be a SlackRoom, got {channel!r}")
        payload: dict[str, Any] = {
            "channel": f"#{channel.name}",
            "username": slack_username(task.source_display_name),
            "parse": "full",
            "attachments": slack_attachments(task.attachment_urls, task.fallback_label),
        }
        if task.body_text:
            payload["text"] = task.body_text
        if task.avatar_url:
            payload["icon_url"] = task.avatar_url
        return payload
