"""GroupMe adapter: bot callbacks in, bot posts out."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx
from loguru import logger

from gmbridge.adapters.base import AdapterBase
from gmbridge.errors import EmptyMessage, UnknownRoom
from gmbridge.events import GroupMeInbound, InboundResult, RelayTask, relay_task
from gmbridge.formatting import groupme_text
from gmbridge.gateway.router import GroupMeRoom

if TYPE_CHECKING:
    from gmbridge.gateway import Bus, RoutingTable

DEFAULT_API_URL = "https://api.groupme.com/v3/bots/post"
IMAGE_FALLBACK = "GroupMe image attachment"

# Attachment types we know about but can't show on Slack
_KNOWN_DROPPED_TYPES = frozenset({"location"})


class GroupMeAdapter(AdapterBase):
    """Relays GroupMe group messages to Slack; posts Slack messages via the group's bot."""

    def __init__(
        self,
        bus: Bus,
        router: RoutingTable,
        *,
        api_url: str = DEFAULT_API_URL,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
        delay: float = 0.0,
    ) -> None:
        super().__init__(bus, router, client=client, timeout=timeout, delay=delay)
        self._api_url = api_url

    @property
    def name(self) -> str:
        return "groupme"

    def handle_inbound(self, payload: GroupMeInbound) -> InboundResult:
        """Validate a GroupMe callback and queue it for Slack.

        Raises UnknownRoom or EmptyMessage; nothing is queued in that case.
        """
        pairing = self._router.lookup_by_groupme(payload.group_id)
        if pairing is None:
            logger.warning("groupme: unknown group_id {}", payload.group_id)
            raise UnknownRoom(details={"group_id": payload.group_id})

        group = pairing.groupme
        if group.user_id is None:
            logger.warning(
                "groupme: no user_id set for group {}, ignoring message: {}",
                group.name,
                payload,
            )
            return InboundResult(
                relayed=False,
                message="ignoring message to group without user_id configured",
            )
        if payload.user_id == group.user_id:
            # the bot's own post echoed back
            return InboundResult(relayed=False, message="ignoring message from self")

        urls: list[str] = []
        for attachment in payload.attachments:
            if attachment.type == "image":
                if attachment.url:
                    urls.append(attachment.url)
            elif attachment.type in _KNOWN_DROPPED_TYPES:
                logger.debug("groupme: dropping {} attachment", attachment.type)
            else:
                logger.warning("groupme: unknown attachment: {}", attachment)

        try:
            _, task = relay_task(
                "slack",
                payload.name or "unknown",
                pairing.slack,
                body_text=payload.text,
                attachment_urls=urls,
                fallback_label=IMAGE_FALLBACK if urls else None,
                avatar_url=payload.avatar_url,
            )
        except EmptyMessage:
            logger.warning("groupme: POST without text or attachments: {}", payload)
            raise

        if not self._bus.publish(self.name, task):
            logger.error("groupme: no delivery queue took the task for slack #{}", pairing.slack.name)
        return InboundResult(relayed=True, message="request queued")

    def post_url(self, task: RelayTask) -> str:
        return self._api_url

    def format_payload(self, task: RelayTask) -> dict[str, Any]:
        group = task.destination
        if not isinstance(group, GroupMeRoom):
            raise TypeError(f"groupme task destination must be a GroupMeRoom, got {group!r}")
        return {
            "bot_id": group.bot_id,
            "text": groupme_text(task.source_display_name, task.body_text),
        }
