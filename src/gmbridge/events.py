"""Event types and dispatcher: inbound payloads, relay tasks, fan-out."""

from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from loguru import logger

from gmbridge.errors import EmptyMessage

if TYPE_CHECKING:
    from gmbridge.gateway.router import GroupMeRoom, SlackRoom


def _opt_str(value: Any) -> str | None:
    """Coerce a payload field to str; None and '' stay None."""
    if value is None:
        return None
    value = str(value)
    return value or None


@dataclass(frozen=True)
class GroupMeAttachment:
    """One entry of a GroupMe message's attachments list."""

    type: str
    url: str | None = None


@dataclass(frozen=True)
class GroupMeInbound:
    """GroupMe bot callback body."""

    group_id: str | None
    user_id: str | None
    name: str | None
    text: str | None
    avatar_url: str | None = None
    attachments: tuple[GroupMeAttachment, ...] = ()

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> GroupMeInbound:
        """Build from a parsed request body. Unknown keys are ignored."""
        raw_attachments = payload.get("attachments")
        attachments: list[GroupMeAttachment] = []
        if isinstance(raw_attachments, list):
            for item in raw_attachments:
                if not isinstance(item, dict):
                    continue
                attachments.append(
                    GroupMeAttachment(type=str(item.get("type", "")), url=_opt_str(item.get("url")))
                )
        return cls(
            group_id=_opt_str(payload.get("group_id")),
            user_id=_opt_str(payload.get("user_id")),
            name=_opt_str(payload.get("name")),
            text=_opt_str(payload.get("text")),
            avatar_url=_opt_str(payload.get("avatar_url")),
            attachments=tuple(attachments),
        )


@dataclass(frozen=True)
class SlackInbound:
    """Slack outgoing-webhook body."""

    channel_name: str | None
    token: str | None
    user_name: str | None
    user_id: str | None
    text: str | None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> SlackInbound:
        return cls(
            channel_name=_opt_str(payload.get("channel_name")),
            token=_opt_str(payload.get("token")),
            user_name=_opt_str(payload.get("user_name")),
            user_id=_opt_str(payload.get("user_id")),
            text=_opt_str(payload.get("text")),
        )


@dataclass(frozen=True)
class RelayTask:
    """Platform-agnostic message waiting to be posted on the other side."""

    target: str  # "groupme" | "slack"
    source_display_name: str
    destination: GroupMeRoom | SlackRoom
    body_text: str | None = None
    attachment_urls: tuple[str, ...] = ()
    fallback_label: str | None = None
    avatar_url: str | None = None


@dataclass(frozen=True)
class InboundResult:
    """Acknowledgement for an accepted inbound request."""

    relayed: bool
    message: str


class EventTarget(Protocol):
    """Bus target interface: accept_event + push_event."""

    def accept_event(self, source: str, evt: object) -> bool:
        """Return True if this target wants the event."""
        ...

    def push_event(self, source: str, evt: object) -> None:
        """Handle the event (may be async via queue)."""
        ...


def event(type_name: str):
    """Decorator to mark a factory as producing an event with a given type."""

    def decorator(f: Any) -> Any:
        @functools.wraps(f)
        def wrapper(*args: Any, **kwargs: Any) -> tuple[str, object]:
            evt = f(*args, **kwargs)
            return (type_name, evt)

        wrapper.TYPE = type_name
        return wrapper

    return decorator


@event("relay_task")
def relay_task(
    target: str,
    source_display_name: str,
    destination: GroupMeRoom | SlackRoom,
    *,
    body_text: str | None = None,
    attachment_urls: list[str] | tuple[str, ...] = (),
    fallback_label: str | None = None,
    avatar_url: str | None = None,
) -> RelayTask:
    if not body_text and not attachment_urls:
        raise EmptyMessage(details={"target": target})
    return RelayTask(
        target=target,
        source_display_name=source_display_name,
        destination=destination,
        body_text=body_text or None,
        attachment_urls=tuple(attachment_urls),
        fallback_label=fallback_label,
        avatar_url=avatar_url,
    )


class Dispatcher:
    """Central event dispatcher; targets filter by type and receive events."""

    def __init__(self) -> None:
        self._targets: list[EventTarget] = []

    def register(self, target: EventTarget) -> None:
        """Register an event target (adapter)."""
        self._targets.append(target)

    def unregister(self, target: EventTarget) -> None:
        """Unregister an event target."""
        if target in self._targets:
            self._targets.remove(target)

    def dispatch(self, source: str, evt: object) -> int:
        """Dispatch event to all targets that accept it. Returns how many took it."""
        delivered = 0
        for target in self._targets:
            try:
                if target.accept_event(source, evt):
                    target.push_event(source, evt)
                    delivered += 1
            except Exception as exc:
                logger.exception("Failed to pass event to target {}: {}", target, exc)
        return delivered
