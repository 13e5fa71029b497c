"""Routing table: GroupMe group <-> Slack channel pairings."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from loguru import logger

from gmbridge.errors import BridgeConfigurationError


@dataclass(frozen=True)
class GroupMeRoom:
    """GroupMe side of a pairing."""

    group_id: str
    name: str
    bot_id: str
    user_id: str | None  # account the bot posts as; None = unknown


@dataclass(frozen=True)
class SlackRoom:
    """Slack side of a pairing."""

    name: str
    token: str


@dataclass(frozen=True)
class RoomPairing:
    """One gateway: GroupMe group <-> Slack channel."""

    groupme: GroupMeRoom
    slack: SlackRoom


def _channel_name(value: Any) -> str:
    return str(value).lstrip("#")


def _parse_groups(raw: Any) -> dict[str, GroupMeRoom]:
    if raw is None:
        return {}
    if not isinstance(raw, list):
        raise BridgeConfigurationError(
            "groupme.groups must be a list",
            code="invalid_groupme_groups",
            details={"type": type(raw).__name__},
        )
    groups: dict[str, GroupMeRoom] = {}
    for i, item in enumerate(raw):
        if not isinstance(item, dict) or not item.get("group_id") or not item.get("bot_id"):
            raise BridgeConfigurationError(
                f"groupme.groups[{i}] needs group_id and bot_id",
                code="invalid_groupme_group",
                details={"index": i},
            )
        group_id = str(item["group_id"])
        user_id = item.get("user_id")
        groups[group_id] = GroupMeRoom(
            group_id=group_id,
            name=str(item.get("name") or group_id),
            bot_id=str(item["bot_id"]),
            user_id=str(user_id) if user_id else None,
        )
    return groups


def _parse_channels(raw: Any) -> dict[str, SlackRoom]:
    if raw is None:
        return {}
    if not isinstance(raw, list):
        raise BridgeConfigurationError(
            "slack.channels must be a list",
            code="invalid_slack_channels",
            details={"type": type(raw).__name__},
        )
    channels: dict[str, SlackRoom] = {}
    for i, item in enumerate(raw):
        if not isinstance(item, dict) or not item.get("name") or not item.get("token"):
            raise BridgeConfigurationError(
                f"slack.channels[{i}] needs name and token",
                code="invalid_slack_channel",
                details={"index": i},
            )
        name = _channel_name(item["name"])
        channels[name] = SlackRoom(name=name, token=str(item["token"]))
    return channels


class RoutingTable:
    """Read-only lookup of pairings by GroupMe group id or Slack channel name.

    Built once at startup; every lookup is a dict hit.
    """

    def __init__(self, pairings: list[RoomPairing]) -> None:
        by_groupme: dict[str, RoomPairing] = {}
        by_slack: dict[str, RoomPairing] = {}
        for pairing in pairings:
            group_id = pairing.groupme.group_id
            channel = pairing.slack.name
            if group_id in by_groupme:
                raise BridgeConfigurationError(
                    f"groupme group '{group_id}' is used by more than one gateway",
                    code="duplicate_groupme",
                    details={"group_id": group_id},
                )
            if channel in by_slack:
                raise BridgeConfigurationError(
                    f"slack channel '{channel}' is used by more than one gateway",
                    code="duplicate_slack",
                    details={"channel": channel},
                )
            by_groupme[group_id] = pairing
            by_slack[channel] = pairing
        self._pairings = tuple(pairings)
        self._by_groupme: Mapping[str, RoomPairing] = MappingProxyType(by_groupme)
        self._by_slack: Mapping[str, RoomPairing] = MappingProxyType(by_slack)

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> RoutingTable:
        """Fold config ``gateways`` against ``groupme.groups`` and ``slack.channels``.

        Raises BridgeConfigurationError when a gateway names a group or
        channel that isn't configured.
        """
        groupme_cfg = config.get("groupme") or {}
        slack_cfg = config.get("slack") or {}
        groups = _parse_groups(groupme_cfg.get("groups") if isinstance(groupme_cfg, dict) else None)
        channels = _parse_channels(slack_cfg.get("channels") if isinstance(slack_cfg, dict) else None)

        raw = config.get("gateways")
        if raw is None:
            logger.warning("Router: no gateways in config; nothing will be relayed")
            raw = []
        if not isinstance(raw, list):
            raise BridgeConfigurationError(
                "gateways must be a list",
                code="invalid_gateways",
                details={"type": type(raw).__name__},
            )

        pairings: list[RoomPairing] = []
        for i, entry in enumerate(raw):
            if not isinstance(entry, dict):
                raise BridgeConfigurationError(
                    f"gateways[{i}] must be a dict",
                    code="invalid_gateway_item",
                    details={"index": i},
                )
            group_id = str(entry.get("groupme", ""))
            group = groups.get(group_id)
            if group is None:
                raise BridgeConfigurationError(
                    f"gateway config error: unknown groupme '{group_id}'",
                    code="unknown_groupme",
                    details={"index": i, "group_id": group_id},
                )
            channel_name = _channel_name(entry.get("slack", ""))
            channel = channels.get(channel_name)
            if channel is None:
                raise BridgeConfigurationError(
                    f"gateway config error: unknown slack '{channel_name}'",
                    code="unknown_slack",
                    details={"index": i, "channel": channel_name},
                )
            pairings.append(RoomPairing(groupme=group, slack=channel))

        table = cls(pairings)
        missing_self = sum(1 for p in pairings if p.groupme.user_id is None)
        logger.info(
            "Router: loaded {} gateways{}",
            len(table),
            f", {missing_self} without groupme user_id" if missing_self else "",
        )
        return table

    def lookup_by_groupme(self, group_id: str | None) -> RoomPairing | None:
        """Get pairing for a GroupMe group id."""
        if group_id is None:
            return None
        return self._by_groupme.get(group_id)

    def lookup_by_slack(self, channel_name: str | None) -> RoomPairing | None:
        """Get pairing for a Slack channel name (with or without '#')."""
        if channel_name is None:
            return None
        return self._by_slack.get(_channel_name(channel_name))

    def pairings(self) -> list[RoomPairing]:
        """Return all pairings."""
        return list(self._pairings)

    def __len__(self) -> int:
        return len(self._pairings)
