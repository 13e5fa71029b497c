"""Gateway: task bus and routing table."""

from gmbridge.gateway.bus import Bus
from gmbridge.gateway.router import GroupMeRoom, RoomPairing, RoutingTable, SlackRoom

__all__ = ["Bus", "GroupMeRoom", "RoomPairing", "RoutingTable", "SlackRoom"]
