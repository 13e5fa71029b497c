"""Platform adapters. Each implements base.AdapterBase."""

from gmbridge.adapters.base import AdapterBase
from gmbridge.adapters.groupme import GroupMeAdapter
from gmbridge.adapters.slack import SlackAdapter

__all__ = ["AdapterBase", "GroupMeAdapter", "SlackAdapter"]
