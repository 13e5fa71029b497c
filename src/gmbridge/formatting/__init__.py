"""Message formatting for GroupMe and Slack posts."""

from gmbridge.formatting.groupme import groupme_text
from gmbridge.formatting.slack import slack_attachments, slack_username

__all__ = ["groupme_text", "slack_attachments", "slack_username"]
