"""GroupMe <-> Slack relay bridge."""

__version__ = "0.1.0"
