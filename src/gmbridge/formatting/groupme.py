"""Format relayed messages as GroupMe bot posts."""

from __future__ import annotations


def groupme_text(display_name: str, body_text: str | None) -> str:
    """Prefix the sender so GroupMe readers can tell who spoke: ``[name] text``.

    The body is passed through untouched; GroupMe rejects over-long posts and
    the delivery queue logs that as a failed delivery.
    """
    return f"[{display_name}] {body_text or ''}"
