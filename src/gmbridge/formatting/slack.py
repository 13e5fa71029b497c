"""Format relayed messages as Slack incoming-webhook posts."""

from __future__ import annotations

from collections.abc import Iterable

ORIGIN_TAG = "[groupme]"


def slack_username(display_name: str) -> str:
    """Display name shown on the relayed post, tagged with where it came from."""
    return f"{display_name} {ORIGIN_TAG}"


def slack_attachments(urls: Iterable[str], fallback: str | None) -> list[dict[str, str]]:
    """One attachment block per image URL, URL order kept."""
    blocks: list[dict[str, str]] = []
    for url in urls:
        block = {"text": url}
        if fallback:
            block["fallback"] = fallback
        blocks.append(block)
    return blocks
