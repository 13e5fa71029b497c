"""Bridge domain exceptions."""

from __future__ import annotations


class BridgeError(Exception):
    """Base for bridge domain errors."""

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: dict[str, object] | None = None,
        original_error: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or {}
        self.original_error = original_error


class BridgeConfigurationError(BridgeError):
    """Config validation or load failure. Fatal at startup."""


class RelayRejected(BridgeError):
    """Inbound message refused before anything was queued.

    ``reason`` is the plain-text body returned to the caller with a 400.
    """

    reason = "bad request"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        details: dict[str, object] | None = None,
    ) -> None:
        super().__init__(message or self.reason, code=code, details=details)


class UnknownRoom(RelayRejected):
    """Source group/channel has no configured pairing."""

    reason = "unknown room"


class InvalidCredential(RelayRejected):
    """Slack verification token missing or wrong."""

    reason = "invalid or missing token"


class EmptyMessage(RelayRejected):
    """Neither text nor a usable attachment."""

    reason = "expected text or attachments"
