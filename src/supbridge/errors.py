"""Exception hierarchy for the Sup chat bridge.

Startup failures (configuration, credentials) propagate to whoever started
the gateway. Everything raised inside a poll cycle is caught by the sync loop
and logged. The outbound boundary converts all of these to a ``SendResult``.
"""

from __future__ import annotations


class SupChatError(Exception):
    """Base class for every error raised by supbridge."""


class ConfigurationMissing(SupChatError):
    """No ``[sup_chat]`` section is configured."""

    def __init__(self, message: str = "Sup chat not configured") -> None:
        super().__init__(message)


class CredentialLoadFailure(SupChatError):
    """The auth session file is missing, unreadable, or empty."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load auth session: {reason}")


class RequestFailed(SupChatError):
    """The remote service answered with a non-success status."""

    def __init__(self, status: int, reason: str | None) -> None:
        self.status = status
        self.reason = reason or ""
        super().__init__(f"API request failed: {status} {self.reason}".rstrip())


class TransportError(SupChatError):
    """The HTTP call could not complete (DNS, connection, timeout)."""


class MalformedSnapshot(SupChatError):
    """The chat-panel response did not have the expected envelope."""
