"""
Custom Exceptions for the Inbound Email Relay

All exceptions follow the pattern of specific, actionable errors
with context needed for debugging and logging.
"""

from dataclasses import dataclass
from typing import Any


class RelayError(Exception):
    """Base exception for the inbound email relay."""

    def __init__(self, message: str, **context: Any) -> None:
        self.message = message
        self.context = context
        super().__init__(message)

    def __str__(self) -> str:
        if self.context:
            context_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


@dataclass
class MessageParseError(RelayError):
    """Raw message could not be parsed as MIME."""

    reason: str

    def __init__(self, reason: str, error_message: str | None = None) -> None:
        self.reason = reason
        super().__init__(
            f"Failed to parse email: {reason}",
            reason=reason,
            error_message=error_message,
        )


@dataclass
class ForwardError(RelayError):
    """Forwarding the raw message to a target failed."""

    recipient: str

    def __init__(self, recipient: str, error_message: str | None = None) -> None:
        self.recipient = recipient
        super().__init__(
            f"Forward to '{recipient}' failed: {error_message or 'Unknown error'}",
            recipient=recipient,
            error_message=error_message,
        )


@dataclass
class ReplyError(RelayError):
    """Sending the automated reply failed."""

    recipient: str

    def __init__(self, recipient: str, error_message: str | None = None) -> None:
        self.recipient = recipient
        super().__init__(
            f"Automated reply to '{recipient}' failed: {error_message or 'Unknown error'}",
            recipient=recipient,
            error_message=error_message,
        )


@dataclass
class WebhookError(RelayError):
    """Posting the notification to the chat webhook failed."""

    status_code: int | None = None

    def __init__(
        self,
        status_code: int | None = None,
        error_message: str | None = None,
    ) -> None:
        self.status_code = status_code
        status_hint = f" (HTTP {status_code})" if status_code is not None else ""
        super().__init__(
            f"Webhook POST failed{status_hint}: {error_message or 'Unknown error'}",
            status_code=status_code,
            error_message=error_message,
        )


@dataclass
class InvalidEventError(RelayError):
    """Lambda event does not carry a usable inbound email."""

    reason: str

    def __init__(self, reason: str, **context: Any) -> None:
        self.reason = reason
        super().__init__(f"Invalid inbound event: {reason}", **context)
