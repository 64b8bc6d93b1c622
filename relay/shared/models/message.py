"""
Message Models

Per-invocation value types flowing through the inbound pipeline:
the envelope handed over by the platform, the normalized content
extracted from it, and the outcome reported back to the host.
"""

from dataclasses import dataclass, field
from enum import Enum

DEFAULT_ATTACHMENT_FILENAME = "unnamed_attachment"
DEFAULT_ATTACHMENT_MIME_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class InboundMessage:
    """
    An inbound email as delivered by the routing platform.

    `mail_from` and `rcpt_to` are envelope addresses, not header values.
    `subject` and `message_id` are header values and may be absent.
    """

    mail_from: str
    rcpt_to: str
    raw: bytes = field(repr=False)
    subject: str | None = None
    message_id: str | None = None


@dataclass(frozen=True)
class AttachmentInfo:
    """
    Attachment metadata for the notification.

    `content` is the base64-encoded payload; it is only used to
    estimate the decoded size.
    """

    filename: str = DEFAULT_ATTACHMENT_FILENAME
    mime_type: str = DEFAULT_ATTACHMENT_MIME_TYPE
    content: str = field(default="", repr=False)

    @property
    def size_bytes(self) -> int:
        """Decoded size estimate: floor(base64 length * 0.75)."""
        return len(self.content) * 3 // 4

    def to_dict(self) -> dict:
        """Convert to dictionary for logging and API responses."""
        return {
            "filename": self.filename,
            "mime_type": self.mime_type,
            "size_bytes": self.size_bytes,
        }


@dataclass(frozen=True)
class ParsedContent:
    """
    Normalized body and attachments of an inbound email.

    `text` is the plain body (possibly converted from HTML), `html` the
    trimmed HTML body. Either is None when the message has none.
    """

    text: str | None = None
    html: str | None = None
    attachments: tuple[AttachmentInfo, ...] = ()

    @property
    def body(self) -> str:
        """Plain body for display; empty string when the message has none."""
        return self.text or ""

    @property
    def has_attachments(self) -> bool:
        return len(self.attachments) > 0


class OutcomeStatus(str, Enum):
    """Result of handling one inbound email."""

    ACCEPTED = "accepted"
    REJECTED = "rejected"


@dataclass(frozen=True)
class Outcome:
    """
    What the router reports back for one recipient.

    `failures` lists non-fatal problems (forwarding, notification) that
    were flagged to the host while the message was still accepted.
    """

    status: OutcomeStatus
    reason: str | None = None
    failures: tuple[str, ...] = ()

    @classmethod
    def accepted(cls, failures: tuple[str, ...] | list[str] = ()) -> "Outcome":
        return cls(status=OutcomeStatus.ACCEPTED, failures=tuple(failures))

    @classmethod
    def rejected(
        cls,
        reason: str,
        failures: tuple[str, ...] | list[str] = (),
    ) -> "Outcome":
        return cls(status=OutcomeStatus.REJECTED, reason=reason, failures=tuple(failures))

    @property
    def is_accepted(self) -> bool:
        return self.status == OutcomeStatus.ACCEPTED

    def to_dict(self) -> dict:
        """Convert to dictionary for the Lambda response body."""
        return {
            "status": self.status.value,
            "reason": self.reason,
            "failures": list(self.failures),
        }
