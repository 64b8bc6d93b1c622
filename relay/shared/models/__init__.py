# Relay Models
"""
Value types shared by the Lambda handlers and the local server.
"""

from relay.shared.models.message import (
    DEFAULT_ATTACHMENT_FILENAME,
    DEFAULT_ATTACHMENT_MIME_TYPE,
    AttachmentInfo,
    InboundMessage,
    Outcome,
    OutcomeStatus,
    ParsedContent,
)
from relay.shared.models.notification import NotificationPayload

__all__ = [
    "DEFAULT_ATTACHMENT_FILENAME",
    "DEFAULT_ATTACHMENT_MIME_TYPE",
    "AttachmentInfo",
    "InboundMessage",
    "NotificationPayload",
    "Outcome",
    "OutcomeStatus",
    "ParsedContent",
]
