"""
ProcessInboundEmail Lambda

Processes inbound email received via SES → SNS.
Forwards the raw message, posts a Slack notification and optionally
acknowledges the sender.

Flow:
    Sender
    → SES Receipt Rule
    → SNS Topic
    → This Lambda
    → SES (forward / reply) + Slack webhook
"""

from lambdas.process_inbound_email.email_parser import (
    build_inbound_message,
    extract,
    normalize_attachments,
    normalize_body,
)
from lambdas.process_inbound_email.handler import lambda_handler
from lambdas.process_inbound_email.notification import format_notification
from lambdas.process_inbound_email.recipients import compute_forward_targets
from lambdas.process_inbound_email.reply import compose_reply
from lambdas.process_inbound_email.router import handle

__all__ = [
    "build_inbound_message",
    "compose_reply",
    "compute_forward_targets",
    "extract",
    "format_notification",
    "handle",
    "lambda_handler",
    "normalize_attachments",
    "normalize_body",
]
