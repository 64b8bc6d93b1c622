# Relay Tools
"""
Adapters for the services the relay talks to: SES (forward, reply),
S3 (raw message storage) and the Slack webhook.
"""

from relay.shared.tools.host import MailHost, SESMailHost, prepare_forward
from relay.shared.tools.s3 import fetch_raw_email
from relay.shared.tools.webhook import post_notification

__all__ = [
    "MailHost",
    "SESMailHost",
    "fetch_raw_email",
    "post_notification",
    "prepare_forward",
]
