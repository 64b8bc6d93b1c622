# Shared Infrastructure for the Inbound Email Relay
"""
Shared infrastructure components for the relay Lambdas and local server.

This package provides:
- Configuration management
- Value types for inbound messages, parsed content and outcomes
- The mail host port and its SES implementation
- Webhook and S3 tools
- Custom exceptions
"""

from relay.shared.config import ProbeSettings, Settings, get_settings
from relay.shared.exceptions import (
    ForwardError,
    InvalidEventError,
    MessageParseError,
    RelayError,
    ReplyError,
    WebhookError,
)

__all__ = [
    # Config
    "ProbeSettings",
    "Settings",
    "get_settings",
    # Exceptions
    "ForwardError",
    "InvalidEventError",
    "MessageParseError",
    "RelayError",
    "ReplyError",
    "WebhookError",
]
