"""
Mail Host Tools

The host-provided primitives (forward, reply, reject) behind a small
protocol so the pipeline runs against SES in Lambda and against fakes
in tests. The SES implementation relays via send_raw_email.
"""

import email
from email.headerregistry import Address
from email.message import EmailMessage
from email.policy import default as default_policy
from typing import Protocol

import boto3
import structlog
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from relay.shared.config import Settings
from relay.shared.exceptions import ForwardError, ReplyError
from relay.shared.models.message import InboundMessage

log = structlog.get_logger()

# Headers SES refuses or that would break alignment once the message is re-sent
STRIPPED_FORWARD_HEADERS = ("Return-Path", "Sender", "DKIM-Signature")


class MailHost(Protocol):
    """Side-effecting primitives the platform offers for one inbound message."""

    def forward(self, address: str) -> None:
        """Relay the original message to `address`."""
        ...

    def reply(self, message: EmailMessage) -> None:
        """Send `message` back to the original sender."""
        ...

    def set_reject(self, reason: str) -> None:
        """Mark the inbound message as rejected."""
        ...


def _get_client(settings: Settings):
    """Get SES client with bounded timeouts and a single attempt per call."""
    config = Config(
        connect_timeout=settings.ses_timeout_seconds,
        read_timeout=settings.ses_timeout_seconds,
        retries={"mode": "standard", "total_max_attempts": 1},
    )
    return boto3.client("ses", config=config, **settings.ses_config)


def prepare_forward(raw: bytes, worker_email: str) -> bytes:
    """
    Rewrite the headers SES checks so a third-party message can be re-sent.

    SES only sends mail whose From is a verified identity, so From becomes
    the worker address (keeping the original display name) and the original
    sender moves to Reply-To unless one is already set. The body is untouched.
    """
    msg = email.message_from_bytes(raw, policy=default_policy)

    original_from = msg.get("From")
    for header in STRIPPED_FORWARD_HEADERS:
        del msg[header]

    display_name = ""
    if original_from is not None and getattr(original_from, "addresses", None):
        first = original_from.addresses[0]
        display_name = first.display_name or first.addr_spec

    if original_from is not None and "Reply-To" not in msg:
        msg["Reply-To"] = str(original_from)

    del msg["From"]
    username, _, domain = worker_email.partition("@")
    msg["From"] = Address(
        display_name=f"{display_name} via relay" if display_name else "",
        username=username,
        domain=domain,
    )

    return msg.as_bytes()


class SESMailHost:
    """
    MailHost backed by SES for one inbound message.

    Rejections are recorded rather than sent anywhere; the Lambda handler
    turns them into the response it hands back to the receipt rule.
    """

    def __init__(self, message: InboundMessage, settings: Settings, client=None) -> None:
        self.message = message
        self.settings = settings
        self.worker_email = settings.worker_email.strip()
        self.rejections: list[str] = []
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = _get_client(self.settings)
        return self._client

    @property
    def rejected(self) -> bool:
        return len(self.rejections) > 0

    def forward(self, address: str) -> None:
        """
        Forward the original message to a single address.

        Raises:
            ForwardError: If SES refuses or the call fails
        """
        log.info("forwarding_email", forward_to=address)

        try:
            response = self.client.send_raw_email(
                Source=self.worker_email,
                Destinations=[address],
                RawMessage={"Data": prepare_forward(self.message.raw, self.worker_email)},
            )
        except ClientError as e:
            error_code = e.response["Error"]["Code"]
            error_message = e.response["Error"]["Message"]
            log.error(
                "ses_forward_failed",
                forward_to=address,
                error_code=error_code,
                error_message=error_message,
            )
            raise ForwardError(
                recipient=address,
                error_message=f"{error_code}: {error_message}",
            ) from e
        except BotoCoreError as e:
            log.error("ses_forward_failed", forward_to=address, error=str(e))
            raise ForwardError(recipient=address, error_message=str(e)) from e

        log.info(
            "email_forwarded",
            forward_to=address,
            message_id=response.get("MessageId"),
        )

    def reply(self, message: EmailMessage) -> None:
        """
        Send a composed reply to its To address.

        Raises:
            ReplyError: If SES refuses or the call fails
        """
        recipient = str(message["To"])

        try:
            response = self.client.send_raw_email(
                Source=self.worker_email,
                Destinations=[recipient],
                RawMessage={"Data": message.as_bytes()},
            )
        except ClientError as e:
            error_code = e.response["Error"]["Code"]
            error_message = e.response["Error"]["Message"]
            log.error(
                "ses_reply_failed",
                to=recipient,
                error_code=error_code,
                error_message=error_message,
            )
            raise ReplyError(
                recipient=recipient,
                error_message=f"{error_code}: {error_message}",
            ) from e
        except BotoCoreError as e:
            log.error("ses_reply_failed", to=recipient, error=str(e))
            raise ReplyError(recipient=recipient, error_message=str(e)) from e

        log.info("reply_sent", to=recipient, message_id=response.get("MessageId"))

    def set_reject(self, reason: str) -> None:
        """Record a rejection reason; repeated reasons are kept once."""
        if reason not in self.rejections:
            self.rejections.append(reason)
        log.warning("message_rejected", reason=reason, to=self.message.rcpt_to)
