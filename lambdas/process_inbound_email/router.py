"""
Dispatch Router Module

Decides whether an inbound email is for this worker and runs the
side effects in order: forward, notify, reply.

Only an unknown recipient or an unparseable message rejects the email.
Forwarding and notification failures are flagged to the host and
recorded on the outcome without stopping the remaining steps.
"""

import structlog

from relay.shared.config import Settings
from relay.shared.exceptions import MessageParseError
from relay.shared.models.message import InboundMessage, Outcome
from relay.shared.tools.host import MailHost
from relay.shared.tools.webhook import post_notification

from lambdas.process_inbound_email.email_parser import extract
from lambdas.process_inbound_email.notification import format_notification
from lambdas.process_inbound_email.recipients import compute_forward_targets
from lambdas.process_inbound_email.reply import compose_reply

log = structlog.get_logger()

REJECT_UNKNOWN_ADDRESS = "Unknown address"
REJECT_FORWARD_FAILED = "Problem forwarding email"
REJECT_NOTIFY_FAILED = "Problem sending to Slack"
REJECT_PARSE_FAILED = "Problem parsing email"


def is_worker_recipient(recipient: str, worker_address: str) -> bool:
    """Case-insensitive comparison of trimmed addresses."""
    return recipient.strip().lower() == worker_address.strip().lower()


def forward_to_targets(
    host: MailHost,
    targets: tuple[str, ...],
) -> list[tuple[str, Exception]]:
    """
    Forward to each target in order; one failure does not stop the rest.

    Returns:
        (target, exception) pairs for the targets that failed
    """
    if not targets:
        log.debug("forwarding_skipped", reason="no forward targets configured")
        return []

    failed: list[tuple[str, Exception]] = []

    for target in targets:
        log.debug("sending_email_to", forward_to=target)
        try:
            host.forward(target)
        except Exception as e:
            log.error(
                "forward_failed",
                forward_to=target,
                error=str(e),
                error_type=type(e).__name__,
            )
            failed.append((target, e))

    log.info(
        "forwarding_completed",
        attempted=len(targets),
        failed_count=len(failed),
    )

    return failed


def send_auto_reply(message: InboundMessage, worker_address: str, host: MailHost) -> bool:
    """
    Compose and send the automated reply; failures are logged only.

    Returns:
        True if the host accepted the reply
    """
    if not message.mail_from:
        log.info("auto_reply_skipped", reason="no sender address")
        return False

    try:
        host.reply(compose_reply(message, worker_address))
    except Exception as e:
        log.error(
            "auto_reply_failed",
            to=message.mail_from,
            error=str(e),
            error_type=type(e).__name__,
        )
        return False

    return True


def handle(message: InboundMessage, settings: Settings, host: MailHost) -> Outcome:
    """
    Handle one inbound email for one envelope recipient.

    Args:
        message: Envelope and raw content from the platform
        settings: Configuration snapshot for this invocation
        host: Platform primitives (forward, reply, set_reject)

    Returns:
        Outcome, accepted or rejected with a reason
    """
    worker_address = settings.worker_email.strip()

    if not is_worker_recipient(message.rcpt_to, worker_address):
        log.error("unknown_recipient", to=message.rcpt_to)
        host.set_reject(REJECT_UNKNOWN_ADDRESS)
        return Outcome.rejected(REJECT_UNKNOWN_ADDRESS)

    log.debug(
        "processing_incoming_email",
        to=message.rcpt_to,
        from_address=message.mail_from,
    )

    failures: list[str] = []

    targets = compute_forward_targets(
        settings.forward_email,
        worker_address,
        message.mail_from,
        exclude_sender=settings.forward_exclude_sender,
    )
    if forward_to_targets(host, targets):
        failures.append(REJECT_FORWARD_FAILED)
        host.set_reject(REJECT_FORWARD_FAILED)

    try:
        content = extract(message.raw)
    except MessageParseError as e:
        log.error("email_content_unparseable", error=str(e), from_address=message.mail_from)
        host.set_reject(REJECT_PARSE_FAILED)
        return Outcome.rejected(REJECT_PARSE_FAILED, failures)

    try:
        payload = format_notification(message.mail_from, message.subject, content, settings)
        post_notification(
            settings.slack_webhook_url,
            payload,
            timeout=settings.webhook_timeout_seconds,
        )
    except Exception as e:
        log.error(
            "slack_notification_failed",
            error=str(e),
            error_type=type(e).__name__,
        )
        failures.append(REJECT_NOTIFY_FAILED)
        host.set_reject(REJECT_NOTIFY_FAILED)

    if settings.reply_to_sender:
        send_auto_reply(message, worker_address, host)

    log.info(
        "email_processed",
        from_address=message.mail_from,
        forwarded_to=len(targets),
        attachment_count=len(content.attachments),
        failures=failures,
    )

    return Outcome.accepted(failures)
