"""
ProcessInboundEmail Lambda Handler

Main entry point for inbound email delivered by a SES receipt rule.

Trigger: SNS topic subscribed to the SES inbound email rule (or a direct
         SES notification for local testing)
Output: forwarded copies via SES, a Slack notification, an optional
        automated reply, and a response carrying the rejection signal

Flow:
1. Parse SNS notification
2. Load the raw message (embedded or from S3)
3. Build one InboundMessage per envelope recipient
4. Route each through the dispatch router with a SES-backed mail host
5. Report per-recipient outcomes; STOP_RULE_SET when anything was rejected
"""

import base64
import binascii
import json
from typing import Any

import structlog
from botocore.exceptions import ClientError
from pydantic import ValidationError

from relay.shared.config import Settings, get_settings
from relay.shared.exceptions import InvalidEventError
from relay.shared.logging_config import configure_logging
from relay.shared.models.message import InboundMessage, Outcome
from relay.shared.tools.host import SESMailHost
from relay.shared.tools.s3 import fetch_raw_email

from lambdas.process_inbound_email.email_parser import build_inbound_message
from lambdas.process_inbound_email.router import handle

log = structlog.get_logger()

REJECT_DISPOSITION = "STOP_RULE_SET"


def _extract_s3_reference(sns_message: dict) -> tuple[str, str] | None:
    """
    Extract S3 bucket/key from SES action if email is stored in S3.

    Returns:
        Tuple of (bucket, key) or None if embedded
    """
    receipt = sns_message.get("receipt", {})
    action = receipt.get("action", {})

    if action.get("type") == "S3":
        return action.get("bucketName"), action.get(
            "objectKey", action.get("objectKeyPrefix", "")
        )

    return None


def _decode_embedded_content(sns_message: dict) -> bytes | None:
    """Return the embedded raw message, decoding per the SNS action encoding."""
    content = sns_message.get("content")
    if not content:
        return None

    action = sns_message.get("receipt", {}).get("action", {})
    encoding = str(action.get("encoding", "")).upper()

    if encoding == "BASE64":
        try:
            return base64.b64decode(content, validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidEventError("embedded content is not valid base64") from e

    return content.encode("utf-8")


def load_raw_email(sns_message: dict) -> bytes:
    """
    Load raw MIME bytes for a SES notification.

    Raises:
        InvalidEventError: If the notification carries no content
        ClientError: If the S3 fetch fails
    """
    s3_ref = _extract_s3_reference(sns_message)
    if s3_ref:
        bucket, key = s3_ref
        log.info("email_stored_in_s3", bucket=bucket, key=key)
        return fetch_raw_email(bucket, key)

    raw = _decode_embedded_content(sns_message)
    if raw is None:
        raise InvalidEventError(
            "email content not embedded and no S3 action",
            message_id=sns_message.get("mail", {}).get("messageId"),
        )
    return raw


def build_inbound_messages(sns_message: dict, raw: bytes) -> list[InboundMessage]:
    """
    One InboundMessage per envelope recipient.

    Recipients come from receipt.recipients (the addresses the rule matched),
    falling back to mail.destination.
    """
    mail = sns_message.get("mail", {})
    receipt = sns_message.get("receipt", {})
    common_headers = mail.get("commonHeaders", {})

    recipients = receipt.get("recipients") or mail.get("destination") or []
    if not recipients:
        raise InvalidEventError("no envelope recipients", message_id=mail.get("messageId"))

    return [
        build_inbound_message(
            raw,
            mail_from=mail.get("source", ""),
            rcpt_to=recipient,
            subject=common_headers.get("subject"),
            message_id=common_headers.get("messageId"),
        )
        for recipient in recipients
    ]


def _response(status_code: int, body: dict[str, Any], *, rejected: bool = False) -> dict[str, Any]:
    response: dict[str, Any] = {
        "statusCode": status_code,
        "body": json.dumps(body),
    }
    if rejected:
        response["disposition"] = REJECT_DISPOSITION
    return response


def process_ses_notification(
    sns_message: dict[str, Any],
    settings: Settings,
    request_id: str = "local",
) -> dict[str, Any]:
    """
    Process one SES notification.

    Handles both embedded content and S3 reference modes.
    """
    notification_type = sns_message.get("notificationType")

    # Handle bounce/complaint notifications
    if notification_type in ("Bounce", "Complaint"):
        log.info(
            "received_delivery_notification",
            type=notification_type,
            message_id=sns_message.get("mail", {}).get("messageId"),
        )
        return _response(
            200,
            {
                "status": "skipped",
                "reason": f"{notification_type} notification - not an inbound email",
            },
        )

    try:
        raw = load_raw_email(sns_message)
        messages = build_inbound_messages(sns_message, raw)
    except InvalidEventError as e:
        log.error("invalid_inbound_event", error=str(e), request_id=request_id)
        return _response(400, {"error": str(e)})
    except ClientError as e:
        log.error("s3_fetch_failed", error=str(e), request_id=request_id)
        return _response(500, {"error": f"Failed to fetch email from S3: {e}"})

    outcomes: list[tuple[InboundMessage, Outcome]] = []
    rejected = False

    for message in messages:
        host = SESMailHost(message, settings)
        outcome = handle(message, settings, host)
        outcomes.append((message, outcome))
        rejected = rejected or host.rejected

    all_accepted = all(outcome.is_accepted for _, outcome in outcomes)

    log.info(
        "inbound_email_handled",
        request_id=request_id,
        recipients=[message.rcpt_to for message, _ in outcomes],
        all_accepted=all_accepted,
        rejected=rejected,
    )

    return _response(
        200 if all_accepted else 400,
        {
            "status": "processed" if all_accepted else "rejected",
            "outcomes": [
                {"recipient": message.rcpt_to, **outcome.to_dict()}
                for message, outcome in outcomes
            ],
        },
        rejected=rejected,
    )


def _process_sns_record(
    record: dict[str, Any],
    settings: Settings,
    request_id: str,
) -> dict[str, Any]:
    """Process a single SNS record from Lambda event."""
    sns_data = record.get("Sns", {})
    message = sns_data.get("Message", "{}")

    try:
        sns_message = json.loads(message)
    except json.JSONDecodeError as e:
        log.error("sns_message_parse_failed", error=str(e))
        return _response(400, {"error": "Invalid SNS message JSON"})

    return process_ses_notification(sns_message, settings, request_id)


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """
    AWS Lambda handler for inbound emails.

    Args:
        event: SNS event containing a SES notification
        context: Lambda context

    Returns:
        Response dict with processing status
    """
    try:
        settings = get_settings()
    except ValidationError as e:
        configure_logging("INFO")
        log.error("invalid_configuration", errors=e.errors(include_url=False))
        return _response(500, {"error": "Invalid relay configuration"})

    configure_logging(settings.effective_log_level)

    request_id = getattr(context, "aws_request_id", "local")

    log.info(
        "processing_inbound_email",
        request_id=request_id,
        event_keys=list(event.keys()),
    )

    try:
        # Handle SNS Records format (Lambda trigger)
        if "Records" in event:
            responses = [
                _process_sns_record(record, settings, request_id)
                for record in event["Records"]
            ]
            if not responses:
                return _response(400, {"error": "No records in event"})
            worst = max(responses, key=lambda r: r["statusCode"])
            if any("disposition" in r for r in responses):
                worst = {**worst, "disposition": REJECT_DISPOSITION}
            return worst

        # Handle direct SNS message (for testing)
        if "Message" in event:
            return process_ses_notification(json.loads(event["Message"]), settings, request_id)

        # Handle raw SES notification (for testing)
        if "mail" in event or "content" in event:
            return process_ses_notification(event, settings, request_id)

        log.error("unknown_event_format", event_keys=list(event.keys()))
        return _response(400, {"error": "Unknown event format"})

    except Exception as e:
        log.error("lambda_handler_failed", error=str(e), exc_info=True)
        return _response(500, {"error": str(e)})
