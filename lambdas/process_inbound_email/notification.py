"""
Notification Formatter Module

Builds the Slack Block Kit message posted for every accepted email.

Layout:
    header            "New Email Received!"
    rich_text         From / Subject
    [context]         attachment count (when detail blocks are off)
    divider
    section           body (plain, or raw HTML in a code block)
    divider
    [context]         attachment count (when detail blocks are on)
    attachments[]     one colored entry per file (when detail blocks are on)
"""

from typing import Any

import structlog

from relay.shared.config import Settings
from relay.shared.models.message import AttachmentInfo, ParsedContent
from relay.shared.models.notification import NotificationPayload

log = structlog.get_logger()

HEADER_TEXT = "New Email Received!"
NO_SUBJECT = "(No Subject)"
EMPTY_BODY = "_(no message body)_"

# Slack rejects section text longer than this
MAX_SECTION_TEXT = 3000
TRUNCATION_MARKER = "\n…"


def _truncate(text: str, limit: int = MAX_SECTION_TEXT) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - len(TRUNCATION_MARKER)] + TRUNCATION_MARKER


def _labelled_line(label: str, value: str) -> dict[str, Any]:
    return {
        "type": "rich_text_section",
        "elements": [
            {"type": "text", "text": label, "style": {"bold": True, "italic": True}},
            {"type": "text", "text": " "},
            {"type": "text", "text": value},
        ],
    }


def _sender_block(sender: str, subject: str | None) -> dict[str, Any]:
    return {
        "type": "rich_text",
        "elements": [
            _labelled_line("From:", sender or "(unknown sender)"),
            _labelled_line("Subject:", subject or NO_SUBJECT),
        ],
    }


def attachment_summary_blocks(attachments: tuple[AttachmentInfo, ...]) -> list[dict[str, Any]]:
    """Context block with the attachment count; empty when there are none."""
    if not attachments:
        return []
    return [
        {
            "type": "context",
            "elements": [
                {
                    "type": "mrkdwn",
                    "text": f"*_Attachments:_* *{len(attachments)}* file(s) received.",
                }
            ],
        }
    ]


def _body_text(content: ParsedContent, show_raw_body: bool) -> str:
    if show_raw_body and content.html:
        # Closing fence must survive truncation
        fence = "```"
        prefix = f"*_Body:_*\n{fence}"
        html = _truncate(content.html, MAX_SECTION_TEXT - len(prefix) - len(fence))
        return f"{prefix}{html}{fence}"
    return _truncate(content.body) if content.body else EMPTY_BODY


def attachment_detail(attachment: AttachmentInfo, color: str | None) -> dict[str, Any]:
    """Legacy attachment entry describing one file."""
    entry: dict[str, Any] = {}
    if color:
        entry["color"] = color
    entry["blocks"] = [
        {
            "type": "section",
            "text": {"type": "mrkdwn", "text": f"*{attachment.filename}*"},
        },
        {
            "type": "context",
            "elements": [
                {
                    "type": "mrkdwn",
                    "text": (
                        f"*_Mime Type:_* `{attachment.mime_type}` \n"
                        f"*_Size:_* {attachment.size_bytes} bytes"
                    ),
                }
            ],
        },
    ]
    return entry


def format_notification(
    sender: str,
    subject: str | None,
    content: ParsedContent,
    settings: Settings,
) -> NotificationPayload:
    """
    Build the Slack payload for one email.

    Args:
        sender: Envelope sender address
        subject: Subject header, or None when absent
        content: Normalized body and attachments
        settings: Relay settings (show_attachments, show_raw_body, color)

    Returns:
        NotificationPayload ready to POST
    """
    summary = attachment_summary_blocks(content.attachments)
    show_attachments = settings.show_attachments

    blocks: list[dict[str, Any]] = [
        {"type": "header", "text": {"type": "plain_text", "text": HEADER_TEXT}},
        _sender_block(sender, subject),
        *([] if show_attachments else summary),
        {"type": "divider"},
        {
            "type": "section",
            "text": {"type": "mrkdwn", "text": _body_text(content, settings.show_raw_body)},
        },
        {"type": "divider"},
        *(summary if show_attachments else []),
    ]

    attachments = None
    if show_attachments and content.has_attachments:
        attachments = [
            attachment_detail(attachment, settings.attachment_block_color_hex)
            for attachment in content.attachments
        ]

    payload = NotificationPayload(blocks=blocks, attachments=attachments)

    log.debug(
        "notification_formatted",
        block_types=payload.block_types(),
        attachment_count=len(content.attachments),
        show_attachments=show_attachments,
        show_raw_body=settings.show_raw_body,
    )

    return payload
