"""
Email Parser Module

Turns a raw MIME message into normalized content: a plain body
(preferring text/plain, falling back to converted HTML), the trimmed
HTML body, and attachment metadata with base64-encoded content.
"""

import base64
import email
from email.message import EmailMessage
from email.parser import BytesHeaderParser
from email.policy import default as default_policy
from email.utils import getaddresses
from typing import Iterator

import html2text
import structlog

from relay.shared.exceptions import MessageParseError
from relay.shared.models.message import (
    DEFAULT_ATTACHMENT_FILENAME,
    DEFAULT_ATTACHMENT_MIME_TYPE,
    AttachmentInfo,
    InboundMessage,
    ParsedContent,
)

log = structlog.get_logger()

BODY_CONTENT_TYPES = ("text/plain", "text/html")


def html_to_text(html: str) -> str:
    """Render HTML as readable plain text (markdown-ish, no wrapping)."""
    converter = html2text.HTML2Text()
    converter.body_width = 0
    converter.ignore_images = True
    converter.ignore_links = False
    return converter.handle(html)


def normalize_body(text: str | None, html: str | None) -> tuple[str | None, str | None]:
    """
    Pick the plain body and trim both variants.

    Non-empty `text` wins regardless of `html`, even when it trims to
    nothing; only a missing or empty `text` falls back to converted
    `html`. The HTML variant is always kept (trimmed) so the
    notification can show it raw later. Blank results become None.
    """
    body = text.strip() if text else ""
    if not text and html:
        body = html_to_text(html).strip()

    trimmed_html = html.strip() if html else ""

    return (body or None, trimmed_html or None)


def normalize_attachments(attachments: list[dict]) -> tuple[AttachmentInfo, ...]:
    """
    Fill in default filename and MIME type, keep order and content.

    Each entry is a mapping with optional `filename`, `mime_type` and
    `content` (base64 string) keys.
    """
    return tuple(
        AttachmentInfo(
            filename=attachment.get("filename") or DEFAULT_ATTACHMENT_FILENAME,
            mime_type=attachment.get("mime_type") or DEFAULT_ATTACHMENT_MIME_TYPE,
            content=attachment.get("content") or "",
        )
        for attachment in attachments
    )


def _iter_leaf_parts(part: EmailMessage) -> Iterator[EmailMessage]:
    """
    Yield non-multipart parts depth-first; attached messages stay whole.

    A multipart part the parser could not split (no boundary) is yielded
    as a leaf with its raw payload.
    """
    if part.get_content_maintype() == "multipart" and part.is_multipart():
        for subpart in part.iter_parts():
            yield from _iter_leaf_parts(subpart)
    else:
        yield part


def _is_attachment(part: EmailMessage) -> bool:
    if part.get_content_disposition() == "attachment":
        return True
    if part.get_filename():
        return True
    return part.get_content_type() not in BODY_CONTENT_TYPES


def _part_text(part: EmailMessage) -> str:
    """Decode a text part, tolerating unknown or lying charsets."""
    try:
        return part.get_content()
    except (LookupError, UnicodeError) as e:
        log.warning(
            "text_part_decode_fallback",
            content_type=part.get_content_type(),
            charset=part.get_content_charset(),
            error=str(e),
        )
        payload = part.get_payload(decode=True) or b""
        return payload.decode("utf-8", errors="replace")


def _part_bytes(part: EmailMessage) -> bytes:
    if part.get_content_maintype() == "message":
        inner = part.get_payload()
        if isinstance(inner, list) and inner:
            return inner[0].as_bytes()
    return part.get_payload(decode=True) or b""


def _parse_message(raw: bytes | str) -> EmailMessage:
    raw_bytes = raw.encode("utf-8") if isinstance(raw, str) else raw

    if not raw_bytes or not raw_bytes.strip():
        raise MessageParseError("empty message")

    try:
        msg = email.message_from_bytes(raw_bytes, policy=default_policy)
    except Exception as e:
        log.error("email_parse_failed", error=str(e))
        raise MessageParseError("unreadable MIME structure", error_message=str(e)) from e

    if not msg.keys():
        raise MessageParseError("no headers found")

    return msg


def extract(raw: bytes | str) -> ParsedContent:
    """
    Parse raw email content (MIME format) into normalized content.

    Multiple inline text parts of the same type are joined with newlines.

    Args:
        raw: Raw email content as bytes or string

    Returns:
        ParsedContent with normalized bodies and attachments

    Raises:
        MessageParseError: If the input is empty or not a MIME message
    """
    msg = _parse_message(raw)

    text_parts: list[str] = []
    html_parts: list[str] = []
    raw_attachments: list[dict] = []

    try:
        for part in _iter_leaf_parts(msg):
            if part.get_content_maintype() == "multipart":
                log.warning(
                    "multipart_without_parts",
                    content_type=part.get_content_type(),
                    defects=[type(d).__name__ for d in part.defects],
                )
                text_parts.append(_part_bytes(part).decode("utf-8", errors="replace"))
            elif _is_attachment(part):
                raw_attachments.append(
                    {
                        "filename": part.get_filename(),
                        "mime_type": part.get_content_type(),
                        "content": base64.b64encode(_part_bytes(part)).decode("ascii"),
                    }
                )
            elif part.get_content_type() == "text/plain":
                text_parts.append(_part_text(part))
            else:
                html_parts.append(_part_text(part))
    except (KeyError, ValueError, TypeError) as e:
        log.error("email_parts_unreadable", error=str(e))
        raise MessageParseError("unreadable message part", error_message=str(e)) from e

    text, html = normalize_body(
        "\n".join(text_parts) if text_parts else None,
        "\n".join(html_parts) if html_parts else None,
    )
    attachments = normalize_attachments(raw_attachments)

    log.debug(
        "email_content_extracted",
        has_text=bool(text_parts),
        has_html=html is not None,
        body_length=len(text or ""),
        attachment_count=len(attachments),
    )

    return ParsedContent(text=text, html=html, attachments=attachments)


def _first_address(header_value: str | None) -> str:
    if not header_value:
        return ""
    for _, addr in getaddresses([header_value]):
        if addr:
            return addr
    return ""


def _optional_str(value) -> str | None:
    return str(value) if value is not None else None


def build_inbound_message(
    raw: bytes | str,
    *,
    mail_from: str | None = None,
    rcpt_to: str | None = None,
    subject: str | None = None,
    message_id: str | None = None,
) -> InboundMessage:
    """
    Build an InboundMessage, filling envelope gaps from the headers.

    Envelope values that are given win; missing ones fall back to the
    first From / To address, Subject and Message-ID headers. Only the
    header block is parsed.
    """
    raw_bytes = raw.encode("utf-8") if isinstance(raw, str) else raw
    headers = BytesHeaderParser(policy=default_policy).parsebytes(raw_bytes)

    header_subject = headers.get("Subject")
    header_message_id = headers.get("Message-ID")

    return InboundMessage(
        mail_from=mail_from if mail_from is not None else _first_address(headers.get("From")),
        rcpt_to=rcpt_to if rcpt_to is not None else _first_address(headers.get("To")),
        raw=raw_bytes,
        subject=subject if subject is not None else _optional_str(header_subject),
        message_id=message_id if message_id is not None else _optional_str(header_message_id),
    )
