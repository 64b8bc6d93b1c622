"""
Unit tests for the email parser.

Tests cover:
- Body normalization (text preferred, HTML fallback)
- Attachment normalization and size estimates
- MIME extraction from raw messages
- Envelope building from headers
"""

import base64

import pytest

from lambdas.process_inbound_email.email_parser import (
    build_inbound_message,
    extract,
    html_to_text,
    normalize_attachments,
    normalize_body,
)
from relay.shared.exceptions import MessageParseError
from relay.shared.models.message import AttachmentInfo


# ============================================================================
# Body Normalization Tests
# ============================================================================

class TestNormalizeBody:
    """Tests for normalize_body."""

    def test_text_is_trimmed(self):
        """Plain text is returned trimmed."""
        text, html = normalize_body("  Hi there \n", None)

        assert text == "Hi there"
        assert html is None

    @pytest.mark.parametrize(
        "html",
        [None, "<p>Other content</p>", "", "<b>  </b>"],
    )
    def test_text_wins_regardless_of_html(self, html):
        """Non-empty text is used whatever the HTML says."""
        text, _ = normalize_body("Plain body", html)

        assert text == "Plain body"

    def test_html_fallback_when_text_missing(self):
        """HTML is converted when there is no text part."""
        html = "<html><body><p>Hello <b>world</b></p></body></html>"

        text, trimmed_html = normalize_body(None, html)

        assert text == html_to_text(html).strip()
        assert "Hello" in text
        assert "world" in text
        assert "<p>" not in text
        assert trimmed_html == html

    def test_whitespace_text_wins_over_html(self):
        """Whitespace-only text is still text: it is trimmed, HTML is not used."""
        text, html = normalize_body("   \n ", "<p>From HTML</p>")

        assert not text
        assert html == "<p>From HTML</p>"

    def test_html_fallback_when_text_empty(self):
        text, _ = normalize_body("", "<p>From HTML</p>")

        assert text == "From HTML"

    def test_html_retained_alongside_text(self):
        """HTML is kept (trimmed) even when text was chosen."""
        text, html = normalize_body("Plain", "  <p>Rich</p>\n")

        assert text == "Plain"
        assert html == "<p>Rich</p>"

    def test_both_absent(self):
        """No bodies at all normalize to None."""
        assert normalize_body(None, None) == (None, None)
        assert normalize_body("", "") == (None, None)


# ============================================================================
# Attachment Normalization Tests
# ============================================================================

class TestNormalizeAttachments:
    """Tests for normalize_attachments."""

    def test_defaults_applied(self):
        """Missing filename and MIME type get placeholders."""
        result = normalize_attachments([{"content": "QUJD"}])

        assert result == (
            AttachmentInfo(
                filename="unnamed_attachment",
                mime_type="application/octet-stream",
                content="QUJD",
            ),
        )

    def test_order_and_values_preserved(self):
        """Given values pass through in source order."""
        result = normalize_attachments(
            [
                {"filename": "b.pdf", "mime_type": "application/pdf", "content": "AAAA"},
                {"filename": "a.png", "mime_type": "image/png", "content": "BBBB"},
            ]
        )

        assert [a.filename for a in result] == ["b.pdf", "a.png"]
        assert [a.mime_type for a in result] == ["application/pdf", "image/png"]
        assert [a.content for a in result] == ["AAAA", "BBBB"]

    def test_size_estimate_floors(self):
        """Size is floor(base64 length * 0.75)."""
        assert AttachmentInfo(content="A" * 100).size_bytes == 75
        assert AttachmentInfo(content="A" * 3).size_bytes == 2
        assert AttachmentInfo(content="").size_bytes == 0


# ============================================================================
# MIME Extraction Tests
# ============================================================================

class TestExtract:
    """Tests for extract."""

    def test_plain_text_email(self, plain_raw_email):
        """A single-part text email yields its body and no attachments."""
        content = extract(plain_raw_email)

        assert content.text == "Hi there"
        assert content.html is None
        assert content.attachments == ()
        assert content.body == "Hi there"

    def test_multipart_alternative_prefers_text(self, email_generator):
        """Text part wins; HTML part is kept."""
        raw = email_generator.build_raw_email(
            text="Plain version",
            html="<p>HTML version</p>",
        )

        content = extract(raw)

        assert content.text == "Plain version"
        assert content.html == "<p>HTML version</p>"

    def test_html_only_email_is_converted(self, email_generator):
        """An HTML-only email gets a converted plain body."""
        raw = email_generator.build_raw_email(html="<h1>Title</h1><p>Paragraph text</p>")

        content = extract(raw)

        assert "Title" in content.text
        assert "Paragraph text" in content.text
        assert content.html == "<h1>Title</h1><p>Paragraph text</p>"

    def test_empty_body(self, email_generator):
        """A message without body text gives an empty display body."""
        raw = email_generator.build_raw_email(text="")

        content = extract(raw)

        assert content.text is None
        assert content.body == ""

    def test_attachments_extracted_in_order(self, email_generator):
        """Attachments come out base64-encoded with their metadata."""
        raw = email_generator.build_raw_email(
            text="See attached",
            attachments=[
                ("report.pdf", "application/pdf", b"%PDF-1.4 fake"),
                ("photo.png", "image/png", b"\x89PNG fake"),
            ],
        )

        content = extract(raw)

        assert content.text == "See attached"
        assert [a.filename for a in content.attachments] == ["report.pdf", "photo.png"]
        assert [a.mime_type for a in content.attachments] == ["application/pdf", "image/png"]
        assert base64.b64decode(content.attachments[0].content) == b"%PDF-1.4 fake"

    def test_attachment_without_filename_gets_placeholder(self, email_generator):
        """Unnamed attachments use the default filename."""
        raw = email_generator.build_raw_email(
            text="Body",
            attachments=[(None, "application/zip", b"PK\x03\x04")],
        )

        content = extract(raw)

        assert len(content.attachments) == 1
        assert content.attachments[0].filename == "unnamed_attachment"
        assert content.attachments[0].mime_type == "application/zip"

    def test_text_attachment_not_used_as_body(self, email_generator):
        """A text/plain part with a filename is an attachment, not the body."""
        raw = email_generator.build_raw_email(
            text="Real body",
            attachments=[("notes.txt", "text/plain", b"attached notes")],
        )

        content = extract(raw)

        assert content.text == "Real body"
        assert [a.filename for a in content.attachments] == ["notes.txt"]

    def test_accepts_string_input(self, plain_raw_email):
        """String input is encoded and parsed like bytes."""
        content = extract(plain_raw_email.decode("utf-8"))

        assert content.text == "Hi there"

    def test_unknown_charset_falls_back(self):
        """An unknown charset does not abort extraction."""
        raw = (
            b"From: a@example.com\r\n"
            b"To: inbox@worker.example\r\n"
            b"Subject: charset\r\n"
            b"Content-Type: text/plain; charset=x-made-up\r\n"
            b"\r\n"
            b"Body text\r\n"
        )

        content = extract(raw)

        assert content.text == "Body text"

    def test_multipart_without_boundary_keeps_body(self):
        """An unsplittable multipart body is shown as plain text, not dropped."""
        raw = (
            b"From: a@example.com\r\n"
            b"To: inbox@worker.example\r\n"
            b"Subject: broken\r\n"
            b"MIME-Version: 1.0\r\n"
            b"Content-Type: multipart/mixed\r\n"
            b"\r\n"
            b"hello there\r\n"
        )

        content = extract(raw)

        assert content.text == "hello there"
        assert content.attachments == ()

    @pytest.mark.parametrize("raw", [b"", b"   \r\n", ""])
    def test_empty_input_raises(self, raw):
        """Empty input is a parse failure."""
        with pytest.raises(MessageParseError):
            extract(raw)

    def test_headerless_input_raises(self):
        """Input with no headers is not an email."""
        with pytest.raises(MessageParseError) as exc_info:
            extract(b"just some words without any header")

        assert exc_info.value.reason == "no headers found"


# ============================================================================
# Envelope Building Tests
# ============================================================================

class TestBuildInboundMessage:
    """Tests for build_inbound_message."""

    def test_envelope_from_headers(self, plain_raw_email):
        """Missing envelope values come from the headers."""
        message = build_inbound_message(plain_raw_email)

        assert message.mail_from == "alice@ext.com"
        assert message.rcpt_to == "inbox@worker.example"
        assert message.subject == "Hello"
        assert message.message_id == "<original-123@ext.com>"
        assert message.raw == plain_raw_email

    def test_explicit_envelope_wins(self, plain_raw_email):
        """Given envelope values override the headers."""
        message = build_inbound_message(
            plain_raw_email,
            mail_from="bounce@ext.com",
            rcpt_to="other@worker.example",
            subject="Override",
        )

        assert message.mail_from == "bounce@ext.com"
        assert message.rcpt_to == "other@worker.example"
        assert message.subject == "Override"

    def test_display_names_stripped(self):
        """Only the address part of From / To is used."""
        raw = (
            b"From: Alice Example <alice@ext.com>\r\n"
            b"To: Worker <inbox@worker.example>\r\n"
            b"\r\n"
            b"Hi\r\n"
        )

        message = build_inbound_message(raw)

        assert message.mail_from == "alice@ext.com"
        assert message.rcpt_to == "inbox@worker.example"
        assert message.subject is None
        assert message.message_id is None
