"""
Reply Composer Module

Builds the optional automated acknowledgement sent back to the sender.
"""

from email.headerregistry import Address
from email.message import EmailMessage
from email.utils import formatdate, make_msgid

from relay.shared.models.message import InboundMessage

REPLY_DISPLAY_NAME = "Thank you for your message"
REPLY_SUBJECT_PREFIX = "Automated Reply: "
NO_SUBJECT = "(No Subject)"


def compose_reply(message: InboundMessage, worker_address: str) -> EmailMessage:
    """
    Compose a plain-text auto-reply to an inbound email.

    The reply comes from the worker address, goes to the envelope sender
    and threads under the original via In-Reply-To / References.
    """
    original_subject = message.subject or NO_SUBJECT
    username, _, domain = worker_address.strip().partition("@")

    reply = EmailMessage()
    reply["From"] = Address(display_name=REPLY_DISPLAY_NAME, username=username, domain=domain)
    reply["To"] = message.mail_from
    reply["Subject"] = f"{REPLY_SUBJECT_PREFIX}{original_subject}"
    reply["Date"] = formatdate(localtime=False, usegmt=True)
    reply["Message-ID"] = make_msgid(domain=domain or None)
    if message.message_id:
        reply["In-Reply-To"] = message.message_id
        reply["References"] = message.message_id

    reply.set_content(
        "This is an automated reply.\n\n"
        f'Your message with subject "{original_subject}" has been received '
        "and will be handled shortly.\n"
    )

    return reply
