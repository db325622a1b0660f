"""
Reply composition and wire encoding

A reply goes back to the <address> in the original From header, keeps the
subject with a single "Re: " prefix, and threads on the original message id.
"""

import re
import base64
import email
from email.header import Header
from email.message import Message
from typing import Dict, Optional

from .errors import AddressParseError, MissingHeaderError
from .models import Reply

REPLY_PREFIX = "Re: "
REQUIRED_HEADERS = ["Subject", "From"]

_ADDRESS_RE = re.compile(r"<\s*([^<>\s]+@[^<>\s]+)\s*>")
_LINE_BREAK_RE = re.compile(r"[\r\n]+\s*")
_NEWLINE_RE = re.compile(r"\r\n|\r|\n")


def get_header(headers: Dict[str, str], name: str, message_id: Optional[str] = None) -> str:
    """Case-insensitive header lookup; raises MissingHeaderError when absent"""
    for key, value in headers.items():
        if key.lower() == name.lower():
            return value
    raise MissingHeaderError(name, message_id)


def extract_address(from_value: str, message_id: Optional[str] = None) -> str:
    """The address between angle brackets in a From header"""
    matches = _ADDRESS_RE.findall(from_value)
    if not matches:
        raise AddressParseError(from_value, message_id)
    return matches[-1]


def reply_subject(subject: str) -> str:
    if subject.startswith(REPLY_PREFIX):
        return subject
    return f"{REPLY_PREFIX}{subject}"


def _header_value(value: str) -> str:
    value = _LINE_BREAK_RE.sub(" ", value).strip()
    if value.isascii():
        return value
    return Header(value, "utf-8").encode(linesep="\r\n")


def render_message(reply: Reply) -> str:
    """RFC 822 text of a reply: headers, blank line, body, all lines separated by CRLF"""
    lines = [
        f"From: {_header_value(reply.sender)}",
        f"To: {_header_value(reply.recipient)}",
        f"Subject: {_header_value(reply.subject)}",
        f"In-Reply-To: {_header_value(reply.in_reply_to)}",
        f"References: {_header_value(reply.references)}",
        "MIME-Version: 1.0",
        'Content-Type: text/plain; charset="UTF-8"',
        "",
        _NEWLINE_RE.sub("\r\n", reply.body),
    ]
    return "\r\n".join(lines)


def encode_raw_message(reply: Reply) -> str:
    """URL-safe base64 of the rendered reply with padding stripped"""
    data = render_message(reply).encode("utf-8")
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def decode_raw_message(raw: str) -> Message:
    """Parse a wire-form message produced by encode_raw_message"""
    padded = raw + "=" * (-len(raw) % 4)
    return email.message_from_bytes(base64.urlsafe_b64decode(padded))


class ReplyComposer:
    """Builds the canned vacation reply for a message"""

    def __init__(self, body: str, sender: str = "me"):
        self.body = body
        self.sender = sender

    def compose(self, message_id: str, headers: Dict[str, str]) -> Reply:
        subject = get_header(headers, "Subject", message_id)
        from_value = get_header(headers, "From", message_id)

        return Reply(
            recipient=extract_address(from_value, message_id),
            subject=reply_subject(subject),
            in_reply_to=message_id,
            references=message_id,
            body=self.body,
            sender=self.sender
        )

    def encode(self, reply: Reply) -> str:
        return encode_raw_message(reply)
