"""
Message Decoder
===============

Turns raw RFC 822 bytes into the structures returned by the read tools.
Nothing in this module logs message content.
"""

from __future__ import annotations

import email
import email.message
import email.utils
from email.header import decode_header as _decode_rfc2047

from imap_email_mcp.contracts import AttachmentInfo, DecodedMessage, MessageSummary


def decode_message(raw: bytes) -> DecodedMessage:
    """
    Decode a complete message.

    POST: text/html hold the first non-attachment part of each type, or None
    POST: attachments list every part with an attachment disposition
    """
    msg = email.message_from_bytes(raw)

    body_plain = None
    body_html = None
    attachments = []

    if msg.is_multipart():
        for part in msg.walk():
            if part.is_multipart():
                continue
            content_type = part.get_content_type()
            content_disp = str(part.get("Content-Disposition", "")).lower()

            if "attachment" in content_disp:
                attachments.append(_parse_attachment(part))
            elif content_type == "text/plain" and body_plain is None:
                body_plain = _decode_payload(part)
            elif content_type == "text/html" and body_html is None:
                body_html = _decode_payload(part)
    else:
        content_type = msg.get_content_type()
        if content_type == "text/plain":
            body_plain = _decode_payload(msg)
        elif content_type == "text/html":
            body_html = _decode_payload(msg)

    return DecodedMessage(
        sender=_header(msg, "From"),
        to=_header(msg, "To"),
        cc=_header(msg, "Cc"),
        bcc=_header(msg, "Bcc"),
        subject=_header(msg, "Subject"),
        date=_parse_date(msg.get("Date")),
        text=body_plain,
        html=body_html,
        attachments=attachments,
    )


def decode_summary(uid: int, flags: list[str], header_bytes: bytes | None) -> MessageSummary:
    """Build a listing entry from a FROM/TO/SUBJECT/DATE header fetch."""
    headers = email.message_from_bytes(header_bytes or b"")
    return MessageSummary(
        uid=uid,
        date=_header(headers, "Date"),
        sender=_header(headers, "From"),
        to=_header(headers, "To"),
        subject=_header(headers, "Subject"),
        flags=flags,
    )


def decode_header_value(header: str) -> str:
    """Decode an RFC 2047 encoded header."""
    if not header:
        return ""

    decoded_parts = []
    for part, charset in _decode_rfc2047(header):
        if isinstance(part, bytes):
            try:
                decoded_parts.append(part.decode(charset or "utf-8", errors="replace"))
            except LookupError:
                decoded_parts.append(part.decode("utf-8", errors="replace"))
        else:
            decoded_parts.append(part)
    return "".join(decoded_parts).strip()


def _header(msg: email.message.Message, name: str) -> str | None:
    value = msg.get(name)
    if value is None:
        return None
    return decode_header_value(str(value))


def _parse_date(date_str: str | None) -> str | None:
    if not date_str:
        return None
    try:
        return email.utils.parsedate_to_datetime(date_str).isoformat()
    except (TypeError, ValueError):
        return date_str


def _decode_payload(part: email.message.Message) -> str:
    """Decode message payload."""
    payload = part.get_payload(decode=True)
    if payload is None:
        return ""

    charset = part.get_content_charset() or "utf-8"
    try:
        return payload.decode(charset, errors="replace")
    except LookupError:
        return payload.decode("utf-8", errors="replace")


def _parse_attachment(part: email.message.Message) -> AttachmentInfo:
    filename = part.get_filename()
    payload = part.get_payload(decode=True) or b""
    return AttachmentInfo(
        filename=decode_header_value(filename) if filename else None,
        content_type=part.get_content_type(),
        size=len(payload),
    )
