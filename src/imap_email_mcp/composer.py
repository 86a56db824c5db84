"""
Message Composer
================

Builds the RFC 2822 document appended to the Drafts folder.

Values are inserted verbatim: addresses are not validated and non-ASCII
headers are not encoded.
"""

from __future__ import annotations

import email.utils
from datetime import datetime, timezone

from imap_email_mcp.contracts import ComposedMessage

PLAIN_CONTENT_TYPE = "text/plain; charset=utf-8"
HTML_CONTENT_TYPE = "text/html; charset=utf-8"


def compose_message(
    *,
    sender: str,
    to: str,
    subject: str,
    body: str | None = None,
    html: str | None = None,
    cc: str | None = None,
    bcc: str | None = None,
    now: datetime | None = None,
) -> ComposedMessage:
    """
    Compose a single-part plain message, or multipart/alternative when
    ``html`` is given (plain part first, html second).
    """
    if now is None:
        now = datetime.now(timezone.utc)

    headers = [("From", sender), ("To", to)]
    if cc:
        headers.append(("Cc", cc))
    if bcc:
        headers.append(("Bcc", bcc))
    headers.append(("Subject", subject))
    headers.append(("Date", email.utils.format_datetime(now.astimezone(timezone.utc), usegmt=True)))
    headers.append(("MIME-Version", "1.0"))

    plain = body or ""
    if not html:
        headers.append(("Content-Type", PLAIN_CONTENT_TYPE))
        return ComposedMessage(headers=tuple(headers), body=f"{plain}\r\n")

    boundary = f"----=_Part_{int(now.timestamp() * 1000)}"
    headers.append(("Content-Type", f'multipart/alternative; boundary="{boundary}"'))
    lines = [
        f"--{boundary}",
        f"Content-Type: {PLAIN_CONTENT_TYPE}",
        "",
        plain,
        f"--{boundary}",
        f"Content-Type: {HTML_CONTENT_TYPE}",
        "",
        html,
        f"--{boundary}--",
    ]
    return ComposedMessage(
        headers=tuple(headers),
        body="".join(f"{line}\r\n" for line in lines),
        boundary=boundary,
    )
