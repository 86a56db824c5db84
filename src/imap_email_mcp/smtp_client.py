"""
SMTP Transfer Client
====================

Delivers composed messages to the configured relay. A connection is opened
per delivery and closed before returning.
"""

from __future__ import annotations

import email.utils
import logging
import smtplib
import ssl
from email.message import EmailMessage
from typing import TYPE_CHECKING

from imap_email_mcp.contracts import (
    AuthFailedError,
    DeliveryFailedError,
    DeliveryReceipt,
    OutgoingMessage,
)

if TYPE_CHECKING:
    from imap_email_mcp.config import SmtpSettings

logger = logging.getLogger("imap-email-mcp")

SMTP_TIMEOUT = 30


def split_addresses(value: str | None) -> list[str]:
    """Addresses from a comma-separated header value."""
    if not value:
        return []
    return [address for _name, address in email.utils.getaddresses([value]) if address]


def build_email_message(message: OutgoingMessage) -> EmailMessage:
    """Plain text message, or multipart/alternative when html is present. Bcc is left out."""
    msg = EmailMessage()
    msg["From"] = message.sender
    msg["To"] = message.to
    if message.cc:
        msg["Cc"] = message.cc
    msg["Subject"] = message.subject
    msg["Date"] = email.utils.formatdate(localtime=True)
    domain = message.sender.rpartition("@")[2] or None
    msg["Message-ID"] = email.utils.make_msgid(domain=domain)

    msg.set_content(message.text or "")
    if message.html:
        msg.add_alternative(message.html, subtype="html")
    return msg


class SMTPMailTransfer:
    """Mail transfer client backed by smtplib."""

    def deliver(self, settings: SmtpSettings, message: OutgoingMessage) -> DeliveryReceipt:
        """
        Send ``message`` through the relay in ``settings``.

        POST: Bcc recipients receive the message but no Bcc header is sent

        ERRORS:
        - AuthFailedError: relay rejected the credentials
        - DeliveryFailedError: relay refused the message or the connection failed
        """
        msg = build_email_message(message)
        recipients = (
            split_addresses(message.to)
            + split_addresses(message.cc)
            + split_addresses(message.bcc)
        )
        if not recipients:
            raise DeliveryFailedError("No recipients defined")

        try:
            smtp = self._connect(settings)
        except (smtplib.SMTPException, OSError) as e:
            raise DeliveryFailedError(f"SMTP connection failed: {e}") from e

        try:
            if settings.user and settings.password:
                smtp.login(settings.user, settings.password)
            response = self._transmit(smtp, message.sender, recipients, msg)
        except smtplib.SMTPAuthenticationError as e:
            raise AuthFailedError(f"SMTP authentication failed: {e}") from e
        except (smtplib.SMTPException, OSError) as e:
            raise DeliveryFailedError(str(e)) from e
        finally:
            try:
                smtp.quit()
            except (smtplib.SMTPException, OSError):
                smtp.close()

        logger.info(f"Delivered message to {len(recipients)} recipient(s)")
        return DeliveryReceipt(message_id=msg["Message-ID"], response=response)

    def _connect(self, settings: SmtpSettings) -> smtplib.SMTP:
        context = ssl.create_default_context()
        if settings.secure:
            return smtplib.SMTP_SSL(settings.host, settings.port, timeout=SMTP_TIMEOUT, context=context)

        smtp = smtplib.SMTP(settings.host, settings.port, timeout=SMTP_TIMEOUT)
        try:
            smtp.ehlo()
            if smtp.has_extn("starttls"):
                smtp.starttls(context=context)
                smtp.ehlo()
        except (smtplib.SMTPException, OSError):
            smtp.close()
            raise
        return smtp

    def _transmit(
        self,
        smtp: smtplib.SMTP,
        sender: str,
        recipients: list[str],
        msg: EmailMessage,
    ) -> str:
        """MAIL/RCPT/DATA; returns the relay's reply to DATA."""
        code, reply = smtp.mail(sender)
        if code != 250:
            raise smtplib.SMTPSenderRefused(code, reply, sender)

        refused = {}
        for recipient in recipients:
            code, reply = smtp.rcpt(recipient)
            if code not in (250, 251):
                refused[recipient] = (code, reply)
        if len(refused) == len(recipients):
            smtp.rset()
            raise smtplib.SMTPRecipientsRefused(refused)

        code, reply = smtp.data(msg.as_bytes())
        if code != 250:
            raise smtplib.SMTPDataError(code, reply)
        return f"{code} {reply.decode('utf-8', errors='replace')}"
