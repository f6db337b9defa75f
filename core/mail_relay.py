# core/mail_relay.py
"""
SMTP Mail Relay

Builds the operator notification for an accepted contact submission and
delivers it through the configured SMTP relay with aiosmtplib:

- connect with a bounded timeout (implicit TLS when SMTP_SECURE is set)
- EHLO, then STARTTLS when the server offers it
- LOGIN and a NOOP round-trip to verify the session is usable
- a single send attempt, no retry
"""

import asyncio
import logging
from email.message import EmailMessage
from email.headerregistry import Address
from email.utils import formatdate, make_msgid
from typing import List

import aiosmtplib

from core.exceptions import MailRelayError
from core.models import MailReceipt, OutboundMessage, RequestMetadata, SanitizedContact

logger = logging.getLogger(__name__)


def render_body(contact: SanitizedContact, metadata: RequestMetadata) -> str:
    """Plain-text, line-oriented email body"""
    lines: List[str] = [
        f"Name: {contact.name}",
        f"Email: {contact.email}",
        f"Web App URL: {contact.url}",
    ]
    if contact.message:
        lines.append(f"Message: {contact.message}")

    lines.extend([
        '',
        '---',
        f"Client IP: {metadata.client_ip}",
        f"User Agent: {metadata.user_agent}",
        f"Submitted At: {metadata.timestamp}",
    ])
    return '\n'.join(lines)


def build_outbound_message(contact: SanitizedContact, metadata: RequestMetadata, settings) -> OutboundMessage:
    """
    Assemble the notification email for a sanitized contact

    Args:
        contact: Validated and sanitized submission
        metadata: Client facts captured by the HTTP layer
        settings: Settings carrying sender, destination and header values
    """
    return OutboundMessage(
        from_addr=settings.sender,
        to_addr=settings.to_email,
        reply_to=contact.email,
        subject=f"{settings.subject_prefix} New request from {contact.name}",
        body=render_body(contact, metadata),
        headers={'X-Mailer': settings.x_mailer},
    )


def to_email_message(message: OutboundMessage) -> EmailMessage:
    """Convert an OutboundMessage into a MIME message ready for SMTP"""
    msg = EmailMessage()
    msg['Subject'] = message.subject
    msg['From'] = message.from_addr
    msg['To'] = message.to_addr
    # A single addr-spec, never re-parsed as a display-name list
    msg['Reply-To'] = Address(addr_spec=message.reply_to)
    msg['Date'] = formatdate(localtime=False, usegmt=True)

    domain = message.from_addr.rpartition('@')[2] or None
    msg['Message-ID'] = make_msgid(domain=domain)

    for name, value in message.headers.items():
        msg[name] = value

    msg.set_content(message.body)
    return msg


class MailRelay:
    """Interface for anything that can deliver an OutboundMessage"""

    def send(self, message: OutboundMessage) -> MailReceipt:
        raise NotImplementedError


class SMTPMailRelay(MailRelay):
    """Deliver messages through an SMTP relay, one connection per message"""

    def __init__(self, settings):
        self.settings = settings

    def send(self, message: OutboundMessage) -> MailReceipt:
        """
        Send one message

        Returns:
            MailReceipt with the Message-ID and the server's final response

        Raises:
            MailRelayError: on any connection, TLS, authentication or send failure
        """
        email_message = to_email_message(message)

        try:
            response = asyncio.run(self._async_send(email_message))
        except (aiosmtplib.SMTPException, OSError, asyncio.TimeoutError) as e:
            logger.error(f"Email service error ({self.settings.smtp_host}:{self.settings.smtp_port}): {e}")
            raise MailRelayError(str(e)) from e

        receipt = MailReceipt(message_id=email_message['Message-ID'], response=response)
        logger.info(f"Email sent: {receipt.message_id}")
        return receipt

    async def _async_send(self, email_message: EmailMessage) -> str:
        settings = self.settings

        smtp = aiosmtplib.SMTP(
            hostname=settings.smtp_host,
            port=settings.smtp_port,
            use_tls=settings.smtp_secure,
            start_tls=False,
            timeout=settings.smtp_timeout,
        )

        await smtp.connect()
        try:
            await smtp.ehlo()

            # Opportunistic STARTTLS on plain connections
            if not settings.smtp_secure and smtp.supports_extension('starttls'):
                await smtp.starttls()

            await smtp.login(settings.smtp_user, settings.smtp_password)
            await smtp.noop()
            logger.debug(f"SMTP session verified with {settings.smtp_host}")

            _errors, response = await smtp.send_message(email_message)
            await smtp.quit()
            return response
        finally:
            if smtp.is_connected:
                smtp.close()
