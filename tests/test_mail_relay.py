"""
Tests for message construction and the SMTP relay.
"""

import dataclasses
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import aiosmtplib
import pytest

from core.exceptions import MailRelayError
from core.mail_relay import SMTPMailRelay, build_outbound_message, render_body, to_email_message
from core.models import RequestMetadata, SanitizedContact


@pytest.fixture
def contact():
    return SanitizedContact(
        name='Jo Smith',
        email='jo@example.com',
        url='https://app.example.com',
        message='Please review',
    )


@pytest.fixture
def metadata():
    return RequestMetadata(
        client_ip='203.0.113.7',
        user_agent='pytest-agent/1.0',
        submitted_at=datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc),
    )


@pytest.fixture
def smtp_client():
    """aiosmtplib.SMTP instance double that accepts every command."""
    smtp = MagicMock()
    smtp.connect = AsyncMock()
    smtp.ehlo = AsyncMock()
    smtp.starttls = AsyncMock()
    smtp.login = AsyncMock()
    smtp.noop = AsyncMock()
    smtp.send_message = AsyncMock(return_value=({}, '2.0.0 Ok: queued as ABC123'))
    smtp.quit = AsyncMock()
    smtp.supports_extension.return_value = True
    smtp.is_connected = False
    return smtp


class TestMessageConstruction:
    """Test outbound message building."""

    def test_body_lists_fields_and_metadata(self, contact, metadata):
        body = render_body(contact, metadata)
        lines = body.splitlines()

        assert lines[:4] == [
            'Name: Jo Smith',
            'Email: jo@example.com',
            'Web App URL: https://app.example.com',
            'Message: Please review',
        ]
        assert 'Client IP: 203.0.113.7' in lines
        assert 'User Agent: pytest-agent/1.0' in lines
        assert 'Submitted At: 2026-10-18T09:30:00+00:00' in lines

    def test_empty_message_line_is_omitted(self, contact, metadata):
        body = render_body(dataclasses.replace(contact, message=''), metadata)
        assert 'Message:' not in body

    def test_outbound_message_addresses(self, contact, metadata, settings):
        message = build_outbound_message(contact, metadata, settings)

        assert message.from_addr == 'relay@example.com'
        assert message.to_addr == 'owner@example.com'
        assert message.reply_to == 'jo@example.com'
        assert message.subject == '[Contact] New request from Jo Smith'
        assert message.headers == {'X-Mailer': 'Contact Relay API'}

    def test_explicit_sender_is_preferred(self, contact, metadata, settings):
        settings = dataclasses.replace(settings, from_email='noreply@example.com')
        assert build_outbound_message(contact, metadata, settings).from_addr == 'noreply@example.com'

    def test_mime_message_headers(self, contact, metadata, settings):
        msg = to_email_message(build_outbound_message(contact, metadata, settings))

        assert msg['Reply-To'] == 'jo@example.com'
        assert msg['To'] == 'owner@example.com'
        assert msg['X-Mailer'] == 'Contact Relay API'
        assert msg['Message-ID'].endswith('@example.com>')
        assert 'Name: Jo Smith' in msg.get_content()

    def test_reply_to_is_a_single_address(self, contact, metadata, settings):
        contact = dataclasses.replace(contact, email='first.last+tag@example.com')
        msg = to_email_message(build_outbound_message(contact, metadata, settings))

        addresses = msg['Reply-To'].addresses
        assert len(addresses) == 1
        assert addresses[0].addr_spec == 'first.last+tag@example.com'
        assert addresses[0].display_name == ''


class TestSMTPMailRelay:
    """Test delivery through aiosmtplib."""

    def _send(self, settings, contact, metadata, smtp_client):
        message = build_outbound_message(contact, metadata, settings)
        with patch('core.mail_relay.aiosmtplib.SMTP', return_value=smtp_client) as smtp_cls:
            receipt = SMTPMailRelay(settings).send(message)
        return receipt, smtp_cls

    def test_successful_send(self, settings, contact, metadata, smtp_client):
        receipt, smtp_cls = self._send(settings, contact, metadata, smtp_client)

        smtp_cls.assert_called_once_with(
            hostname='smtp.example.com',
            port=587,
            use_tls=False,
            start_tls=False,
            timeout=5.0,
        )
        smtp_client.starttls.assert_awaited_once()
        smtp_client.login.assert_awaited_once_with('relay@example.com', 'secret')
        smtp_client.noop.assert_awaited_once()
        smtp_client.send_message.assert_awaited_once()
        smtp_client.quit.assert_awaited_once()

        sent = smtp_client.send_message.await_args.args[0]
        assert receipt.message_id == sent['Message-ID']
        assert receipt.response == '2.0.0 Ok: queued as ABC123'

    def test_implicit_tls_skips_starttls(self, settings, contact, metadata, smtp_client):
        settings = dataclasses.replace(settings, smtp_port=465, smtp_secure=True)
        _, smtp_cls = self._send(settings, contact, metadata, smtp_client)

        assert smtp_cls.call_args.kwargs['use_tls'] is True
        smtp_client.starttls.assert_not_awaited()

    def test_starttls_skipped_when_not_offered(self, settings, contact, metadata, smtp_client):
        smtp_client.supports_extension.return_value = False
        self._send(settings, contact, metadata, smtp_client)
        smtp_client.starttls.assert_not_awaited()

    def test_authentication_failure_becomes_relay_error(self, settings, contact, metadata, smtp_client):
        smtp_client.login.side_effect = aiosmtplib.SMTPAuthenticationError(535, 'Authentication failed')
        smtp_client.is_connected = True

        with pytest.raises(MailRelayError):
            self._send(settings, contact, metadata, smtp_client)

        smtp_client.send_message.assert_not_awaited()
        smtp_client.close.assert_called_once()

    def test_connect_timeout_becomes_relay_error(self, settings, contact, metadata, smtp_client):
        smtp_client.connect.side_effect = aiosmtplib.SMTPConnectTimeoutError('Timed out connecting')

        with pytest.raises(MailRelayError):
            self._send(settings, contact, metadata, smtp_client)

        smtp_client.login.assert_not_awaited()

    def test_network_error_becomes_relay_error(self, settings, contact, metadata, smtp_client):
        smtp_client.connect.side_effect = ConnectionRefusedError('refused')

        with pytest.raises(MailRelayError):
            self._send(settings, contact, metadata, smtp_client)
