"""
Pytest configuration and fixtures for all tests.
"""

import dataclasses
import threading

import pytest

from app import create_app
from config.settings import Settings
from core.mail_relay import MailRelay
from core.models import MailReceipt


class RecordingRelay(MailRelay):
    """Mail relay double that records messages instead of sending them"""

    def __init__(self):
        self.messages = []
        self.error = None
        self._lock = threading.Lock()

    def send(self, message):
        with self._lock:
            self.messages.append(message)
            count = len(self.messages)
        if self.error is not None:
            raise self.error
        return MailReceipt(message_id=f'<test-{count}@example.com>', response='250 2.0.0 Ok')


@pytest.fixture
def settings():
    """Fully configured settings pointing at a fictional SMTP relay."""
    return Settings(
        smtp_host='smtp.example.com',
        smtp_port=587,
        smtp_user='relay@example.com',
        smtp_password='secret',
        to_email='owner@example.com',
        allowed_origins=('https://app.example.com',),
        log_level='WARNING',
    )


@pytest.fixture
def relay():
    return RecordingRelay()


@pytest.fixture
def make_app(settings, relay):
    """Build an app from the base settings with field overrides."""
    def _make(**overrides):
        return create_app(dataclasses.replace(settings, **overrides), relay)
    return _make


@pytest.fixture
def app(make_app):
    return make_app()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def valid_payload():
    return {
        'name': 'Jo Smith',
        'email': 'jo@example.com',
        'url': 'https://app.example.com',
        'message': 'Please review',
    }
