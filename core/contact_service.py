# core/contact_service.py
"""Contact submission pipeline: validate, sanitize, relay"""

import logging
from typing import Any, Mapping, Optional

from core.contact_validator import validate_submission
from core.exceptions import ConfigurationError
from core.mail_relay import MailRelay, build_outbound_message
from core.models import ContactSubmission, MailReceipt, RequestMetadata
from core.sanitizer import sanitize_submission

logger = logging.getLogger(__name__)


class ContactService:
    """
    Turns a raw contact payload into exactly one relayed email

    Stages run strictly in order; the first failure ends the submission and
    nothing is sent.
    """

    def __init__(self, settings, relay: MailRelay):
        self.settings = settings
        self.relay = relay

    def submit(self, payload: Optional[Mapping[str, Any]], metadata: RequestMetadata) -> MailReceipt:
        """
        Process one submission

        Raises:
            ValidationError: a field is missing or malformed
            ConfigurationError: required mail settings are absent (no network call is made)
            MailRelayError: the relay could not deliver the message
        """
        submission = ContactSubmission.from_payload(payload)
        validate_submission(submission)
        contact = sanitize_submission(submission)

        try:
            self.settings.require_mail_config()
        except ConfigurationError as e:
            logger.error(f"Missing SMTP configuration: {', '.join(e.missing)}")
            raise

        message = build_outbound_message(contact, metadata, self.settings)
        return self.relay.send(message)
