# core/exceptions.py
"""
Exception hierarchy for the contact relay pipeline
"""

from typing import List, Optional


class ContactRelayError(Exception):
    """Base exception for contact relay operations"""
    status_code = 500
    public_message = 'Internal server error'


class ValidationError(ContactRelayError):
    """A submitted field failed validation"""
    status_code = 400

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.public_message = message


class OriginRejected(ContactRelayError):
    """Request origin is not on the allow-list"""
    status_code = 403
    public_message = 'CORS policy violation'

    def __init__(self, origin: Optional[str]):
        super().__init__(f"Origin not allowed: {origin}")
        self.origin = origin


class ConfigurationError(ContactRelayError):
    """Required mail settings are missing"""
    status_code = 500
    public_message = 'Email service not configured'

    def __init__(self, missing: List[str]):
        super().__init__(f"Missing mail configuration: {', '.join(missing)}")
        self.missing = list(missing)


class MailRelayError(ContactRelayError):
    """Connecting to, authenticating with, or sending through the SMTP relay failed"""
    status_code = 503
    public_message = 'Unable to process request, please try again later'
