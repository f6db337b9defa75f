# core/sanitizer.py
"""Post-validation normalization of contact submissions"""

import re

from core.contact_validator import MESSAGE_MAX_LENGTH, NAME_MAX_LENGTH
from core.models import ContactSubmission, SanitizedContact


# Anything that could break out of a mail header line
_CONTROL_CHARS = re.compile(r'[\x00-\x1f\x7f]+')


def clean_text(value: str, max_length: int) -> str:
    """Trim and truncate, leaving no surrounding whitespace"""
    return value.strip()[:max_length].rstrip()


def sanitize_name(name: str) -> str:
    return clean_text(_CONTROL_CHARS.sub(' ', name), NAME_MAX_LENGTH)


def sanitize_email(email: str) -> str:
    return email.strip().lower()


def sanitize_message(message) -> str:
    if not message:
        return ''
    return clean_text(message, MESSAGE_MAX_LENGTH)


def sanitize_submission(submission: ContactSubmission) -> SanitizedContact:
    """
    Produce the SanitizedContact for a submission that passed validation

    Idempotent: sanitizing an already sanitized contact returns it unchanged.
    """
    return SanitizedContact(
        name=sanitize_name(submission.name),
        email=sanitize_email(submission.email),
        url=submission.url,
        message=sanitize_message(submission.message),
    )
