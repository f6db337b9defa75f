# core/models.py
"""
Transient data models for a single contact submission
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional


# Alternate key accepted for the message field by older frontends
LEGACY_MESSAGE_KEY = 'description'


@dataclass(frozen=True)
class ContactSubmission:
    """Raw, unvalidated contact form input"""
    name: Any = None
    email: Any = None
    url: Any = None
    message: Any = None

    @classmethod
    def from_payload(cls, payload: Optional[Mapping[str, Any]]) -> 'ContactSubmission':
        """
        Build a submission from a decoded JSON body

        Non-mapping bodies are treated as empty. A falsy ``message`` falls back
        to the legacy ``description`` key.
        """
        if not isinstance(payload, Mapping):
            payload = {}

        return cls(
            name=payload.get('name'),
            email=payload.get('email'),
            url=payload.get('url'),
            message=payload.get('message') or payload.get(LEGACY_MESSAGE_KEY) or None,
        )


@dataclass(frozen=True)
class SanitizedContact:
    """Validated and normalized submission, safe to put in an email"""
    name: str
    email: str
    url: str
    message: str = ''


@dataclass(frozen=True)
class RequestMetadata:
    """Best-effort facts about the submitting client"""
    client_ip: str = 'unknown'
    user_agent: str = 'unknown'
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def timestamp(self) -> str:
        return self.submitted_at.isoformat()


@dataclass(frozen=True)
class OutboundMessage:
    """Email handed to the mail relay"""
    from_addr: str
    to_addr: str
    reply_to: str
    subject: str
    body: str
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class MailReceipt:
    """Result of an accepted send"""
    message_id: str
    response: str = ''
