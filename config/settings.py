# config/settings.py
"""
Runtime Configuration for the Contact Relay Gateway

Settings are read from the environment (and an optional .env file) exactly
once at startup and frozen into a Settings value that is handed to every
component that needs it.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

from dotenv import load_dotenv

from core.exceptions import ConfigurationError


DEFAULT_ALLOWED_ORIGINS = ('http://localhost:3000', 'http://localhost:3001')

# Response headers equivalent to the helmet defaults of the original frontend API
CSP_POLICY = {
    'default-src': "'self'",
    'script-src': "'self'",
    'style-src': "'self' 'unsafe-inline'",
    'img-src': "'self' data: https:",
}

SECURITY_HEADERS = {
    'Content-Security-Policy': '; '.join(f'{k} {v}' for k, v in CSP_POLICY.items()),
    'X-Content-Type-Options': 'nosniff',
    'X-Frame-Options': 'DENY',
    'X-XSS-Protection': '1; mode=block',
    'Strict-Transport-Security': 'max-age=31536000; includeSubDomains; preload',
    'Referrer-Policy': 'strict-origin-when-cross-origin',
}


def _as_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None or value == '':
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _as_list(value: Optional[str], default: Tuple[str, ...]) -> Tuple[str, ...]:
    if value is None:
        return default
    return tuple(item.strip() for item in value.split(',') if item.strip())


@dataclass(frozen=True)
class Settings:
    """Immutable process-wide configuration"""

    # Server
    port: int = 3001
    environment: str = 'development'
    trust_proxy: bool = False
    max_content_length: int = 10 * 1024  # 10KB

    # SMTP relay
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_secure: bool = False
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = field(default=None, repr=False)
    smtp_timeout: float = 5.0
    from_email: Optional[str] = None
    to_email: Optional[str] = None
    subject_prefix: str = '[Contact]'
    x_mailer: str = 'Contact Relay API'

    # Origin allow-list
    allowed_origins: Tuple[str, ...] = DEFAULT_ALLOWED_ORIGINS

    # Rate limiting
    global_rate_limit: str = '5 per 15 minutes'
    contact_rate_limit: str = '3 per hour'
    ratelimit_storage_uri: str = 'memory://'

    # Logging
    log_level: str = 'INFO'
    log_file: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'Settings':
        """
        Build settings from environment variables

        Args:
            environ: Mapping to read from; defaults to os.environ after
                loading a .env file from the working directory

        Returns:
            Frozen Settings instance
        """
        if environ is None:
            load_dotenv()
            environ = os.environ

        smtp_user = environ.get('SMTP_USER') or None

        return cls(
            port=int(environ.get('PORT', 3001)),
            environment=environ.get('APP_ENV') or environ.get('FLASK_ENV') or 'development',
            trust_proxy=_as_bool(environ.get('TRUST_PROXY')),
            max_content_length=int(environ.get('MAX_CONTENT_LENGTH', 10 * 1024)),
            smtp_host=environ.get('SMTP_HOST') or None,
            smtp_port=int(environ.get('SMTP_PORT') or 587),
            smtp_secure=_as_bool(environ.get('SMTP_SECURE')),
            smtp_user=smtp_user,
            smtp_password=environ.get('SMTP_PASS') or None,
            smtp_timeout=float(environ.get('SMTP_TIMEOUT', 5)),
            from_email=environ.get('FROM_EMAIL') or smtp_user,
            to_email=environ.get('TO_EMAIL') or None,
            subject_prefix=environ.get('MAIL_SUBJECT_PREFIX', '[Contact]'),
            x_mailer=environ.get('MAIL_X_MAILER', 'Contact Relay API'),
            allowed_origins=_as_list(environ.get('ALLOWED_ORIGINS'), DEFAULT_ALLOWED_ORIGINS),
            global_rate_limit=environ.get('GLOBAL_RATE_LIMIT', '5 per 15 minutes'),
            contact_rate_limit=environ.get('CONTACT_RATE_LIMIT', '3 per hour'),
            ratelimit_storage_uri=environ.get('RATELIMIT_STORAGE_URI', 'memory://'),
            log_level=environ.get('LOG_LEVEL', 'INFO'),
            log_file=environ.get('LOG_FILE') or None,
        )

    @property
    def is_production(self) -> bool:
        return self.environment == 'production'

    @property
    def sender(self) -> Optional[str]:
        return self.from_email or self.smtp_user

    def missing_mail_settings(self) -> List[str]:
        """Names of the required mail settings that are not set"""
        required = {
            'SMTP_HOST': self.smtp_host,
            'SMTP_USER': self.smtp_user,
            'SMTP_PASS': self.smtp_password,
            'TO_EMAIL': self.to_email,
        }
        return [name for name, value in required.items() if not value]

    def require_mail_config(self) -> None:
        """Raise ConfigurationError unless every required mail setting is present"""
        missing = self.missing_mail_settings()
        if missing:
            raise ConfigurationError(missing)

    def flask_config(self) -> Dict[str, object]:
        """Flask configuration keys derived from these settings"""
        return {
            'ENV_NAME': self.environment,
            'MAX_CONTENT_LENGTH': self.max_content_length,
            'LOG_LEVEL': self.log_level,
        }
