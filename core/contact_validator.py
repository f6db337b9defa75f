# core/contact_validator.py
"""
Contact Submission Validation

Pure checks over a raw ContactSubmission. Validation stops at the first
failing field, in the order name, email, url, message.
"""

import ipaddress
import re
import socket
from typing import Any, Optional
from urllib.parse import urlparse

from core.exceptions import ValidationError
from core.models import ContactSubmission


NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100
EMAIL_MAX_LENGTH = 254
MESSAGE_MAX_LENGTH = 500

# Coarse syntactic check, not RFC 5322
EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')

# Characters that would change the meaning of an address header
EMAIL_HEADER_SPECIALS = re.compile(r'[<>()\[\],;:"\\]')

ALLOWED_URL_SCHEMES = ('http', 'https')

BLOCKED_HOSTNAMES = frozenset({'localhost'})

BLOCKED_NETWORKS = (
    ipaddress.ip_network('0.0.0.0/8'),
    ipaddress.ip_network('127.0.0.0/8'),
    ipaddress.ip_network('::/128'),
    ipaddress.ip_network('::1/128'),
    ipaddress.ip_network('10.0.0.0/8'),
    ipaddress.ip_network('172.16.0.0/12'),
    ipaddress.ip_network('192.168.0.0/16'),
)

# Hostnames whose last label is a number are IPv4 literals to a browser,
# including shorthand (127.1), hex (0x7f.0.0.1), octal (0177.0.0.1) and
# single-integer (2130706433) forms
_NUMERIC_LABEL = re.compile(r'^(0x[0-9a-f]*|[0-9]+)$')


def validate_name(name: Any) -> None:
    if not isinstance(name, str) or len(name.strip()) < NAME_MIN_LENGTH:
        raise ValidationError('name', f'Name must be at least {NAME_MIN_LENGTH} characters')
    if len(name) > NAME_MAX_LENGTH:
        raise ValidationError('name', f'Name must be less than {NAME_MAX_LENGTH} characters')


def is_valid_email(email: Any) -> bool:
    return (
        isinstance(email, str)
        and len(email) <= EMAIL_MAX_LENGTH
        and EMAIL_PATTERN.match(email) is not None
        and EMAIL_HEADER_SPECIALS.search(email) is None
    )


def validate_email(email: Any) -> None:
    if not is_valid_email(email):
        raise ValidationError('email', 'Valid email is required')


def parse_ipv4_host(hostname: str) -> Optional[ipaddress.IPv4Address]:
    """
    Interpret a numeric hostname the way a URL parser does

    Returns:
        The IPv4 address, or None when the hostname is not numeric

    Raises:
        ValueError: the hostname is numeric but not a valid IPv4 address
    """
    if ':' in hostname:
        return None

    labels = hostname.split('.')
    if not _NUMERIC_LABEL.match(labels[-1]):
        return None
    if len(labels) > 4 or not all(_NUMERIC_LABEL.match(label) for label in labels):
        raise ValueError(f"Invalid IPv4 host: {hostname}")

    try:
        return ipaddress.IPv4Address(socket.inet_aton(hostname))
    except OSError as e:
        raise ValueError(f"Invalid IPv4 host: {hostname}") from e


def is_blocked_host(hostname: str) -> bool:
    """
    True for localhost, unspecified, loopback and RFC 1918 addresses

    Raises:
        ValueError: the hostname is a malformed IP literal
    """
    hostname = hostname.lower().rstrip('.')
    if hostname in BLOCKED_HOSTNAMES:
        return True

    address = parse_ipv4_host(hostname)
    if address is None:
        try:
            address = ipaddress.ip_address(hostname)
        except ValueError:
            return False

    # IPv4-mapped IPv6 (::ffff:10.0.0.1) is judged by its IPv4 form
    mapped = getattr(address, 'ipv4_mapped', None)
    if mapped is not None:
        address = mapped

    return any(address in network for network in BLOCKED_NETWORKS if network.version == address.version)


def is_valid_url(url: Any) -> bool:
    """
    Check that url is an absolute http(s) URL pointing at a public host

    Any parse failure counts as invalid.
    """
    if not isinstance(url, str) or not url:
        return False

    try:
        parsed = urlparse(url.strip())
        hostname = parsed.hostname
        parsed.port  # raises ValueError on a malformed port
    except ValueError:
        return False

    if parsed.scheme.lower() not in ALLOWED_URL_SCHEMES or not hostname:
        return False

    try:
        return not is_blocked_host(hostname)
    except ValueError:
        return False


def validate_url(url: Any) -> None:
    if not is_valid_url(url):
        raise ValidationError('url', 'Valid web application URL is required')


def validate_message(message: Any) -> None:
    if message is None or message == '':
        return
    if not isinstance(message, str):
        raise ValidationError('message', 'Message must be text')
    if len(message) > MESSAGE_MAX_LENGTH:
        raise ValidationError('message', f'Message must be less than {MESSAGE_MAX_LENGTH} characters')


def validate_submission(submission: ContactSubmission) -> None:
    """
    Validate every field of a submission

    Raises:
        ValidationError: for the first field that fails
    """
    validate_name(submission.name)
    validate_email(submission.email)
    validate_url(submission.url)
    validate_message(submission.message)
