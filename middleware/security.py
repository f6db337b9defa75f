# middleware/security.py
"""
Security Middleware for Request Processing
"""

import logging
from typing import Callable, Iterable

from flask import request

from config.settings import SECURITY_HEADERS
from core.exceptions import OriginRejected
from core.models import RequestMetadata

logger = logging.getLogger(__name__)

# Endpoints reachable regardless of origin or rate limits
UNGUARDED_ENDPOINTS = frozenset({'health_check'})


def security_headers(response):
    """Add security headers to all responses"""
    for name, value in SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    return response


def client_ip() -> str:
    """
    Best-effort client address

    Reflects X-Forwarded-For only when the app is wrapped in ProxyFix
    (TRUST_PROXY), otherwise the transport peer address.
    """
    return request.remote_addr or 'unknown'


def request_metadata() -> RequestMetadata:
    """Capture client facts for the outbound email"""
    return RequestMetadata(
        client_ip=client_ip(),
        user_agent=request.headers.get('User-Agent') or 'unknown',
    )


def is_unguarded_request() -> bool:
    return request.endpoint in UNGUARDED_ENDPOINTS


def is_preflight_request() -> bool:
    return request.method == 'OPTIONS'


def origin_guard(allowed_origins: Iterable[str]) -> Callable[[], None]:
    """
    Build a before_request hook enforcing the origin allow-list

    Requests without an Origin header (same-origin or non-browser callers)
    are let through.
    """
    allowed = frozenset(allowed_origins)

    def check_origin():
        if is_unguarded_request():
            return None

        origin = request.headers.get('Origin')
        if origin is None or origin in allowed:
            return None

        logger.warning(f"CORS blocked: {origin}")
        raise OriginRejected(origin)

    return check_origin
