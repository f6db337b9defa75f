# app.py
"""
Flask Application Factory for the Contact Relay Gateway

Accepts contact-form submissions from a browser frontend, validates and
sanitizes them, and relays each one as an email through an SMTP provider so
that SMTP credentials never reach the browser.

Request pipeline:
- Origin allow-list check (403 on violation)
- Request body size cap
- Global rate limit (all routes except /health)
- Contact rate limit (POST /contact only)
- Validation, sanitization and a single SMTP send
"""

import logging
import logging.handlers
from datetime import datetime, timezone
from typing import Optional

from flask import Flask, request, jsonify
from flask_cors import CORS
from flask_limiter import Limiter
from werkzeug.exceptions import HTTPException, NotFound, RequestEntityTooLarge
from werkzeug.middleware.proxy_fix import ProxyFix

from api.contact import create_contact_blueprint
from config.settings import Settings
from core.contact_service import ContactService
from core.exceptions import ContactRelayError, ValidationError
from core.mail_relay import MailRelay, SMTPMailRelay
from middleware.security import (
    client_ip, is_preflight_request, origin_guard, security_headers
)

GLOBAL_RATE_LIMIT_MESSAGE = 'Too many requests, please try again later'

FALLBACK_METHODS = ['GET', 'POST', 'PUT', 'PATCH', 'DELETE']

# Loggers of the application packages, configured alongside app.logger
PACKAGE_LOGGERS = ('api', 'core', 'middleware')


def setup_logging(app: Flask, settings: Settings) -> None:
    """
    Configure logging for the application and its packages

    - Console output for container / platform log collection
    - Optional rotating file log when LOG_FILE is set
    - Quiet werkzeug request logs outside development
    """
    formatter = logging.Formatter(
        fmt='%(asctime)s %(name)-20s %(levelname)-8s %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    handlers = [logging.StreamHandler()]
    if settings.log_file:
        handlers.append(logging.handlers.RotatingFileHandler(
            settings.log_file,
            maxBytes=10*1024*1024,  # 10MB
            backupCount=5
        ))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(log_level)

    loggers = [app.logger] + [logging.getLogger(name) for name in PACKAGE_LOGGERS]
    for logger in loggers:
        # Avoid duplicate output when the factory runs more than once
        logger.handlers.clear()
        logger.setLevel(log_level)
        for handler in handlers:
            logger.addHandler(handler)

    if settings.is_production:
        logging.getLogger('werkzeug').setLevel(logging.WARNING)


def configure_security(app: Flask, settings: Settings) -> Limiter:
    """
    Configure origin checks, CORS headers and rate limiting

    The origin guard is registered before Flask-Limiter so rejected origins
    never consume rate-limit budget.

    Returns:
        The application's Limiter
    """
    if settings.trust_proxy:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1)

    app.before_request(origin_guard(settings.allowed_origins))

    @app.before_request
    def enforce_body_limit():
        if request.content_length is not None and request.content_length > settings.max_content_length:
            raise RequestEntityTooLarge()

    CORS(app,
         origins=list(settings.allowed_origins),
         supports_credentials=True,
         methods=['GET', 'POST', 'OPTIONS'],
         allow_headers=['Content-Type'])

    limiter = Limiter(
        key_func=client_ip,
        app=app,
        application_limits=[settings.global_rate_limit],
        strategy='fixed-window',
        storage_uri=settings.ratelimit_storage_uri,
        headers_enabled=True
    )

    # CORS preflights do not spend the caller's budget
    limiter.request_filter(is_preflight_request)

    app.logger.info(
        f"Security configured: origins={list(settings.allowed_origins)}, "
        f"global limit '{settings.global_rate_limit}', contact limit '{settings.contact_rate_limit}'"
    )
    return limiter


def register_blueprints(app: Flask, service: ContactService, limiter: Limiter, settings: Settings) -> None:
    app.register_blueprint(create_contact_blueprint(service, limiter, settings.contact_rate_limit))


def configure_fallback_route(app: Flask) -> None:
    """
    Route every unknown path to a 404 view

    Unmatched requests then have an endpoint, so the global rate limit
    counts them like any other route.
    """
    @app.route('/', defaults={'path': ''}, methods=FALLBACK_METHODS)
    @app.route('/<path:path>', methods=FALLBACK_METHODS)
    def endpoint_not_found(path):
        raise NotFound()


def configure_error_handlers(app: Flask, settings: Settings) -> None:
    """
    Map every failure to a JSON response without leaking internal detail
    """
    @app.errorhandler(ContactRelayError)
    def contact_error(error):
        body = {'error': error.public_message}
        if isinstance(error, ValidationError):
            app.logger.info(f"Validation failed for {client_ip()}: {error.field}")
            body['field'] = error.field
        return jsonify(body), error.status_code

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Endpoint not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'error': 'Method not allowed'}), 405

    @app.errorhandler(413)
    def payload_too_large(error):
        app.logger.warning(f"Oversized request body from {client_ip()}")
        return jsonify({'error': 'Request body too large'}), 413

    @app.errorhandler(429)
    def rate_limit_exceeded(error):
        limit = getattr(error, 'limit', None)
        message = getattr(limit, 'error_message', None) or GLOBAL_RATE_LIMIT_MESSAGE
        app.logger.warning(f"Rate limit exceeded for {client_ip()} on {request.path}: {error.description}")
        return jsonify({'error': message}), 429

    @app.errorhandler(Exception)
    def handle_exception(e):
        """Handle unexpected exceptions"""
        if isinstance(e, HTTPException):
            return e

        app.logger.error(f"Unhandled error: {e}", exc_info=True)
        return jsonify({
            'error': 'Internal server error' if settings.is_production else str(e)
        }), 500


def configure_health_checks(app: Flask, limiter: Limiter) -> None:
    """
    Configure the health check endpoint for uptime monitoring
    """
    @app.route('/health')
    @limiter.exempt
    def health_check():
        """Basic health check endpoint"""
        return jsonify({
            'status': 'ok',
            'timestamp': datetime.now(timezone.utc).isoformat()
        })


def configure_request_middleware(app: Flask) -> None:
    @app.after_request
    def after_request(response):
        return security_headers(response)


def create_app(settings: Optional[Settings] = None, mail_relay: Optional[MailRelay] = None) -> Flask:
    """
    Flask application factory

    Args:
        settings: Frozen configuration; read from the environment when omitted
        mail_relay: Delivery backend; an SMTPMailRelay over settings when omitted

    Returns:
        Configured Flask application instance
    """
    settings = settings or Settings.from_env()

    app = Flask(__name__)
    app.config.update(settings.flask_config())
    app.extensions['contact_settings'] = settings

    setup_logging(app, settings)
    app.logger.info(f"Starting Contact API in {settings.environment} mode")

    missing = settings.missing_mail_settings()
    if missing:
        app.logger.warning(f"Mail relay not configured, submissions will fail: missing {', '.join(missing)}")

    service = ContactService(settings, mail_relay or SMTPMailRelay(settings))

    limiter = configure_security(app, settings)
    configure_health_checks(app, limiter)
    register_blueprints(app, service, limiter, settings)
    configure_fallback_route(app)
    configure_error_handlers(app, settings)
    configure_request_middleware(app)

    return app


if __name__ == '__main__':
    # Development server
    app = create_app()
    settings = app.extensions['contact_settings']
    app.logger.info(f"Contact API running on port {settings.port}")
    app.run(host='0.0.0.0', port=settings.port, debug=not settings.is_production)
