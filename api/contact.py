# api/contact.py
"""
Contact Submission API
"""

import logging

from flask import Blueprint, jsonify, request
from flask_limiter import Limiter

from core.contact_service import ContactService
from middleware.security import client_ip, request_metadata

logger = logging.getLogger(__name__)

CONTACT_RATE_LIMIT_MESSAGE = 'Too many contact requests, please try again in an hour'


def create_contact_blueprint(service: ContactService, limiter: Limiter, contact_rate_limit: str) -> Blueprint:
    """
    Build the contact blueprint bound to a service and its app's limiter

    Args:
        service: Pipeline that validates, sanitizes and relays submissions
        limiter: The application's Flask-Limiter instance
        contact_rate_limit: Limit string for submissions, e.g. "3 per hour"
    """
    contact_bp = Blueprint('contact', __name__)

    @contact_bp.route('/contact', methods=['POST'])
    @limiter.limit(
        contact_rate_limit,
        key_func=client_ip,
        error_message=CONTACT_RATE_LIMIT_MESSAGE,
    )
    def submit_contact():
        payload = request.get_json(silent=True)
        receipt = service.submit(payload, request_metadata())

        logger.info(f"Contact request relayed for {client_ip()}: {receipt.message_id}")
        return jsonify({
            'success': True,
            'message': 'Request received successfully'
        }), 200

    return contact_bp
