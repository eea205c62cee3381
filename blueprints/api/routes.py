"""
API routes for service endpoints.
Health check and CSRF token for JSON clients.
"""

import sqlite3

from flask import Blueprint, current_app
from flask_wtf.csrf import generate_csrf

from database import get_db
from utils.api_response import api_success, api_error

api_bp = Blueprint('api', __name__)


@api_bp.route('/health')
def health_check():
    """
    Health check endpoint (no authentication required).

    Returns:
        JSON with status, version and database reachability
    """
    try:
        get_db().execute('SELECT 1')
    except sqlite3.Error as e:
        current_app.logger.error(f'Health check failed: {e}')
        return api_error('Database unavailable', status=503)

    return api_success(data={
        'status': 'ok',
        'version': current_app.config.get('APP_VERSION', '1.0.0'),
        'app': current_app.config.get('APP_NAME', 'LoftBook')
    })


@api_bp.route('/csrf-token')
def csrf_token():
    """Token JSON clients send back in the X-CSRFToken header."""
    return api_success(data={'csrf_token': generate_csrf()})
