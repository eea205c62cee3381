"""
Standardized API response helpers.

Provides consistent JSON response format across all API endpoints:

    Success:  {"success": true, "data": {...}, "message": "..."}
    Error:    {"success": false, "error": "Error message"}
    Warning:  {"success": true, "data": {...}, "warning": "..."}

Usage:
    from utils.api_response import api_success, api_error

    return api_success(data={'id': 1}, message='Loft created')
    return api_error('Loft not found', status=404)
"""

from flask import jsonify, request
from typing import Any

# URL prefixes whose routes only speak JSON
JSON_PREFIXES = ('/api', '/partner', '/admin')


def api_success(
    data: dict | list | None = None,
    message: str | None = None,
    warning: str | None = None,
    status: int = 200,
    **extra_fields: Any
) -> tuple:
    """
    Build a standardized success JSON response.

    Args:
        data: Optional payload to include as 'data' key.
        message: Optional success message.
        warning: Optional warning message.
        status: HTTP status code (default 200).
        **extra_fields: Additional top-level fields (e.g. pagination).

    Returns:
        Tuple of (Response, status_code)
    """
    response = {'success': True}

    if data is not None:
        response['data'] = data

    if message:
        response['message'] = message

    if warning:
        response['warning'] = warning

    if extra_fields:
        response.update(extra_fields)

    return jsonify(response), status


def api_error(error: str, status: int = 400, **extra_fields: Any) -> tuple:
    """
    Build a standardized error JSON response.

    Args:
        error: Error message.
        status: HTTP status code (default 400).
        **extra_fields: Additional top-level fields (e.g., errors, unavailable_dates).

    Returns:
        Tuple of (Response, status_code)
    """
    response = {'success': False, 'error': error}

    if extra_fields:
        response.update(extra_fields)

    return jsonify(response), status


def wants_json() -> bool:
    """True when the current request expects a JSON answer instead of HTML."""
    if request.is_json or request.path.startswith(JSON_PREFIXES):
        return True
    best = request.accept_mimetypes.best_match(['application/json', 'text/html'])
    return best == 'application/json' and request.accept_mimetypes[best] > request.accept_mimetypes['text/html']


def get_json_body() -> dict:
    """Return the request JSON body as a dict (empty when missing or invalid)."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def domain_error(exc: Exception) -> tuple:
    """
    Map a service exception to an error response.

    ValidationError -> 400 with errors, NotFoundError -> 404,
    AvailabilityError -> 409 with unavailable_dates and restrictions,
    anything else -> 400.
    """
    from utils.exceptions import ValidationError, AvailabilityError, NotFoundError

    if isinstance(exc, NotFoundError):
        return api_error(str(exc), status=404)
    if isinstance(exc, AvailabilityError):
        return api_error(str(exc), status=409,
                         unavailable_dates=exc.unavailable_dates,
                         restrictions=exc.restrictions)
    if isinstance(exc, ValidationError):
        return api_error(str(exc), status=400, errors=exc.errors)
    return api_error(str(exc), status=400)
