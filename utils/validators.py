"""
Input validation helper functions.
Provides validation for common input types.
"""

import re
from datetime import datetime

UUID_PATTERN = re.compile(
    r'^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$',
    re.IGNORECASE
)


def validate_email(email: str) -> bool:
    """
    Validate email format.

    Args:
        email: Email address to validate

    Returns:
        True if valid email format
    """
    if not email:
        return False

    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return bool(re.match(pattern, email))


def validate_phone(phone: str) -> bool:
    """
    Validate an international phone number.
    Accepts an optional leading '+' followed by 8 to 15 digits; spaces,
    dashes, dots and parentheses are ignored.

    Args:
        phone: Phone number to validate

    Returns:
        True if valid phone format
    """
    if not phone:
        return False

    cleaned = re.sub(r'[\s\-\.\(\)]', '', phone)

    return bool(re.match(r'^\+?[0-9]{8,15}$', cleaned))


def validate_date_range(start_date: str, end_date: str) -> bool:
    """
    Validate that end date is strictly after start date.

    Args:
        start_date: Start date (YYYY-MM-DD)
        end_date: End date (YYYY-MM-DD)

    Returns:
        True if valid date range
    """
    try:
        start = datetime.strptime(start_date, '%Y-%m-%d')
        end = datetime.strptime(end_date, '%Y-%m-%d')
        return end > start
    except (ValueError, TypeError):
        return False


def validate_password(password: str, min_length: int = 8) -> tuple:
    """
    Validate password strength: minimum length plus upper, lower and digit.

    Args:
        password: Password to validate
        min_length: Minimum password length

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not password:
        return False, 'Password is required'

    if len(password) < min_length:
        return False, f'Password must be at least {min_length} characters'

    if not any(c.isupper() for c in password):
        return False, 'Password must contain at least one uppercase letter'
    if not any(c.islower() for c in password):
        return False, 'Password must contain at least one lowercase letter'
    if not any(c.isdigit() for c in password):
        return False, 'Password must contain at least one number'

    return True, ''


def validate_date_format(date_str: str) -> bool:
    """
    Validate date is in YYYY-MM-DD format.

    Args:
        date_str: Date string to validate

    Returns:
        True if valid format
    """
    try:
        datetime.strptime(date_str, '%Y-%m-%d')
        return True
    except (ValueError, TypeError):
        return False


def sanitize_input(text: str, max_length: int = None) -> str:
    """
    Sanitize text input by trimming and limiting length.

    Args:
        text: Text to sanitize
        max_length: Maximum length (optional)

    Returns:
        Sanitized text
    """
    if not text:
        return ''

    sanitized = str(text).strip()

    if max_length and len(sanitized) > max_length:
        sanitized = sanitized[:max_length]

    return sanitized


# =============================================================================
# UUID VALIDATION
# =============================================================================

def is_valid_uuid(value) -> bool:
    """True for a canonical UUID string (whitespace trimmed, any case)."""
    if not isinstance(value, str):
        return False
    return bool(UUID_PATTERN.match(value.strip()))


def validate_transaction_id(value) -> dict:
    """
    Validate a transaction identifier.

    Returns:
        {'is_valid': bool, 'error': str or None}
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return {'is_valid': False, 'error': 'Transaction ID is required'}

    if not isinstance(value, str):
        return {'is_valid': False, 'error': 'Transaction ID must be a string'}

    if not is_valid_uuid(value):
        return {'is_valid': False, 'error': 'Invalid transaction ID format'}

    return {'is_valid': True, 'error': None}


def sanitize_uuid(value) -> str | None:
    """Return the trimmed lowercase UUID, or None when invalid."""
    if not is_valid_uuid(value):
        return None
    return value.strip().lower()
