"""
Miscellaneous utility helper functions.
Provides common functionality used across the application.
"""

import random
import string
from utils.datetime_helpers import get_now


def generate_unique_code(prefix: str = '', length: int = 8) -> str:
    """
    Generate a random code.

    Args:
        prefix: Optional prefix (e.g., 'LB')
        length: Length of random part

    Returns:
        Unique code string
    """
    random_part = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))

    if prefix:
        return f'{prefix}-{random_part}'

    return random_part


def generate_booking_reference() -> str:
    """Booking reference: LB-YYYYMMDD-XXXXXX."""
    return generate_unique_code(f"LB-{get_now().strftime('%Y%m%d')}", 6)


def truncate_text(text: str, max_length: int = 100, suffix: str = '...') -> str:
    """
    Truncate text to maximum length with suffix.

    Cuts on a word boundary when one falls within the last 20% of the
    available room. The result, suffix included, never exceeds max_length.

    Args:
        text: Text to truncate
        max_length: Maximum length
        suffix: Suffix to add if truncated

    Returns:
        Truncated text
    """
    if not text:
        return ''

    if max_length <= 0:
        return ''

    if len(text) <= max_length:
        return text

    if max_length <= len(suffix):
        return suffix[:max_length]

    room = max_length - len(suffix)
    head = text[:room]

    if text[room] != ' ':
        boundary = head.rfind(' ')
        if boundary >= room * 0.8:
            head = head[:boundary]

    return head.rstrip() + suffix


def split_full_name(full_name: str) -> tuple:
    """Split 'First Middle Last' into ('First', 'Middle Last')."""
    parts = (full_name or '').strip().split()
    if not parts:
        return '', ''
    return parts[0], ' '.join(parts[1:])
