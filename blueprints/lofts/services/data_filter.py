"""
Data filter service.

Row-level visibility for the data returned to each role: staff see
everything, partners see what belongs to their lofts, clients see their
own bookings. Every filter returns the same envelope:

    {'data': [...], 'filtered_count': int, 'has_security_filtering': bool}
"""

import logging
from typing import Any, Dict, List

from models.loft import get_all_lofts

logger = logging.getLogger(__name__)

STAFF_ROLES = ('admin', 'manager')


def _attr(user, name: str):
    if isinstance(user, dict):
        return user.get(name)
    return getattr(user, name, None)


def _envelope(items: List[Dict[str, Any]], kept: List[Dict[str, Any]]) -> Dict[str, Any]:
    filtered = len(items) - len(kept)
    return {
        'data': kept,
        'filtered_count': filtered,
        'has_security_filtering': filtered > 0
    }


def _partner_loft_ids(partner_id: int) -> set:
    return {loft['id'] for loft in get_all_lofts(partner_id=partner_id)}


def _belongs_to_partner(item: Dict[str, Any], partner_id: int, loft_ids: set) -> bool:
    if item.get('partner_id') is not None:
        return item['partner_id'] == partner_id
    return item.get('loft_id') in loft_ids


def filter_lofts(lofts: List[Dict[str, Any]], user) -> Dict[str, Any]:
    """Staff see all lofts, partners their own, clients published ones."""
    role = _attr(user, 'role_name')
    if role in STAFF_ROLES:
        return _envelope(lofts, list(lofts))

    if role == 'partner':
        kept = [loft for loft in lofts if loft.get('partner_id') == _attr(user, 'id')]
    else:
        kept = [loft for loft in lofts if loft.get('is_published')]
    return _envelope(lofts, kept)


def filter_reservations(reservations: List[Dict[str, Any]], user) -> Dict[str, Any]:
    """Staff see all reservations, partners those on their lofts, clients their own."""
    role = _attr(user, 'role_name')
    user_id = _attr(user, 'id')

    if role in STAFF_ROLES:
        return _envelope(reservations, list(reservations))

    if role == 'partner':
        loft_ids = _partner_loft_ids(user_id)
        kept = [r for r in reservations if _belongs_to_partner(r, user_id, loft_ids)]
    elif role == 'client':
        kept = [r for r in reservations if r.get('client_user_id') == user_id]
    else:
        kept = []

    if len(kept) != len(reservations):
        logger.debug(f"Filtered {len(reservations) - len(kept)} reservations for user {user_id} ({role})")
    return _envelope(reservations, kept)


def filter_financial_data(records: List[Dict[str, Any]], user) -> Dict[str, Any]:
    """Clients get no financial data; partners only rows for their own lofts."""
    role = _attr(user, 'role_name')
    user_id = _attr(user, 'id')

    if role in STAFF_ROLES:
        return _envelope(records, list(records))

    if role == 'partner':
        loft_ids = _partner_loft_ids(user_id)
        kept = [r for r in records if _belongs_to_partner(r, user_id, loft_ids)]
    else:
        kept = []
    return _envelope(records, kept)


def filter_notifications(notifications: List[Dict[str, Any]], user) -> Dict[str, Any]:
    """Staff see every notification; everyone else only those addressed to them."""
    role = _attr(user, 'role_name')
    if role in STAFF_ROLES:
        return _envelope(notifications, list(notifications))

    user_id = _attr(user, 'id')
    return _envelope(notifications, [n for n in notifications if n.get('user_id') == user_id])
