"""
Availability Service - Date validation, availability checks and calendar management.

Handles:
- Stay date validation and night counting
- Availability checks (status, stay limits, blocked dates, reservations, locks)
- Short-lived reservation locks during checkout
- Blocking/unblocking dates and per-date price overrides
- Availability calendar and synchronization with confirmed reservations
"""

import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Tuple

from flask import current_app

from database import get_db
from models.loft import get_loft_by_id
from models.availability import (
    BOOKED_REASON,
    get_availability_rows,
    get_blocked_dates,
    upsert_availability,
    delete_unbooked_rows,
    release_booked_dates
)
from models.reservation import get_overlapping_reservations, get_confirmed_reservations
from models.reservation_lock import (
    create_lock,
    delete_lock,
    delete_expired_locks,
    get_conflicting_locks
)
from utils.datetime_helpers import get_today, parse_date
from utils.exceptions import AvailabilityError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


# =============================================================================
# DATE HELPERS
# =============================================================================

def validate_date_range(check_in, check_out, allow_past: bool = False) -> Tuple[date, date]:
    """
    Validate a stay's dates.

    Args:
        check_in: Check-in date (YYYY-MM-DD or date)
        check_out: Check-out date (YYYY-MM-DD or date)
        allow_past: Skip the past-date check (staff edits, calendars)

    Returns:
        Tuple of (check_in, check_out) as dates

    Raises:
        ValidationError: invalid format, order, past or too far ahead
    """
    try:
        start = parse_date(check_in)
        end = parse_date(check_out)
    except (TypeError, ValueError):
        raise ValidationError('Invalid date format')

    if end <= start:
        raise ValidationError('Check-out date must be after check-in date')

    today = get_today()
    if not allow_past and start < today:
        raise ValidationError('Check-in date cannot be in the past')

    max_days = current_app.config.get('MAX_ADVANCE_BOOKING_DAYS', 730)
    if start > today + timedelta(days=max_days):
        raise ValidationError('Booking date is too far in the future')

    return start, end


def calculate_nights(check_in, check_out) -> int:
    """Number of nights between two dates."""
    return (parse_date(check_out) - parse_date(check_in)).days


def generate_date_range(start, end) -> List[str]:
    """Every date in [start, end) as YYYY-MM-DD strings."""
    current = parse_date(start)
    last = parse_date(end)
    dates = []
    while current < last:
        dates.append(current.isoformat())
        current += timedelta(days=1)
    return dates


# =============================================================================
# AVAILABILITY CHECK
# =============================================================================

def check_availability(
    loft_id: int,
    check_in,
    check_out,
    exclude_reservation_id: int = None,
    user_id: int = None,
    lock_id: str = None
) -> Dict[str, Any]:
    """
    Check whether a loft can be booked for [check_in, check_out).

    Args:
        loft_id: Loft ID
        check_in: Check-in date
        check_out: Check-out date
        exclude_reservation_id: Reservation being edited (ignored in overlap check)
        user_id: Locks held by this user do not block
        lock_id: This lock does not block

    Returns:
        dict with is_available, unavailable_dates, minimum_stay, maximum_stay,
        restrictions (list of messages) and nights
    """
    start = parse_date(check_in).isoformat()
    end = parse_date(check_out).isoformat()
    nights = calculate_nights(start, end)

    result = {
        'is_available': True,
        'unavailable_dates': [],
        'minimum_stay': 1,
        'maximum_stay': None,
        'restrictions': [],
        'nights': nights
    }

    loft = get_loft_by_id(loft_id)
    if not loft:
        result['is_available'] = False
        result['restrictions'].append('Loft not found')
        return result

    result['minimum_stay'] = loft.get('minimum_stay') or 1
    result['maximum_stay'] = loft.get('maximum_stay')

    if loft['status'] != 'available':
        result['is_available'] = False
        result['restrictions'].append(f"Loft is currently {loft['status']}")

    if nights < result['minimum_stay']:
        result['is_available'] = False
        result['restrictions'].append(f"Minimum stay is {result['minimum_stay']} nights")

    if result['maximum_stay'] and nights > result['maximum_stay']:
        result['is_available'] = False
        result['restrictions'].append(f"Maximum stay is {result['maximum_stay']} nights")

    unavailable = set(get_blocked_dates(loft_id, start, end))
    if unavailable:
        result['restrictions'].append('Some dates are blocked')

    overlapping = get_overlapping_reservations(loft_id, start, end, exclude_reservation_id)
    for reservation in overlapping:
        overlap_start = max(start, reservation['check_in_date'])
        overlap_end = min(end, reservation['check_out_date'])
        unavailable.update(generate_date_range(overlap_start, overlap_end))
    if overlapping:
        result['restrictions'].append('Dates overlap an existing reservation')

    locks = get_conflicting_locks(loft_id, start, end, exclude_user_id=user_id, exclude_lock_id=lock_id)
    for lock in locks:
        overlap_start = max(start, lock['check_in_date'])
        overlap_end = min(end, lock['check_out_date'])
        unavailable.update(generate_date_range(overlap_start, overlap_end))
    if locks:
        result['restrictions'].append('Dates are temporarily held by another booking')

    if unavailable:
        result['is_available'] = False
        result['unavailable_dates'] = sorted(unavailable)

    return result


# =============================================================================
# RESERVATION LOCKS
# =============================================================================

def lock_dates(loft_id: int, check_in, check_out, user_id: int = None) -> Dict[str, Any]:
    """
    Hold a loft's dates for the checkout window.

    Returns:
        dict with lock_id and expires_at

    Raises:
        ValidationError: invalid dates
        AvailabilityError: dates are not available
    """
    start, end = validate_date_range(check_in, check_out)

    availability = check_availability(loft_id, start, end, user_id=user_id)
    if not availability['is_available']:
        raise AvailabilityError(
            'Selected dates are not available',
            unavailable_dates=availability['unavailable_dates'],
            restrictions=availability['restrictions']
        )

    minutes = current_app.config.get('RESERVATION_LOCK_MINUTES', 15)
    lock = create_lock(loft_id, start.isoformat(), end.isoformat(), user_id, minutes=minutes)
    logger.info(f"Locked loft {loft_id} {start} -> {end} (lock {lock['lock_id']})")
    return lock


def release_lock(lock_id: str) -> bool:
    """Release a reservation lock. Returns False when it did not exist."""
    return delete_lock(lock_id)


def cleanup_expired_locks() -> int:
    """Delete expired locks; returns how many were removed."""
    removed = delete_expired_locks()
    if removed:
        logger.info(f"Removed {removed} expired reservation locks")
    return removed


# =============================================================================
# BLOCKING & OVERRIDES
# =============================================================================

def block_dates(
    loft_id: int,
    start_date,
    end_date,
    reason: str = None,
    price_override: float = None,
    minimum_stay: int = 1
) -> int:
    """
    Mark every date in [start_date, end_date) unavailable.

    Args:
        loft_id: Loft ID
        start_date: First blocked date
        end_date: Exclusive end date
        reason: Why the dates are blocked (maintenance, owner use, ...)
        price_override: Optional nightly price stored on the rows
        minimum_stay: Minimum stay stored on the rows

    Returns:
        Number of dates blocked

    Raises:
        NotFoundError: loft does not exist
        ValidationError: end_date is not after start_date
        AvailabilityError: a reservation already holds some of the dates
    """
    if not get_loft_by_id(loft_id):
        raise NotFoundError('Loft not found')

    start, end = validate_date_range(start_date, end_date, allow_past=True)
    start_str, end_str = start.isoformat(), end.isoformat()

    overlapping = get_overlapping_reservations(loft_id, start_str, end_str)
    if overlapping:
        refs = ', '.join(r['booking_reference'] for r in overlapping)
        raise AvailabilityError(f'Cannot block dates with existing reservations: {refs}')

    dates = generate_date_range(start_str, end_str)
    for day in dates:
        upsert_availability(
            loft_id, day,
            is_available=False,
            price_override=price_override,
            minimum_stay=minimum_stay,
            blocked_reason=reason
        )
    get_db().commit()

    logger.info(f"Blocked {len(dates)} dates for loft {loft_id} ({reason})")
    return len(dates)


def unblock_dates(loft_id: int, start_date, end_date) -> int:
    """
    Remove availability rows in [start_date, end_date), keeping booked ones.

    Returns:
        Number of rows removed
    """
    start, end = validate_date_range(start_date, end_date, allow_past=True)
    removed = delete_unbooked_rows(loft_id, start.isoformat(), end.isoformat())
    get_db().commit()

    logger.info(f"Unblocked {removed} dates for loft {loft_id}")
    return removed


def update_availability(
    loft_id: int,
    day,
    is_available: bool = True,
    price_override: float = None,
    minimum_stay: int = 1,
    notes: str = None
) -> None:
    """Set availability, price override and minimum stay for a single date."""
    try:
        day_str = parse_date(day).isoformat()
    except (TypeError, ValueError):
        raise ValidationError('Invalid date format')

    if price_override is not None and float(price_override) < 0:
        raise ValidationError('Price cannot be negative')

    upsert_availability(
        loft_id, day_str,
        is_available=is_available,
        price_override=price_override,
        minimum_stay=minimum_stay,
        blocked_reason=None if is_available else 'manual',
        notes=notes
    )
    get_db().commit()


def mark_dates_booked(loft_id: int, check_in, check_out) -> int:
    """Mark a confirmed stay's nights unavailable with reason 'booked'."""
    start = parse_date(check_in).isoformat()
    end = parse_date(check_out).isoformat()
    rows = {row['date']: row for row in get_availability_rows(loft_id, start, end)}

    dates = generate_date_range(start, end)
    for day in dates:
        existing = rows.get(day, {})
        upsert_availability(
            loft_id, day,
            is_available=False,
            price_override=existing.get('price_override'),
            minimum_stay=existing.get('minimum_stay') or 1,
            blocked_reason=BOOKED_REASON,
            notes=existing.get('notes')
        )
    get_db().commit()
    return len(dates)


def free_booked_dates(loft_id: int, check_in, check_out) -> int:
    """Release the nights a cancelled stay held."""
    removed = release_booked_dates(
        loft_id, parse_date(check_in).isoformat(), parse_date(check_out).isoformat()
    )
    get_db().commit()
    return removed


# =============================================================================
# CALENDAR
# =============================================================================

def get_availability_calendar(loft_id: int, start_date, end_date) -> List[Dict[str, Any]]:
    """
    One entry per date in [start_date, end_date).

    Dates without a stored row are available at the loft base price.

    Returns:
        List of dicts with date, is_available, price, minimum_stay, blocked_reason

    Raises:
        NotFoundError: loft does not exist
    """
    loft = get_loft_by_id(loft_id)
    if not loft:
        raise NotFoundError('Loft not found')

    start, end = validate_date_range(start_date, end_date, allow_past=True)
    start_str, end_str = start.isoformat(), end.isoformat()

    rows = {row['date']: row for row in get_availability_rows(loft_id, start_str, end_str)}
    reserved = set()
    for reservation in get_overlapping_reservations(loft_id, start_str, end_str):
        reserved.update(generate_date_range(
            max(start_str, reservation['check_in_date']),
            min(end_str, reservation['check_out_date'])
        ))

    base_price = loft['price_per_night']
    calendar = []
    for day in generate_date_range(start_str, end_str):
        row = rows.get(day)
        entry = {
            'date': day,
            'is_available': True,
            'price': base_price,
            'minimum_stay': loft.get('minimum_stay') or 1,
            'blocked_reason': None
        }
        if row:
            entry['is_available'] = bool(row['is_available'])
            if row['price_override'] is not None:
                entry['price'] = row['price_override']
            entry['minimum_stay'] = row['minimum_stay'] or entry['minimum_stay']
            entry['blocked_reason'] = row['blocked_reason']
        if day in reserved:
            entry['is_available'] = False
            entry['blocked_reason'] = entry['blocked_reason'] or BOOKED_REASON
        calendar.append(entry)

    return calendar


def synchronize_availability(loft_id: int) -> int:
    """
    Reconcile a loft's availability with its confirmed reservations.

    Removes expired locks, then marks every night of every confirmed
    reservation unavailable with reason 'booked'.

    Returns:
        Number of dates marked booked
    """
    cleanup_expired_locks()

    marked = 0
    for reservation in get_confirmed_reservations(loft_id):
        marked += mark_dates_booked(loft_id, reservation['check_in_date'], reservation['check_out_date'])

    logger.info(f"Synchronized availability for loft {loft_id}: {marked} booked dates")
    return marked
