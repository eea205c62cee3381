"""
Reservation Service - Business logic for loft bookings.

Handles:
- Reservation validation, pricing and creation
- Customer matching (email, then phone) and creation
- Status transitions and availability side effects
- Role-scoped listing and dashboard statistics
- Guest messages
"""

import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from models.customer import find_customer, create_customer, update_customer
from models.loft import get_loft_by_id, count_lofts
from models.reservation import (
    RESERVATION_STATUSES,
    PAYMENT_STATUSES,
    get_reservation_by_id,
    get_reservations as query_reservations,
    get_recent_reservations as query_recent_reservations,
    get_overlapping_reservations,
    insert_reservation,
    set_reservation_status,
    set_payment_status,
    get_month_totals,
    get_stays_in_window,
    get_average_rating,
    create_message,
    get_messages
)
from blueprints.lofts.services.availability_service import (
    validate_date_range,
    check_availability,
    release_lock,
    mark_dates_booked,
    free_booked_dates
)
from blueprints.lofts.services.pricing_service import calculate_stay_price
from blueprints.lofts.services.notification_service import notify_partner, notify_user
from utils.audit import log_create, log_update
from utils.datetime_helpers import get_today, parse_date
from utils.exceptions import AvailabilityError, NotFoundError, ValidationError
from utils.helpers import generate_booking_reference, split_full_name, truncate_text
from utils.validators import validate_email, validate_date_format, sanitize_input

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    'pending': ('confirmed', 'cancelled'),
    'confirmed': ('completed', 'cancelled'),
}

GUEST_MESSAGE_TYPES = (
    'booking_confirmation',
    'check_in_instructions',
    'general_inquiry',
    'support_request',
    'review_request',
)

STAFF_ROLES = ('admin', 'manager')

GUEST_TEXT_FIELDS = (
    ('guest_name', 'Guest name'),
    ('guest_email', 'Guest email'),
    ('guest_phone', 'Guest phone'),
    ('guest_nationality', 'Guest nationality'),
)

MESSAGE_SUBJECT_MAX_LENGTH = 200
NOTIFICATION_PREVIEW_LENGTH = 160


def _role(user) -> Optional[str]:
    return getattr(user, 'role_name', None) if user is not None else None


def _user_id(user) -> Optional[int]:
    return getattr(user, 'id', None) if user is not None else None


def _audit_state(reservation: Dict[str, Any]) -> Dict[str, Any]:
    return {
        key: reservation.get(key) for key in (
            'booking_reference', 'loft_id', 'customer_id', 'check_in_date', 'check_out_date',
            'guest_count', 'status', 'payment_status', 'total_amount'
        )
    }


# =============================================================================
# VALIDATION
# =============================================================================

def _check_length(errors: list, data: dict, field: str, label: str, max_length: int, required: bool = True):
    value = data.get(field)
    if value is None or str(value).strip() == '':
        if required:
            errors.append(f'{label} is required')
        return
    if len(str(value).strip()) > max_length:
        errors.append(f'{label} must be {max_length} characters or less')


def validate_reservation_data(data: Dict[str, Any]) -> List[str]:
    """
    Validate guest and stay fields of a booking request.

    Returns:
        List of error messages (empty when valid)
    """
    errors = []

    if not data.get('loft_id'):
        errors.append('Loft is required')

    non_text = set()
    for field, label in GUEST_TEXT_FIELDS:
        value = data.get(field)
        if value is not None and not isinstance(value, str):
            errors.append(f'{label} must be text')
            non_text.add(field)

    for field, label, max_length in (('guest_name', 'Guest name', 255),
                                     ('guest_phone', 'Guest phone', 50),
                                     ('guest_nationality', 'Guest nationality', 100)):
        if field not in non_text:
            _check_length(errors, data, field, label, max_length)

    if 'guest_email' not in non_text:
        email = (data.get('guest_email') or '').strip()
        if not email:
            errors.append('Guest email is required')
        elif not validate_email(email):
            errors.append('Guest email is invalid')

    guest_count = data.get('guest_count', 1)
    if isinstance(guest_count, bool) or not isinstance(guest_count, int) or guest_count < 1:
        errors.append('Guest count must be at least 1')

    for field, label in (('check_in_date', 'Check-in date'), ('check_out_date', 'Check-out date')):
        value = data.get(field)
        if not value:
            errors.append(f'{label} is required')
        elif not validate_date_format(str(value)):
            errors.append(f'{label} must use the YYYY-MM-DD format')

    return errors


# =============================================================================
# CUSTOMERS
# =============================================================================

def find_or_create_customer(data: Dict[str, Any], loft: Dict[str, Any]) -> int:
    """
    Match the guest to a customer (email first, then phone) or create one.

    Changed contact fields are written back to an existing customer.

    Returns:
        Customer ID
    """
    email = (data.get('guest_email') or '').strip()
    phone = (data.get('guest_phone') or '').strip()
    nationality = (data.get('guest_nationality') or '').strip() or None

    customer = find_customer(email=email, phone=phone)
    if customer:
        updates = {}
        if email and customer.get('email') != email:
            updates['email'] = email
        if phone and customer.get('phone') != phone:
            updates['phone'] = phone
        if nationality and customer.get('nationality') != nationality:
            updates['nationality'] = nationality
        if updates:
            update_customer(customer['id'], **updates)
            logger.info(f"Updated customer {customer['id']} fields: {', '.join(updates)}")
        return customer['id']

    first_name, last_name = split_full_name(data['guest_name'].strip())
    customer_id = create_customer(
        first_name,
        last_name,
        email=email,
        phone=phone,
        nationality=nationality,
        notes=f"Created from reservation for loft {loft['name']}"
    )
    logger.info(f"Created customer {customer_id} for {email}")
    return customer_id


# =============================================================================
# CREATE
# =============================================================================

def create_reservation(data: Dict[str, Any], user=None) -> Dict[str, Any]:
    """
    Create a pending reservation.

    Args:
        data: loft_id, check_in_date, check_out_date, guest_name, guest_email,
            guest_phone, guest_nationality, guest_count, special_requests,
            optional lock_id
        user: Acting user (clients become the reservation's client_user_id)

    Returns:
        Reservation dict with a 'pricing' breakdown

    Raises:
        ValidationError: invalid data or dates
        NotFoundError: loft does not exist
        AvailabilityError: dates are not available
    """
    errors = validate_reservation_data(data)
    if errors:
        raise ValidationError('Invalid reservation data', errors)

    loft = get_loft_by_id(data['loft_id'])
    if not loft:
        raise NotFoundError('Loft not found')

    guest_count = data.get('guest_count', 1)
    if guest_count > loft['max_guests']:
        raise ValidationError(f"This loft accepts at most {loft['max_guests']} guests")

    check_in, check_out = validate_date_range(data['check_in_date'], data['check_out_date'])
    lock_id = data.get('lock_id')

    availability = check_availability(
        loft['id'], check_in, check_out,
        user_id=_user_id(user),
        lock_id=lock_id
    )
    if not availability['is_available']:
        raise AvailabilityError(
            'Selected dates are not available',
            unavailable_dates=availability['unavailable_dates'],
            restrictions=availability['restrictions']
        )

    pricing = calculate_stay_price(loft['id'], check_in, check_out, guest_count)
    customer_id = find_or_create_customer(data, loft)

    client_user_id = _user_id(user) if _role(user) == 'client' else data.get('client_user_id')

    reservation_id = insert_reservation({
        'booking_reference': generate_booking_reference(),
        'loft_id': loft['id'],
        'customer_id': customer_id,
        'client_user_id': client_user_id,
        'guest_name': data['guest_name'].strip(),
        'guest_email': data['guest_email'].strip(),
        'guest_phone': data['guest_phone'].strip(),
        'guest_nationality': (data.get('guest_nationality') or '').strip() or None,
        'guest_count': guest_count,
        'check_in_date': check_in.isoformat(),
        'check_out_date': check_out.isoformat(),
        'special_requests': data.get('special_requests'),
        'base_price': pricing['subtotal'],
        'cleaning_fee': pricing['cleaning_fee'],
        'service_fee': pricing['service_fee'],
        'taxes': pricing['taxes'],
        'total_amount': pricing['total'],
        'currency_code': pricing['currency'],
        'status': 'pending',
        'payment_status': 'pending',
        'created_by': _user_id(user)
    })

    if lock_id:
        release_lock(lock_id)

    reservation = get_reservation_by_id(reservation_id)
    log_create('reservation', reservation_id, _audit_state(reservation))
    logger.info(f"Created reservation {reservation['booking_reference']} for loft {loft['id']}")

    if loft.get('partner_id'):
        notify_partner(
            loft['partner_id'], 'new_reservation',
            property_name=loft['name'],
            guest_name=reservation['guest_name'],
            check_in=reservation['check_in_date'],
            check_out=reservation['check_out_date'],
            total_amount=reservation['total_amount'],
            reservation_id=reservation_id,
            link=f'/partner/reservations/{reservation_id}'
        )

    if client_user_id:
        notify_user(
            client_user_id, 'booking_created',
            'Booking received',
            f"Your booking {reservation['booking_reference']} for {loft['name']} is pending confirmation.",
            reservation_id=reservation_id
        )

    reservation['pricing'] = pricing
    return reservation


# =============================================================================
# STATUS
# =============================================================================

def update_reservation_status(reservation_id: int, status: str, reason: str = None, user=None) -> Dict[str, Any]:
    """
    Move a reservation to a new status.

    pending -> confirmed | cancelled, confirmed -> completed | cancelled.
    Confirmation marks the nights booked; cancellation frees them.

    Returns:
        Updated reservation dict

    Raises:
        NotFoundError: reservation does not exist
        ValidationError: transition not allowed
        AvailabilityError: another confirmed stay already holds the dates
    """
    reservation = get_reservation_by_id(reservation_id)
    if not reservation:
        raise NotFoundError('Reservation not found')

    if status not in RESERVATION_STATUSES:
        raise ValidationError(f'Invalid status: {status}')

    current = reservation['status']
    if status not in ALLOWED_TRANSITIONS.get(current, ()):
        raise ValidationError(f'Cannot change status from {current} to {status}')

    loft_id = reservation['loft_id']
    check_in, check_out = reservation['check_in_date'], reservation['check_out_date']

    if status == 'confirmed':
        conflicts = [
            r for r in get_overlapping_reservations(loft_id, check_in, check_out, reservation_id)
            if r['status'] == 'confirmed'
        ]
        if conflicts:
            raise AvailabilityError(
                'Dates are already held by a confirmed reservation',
                restrictions=[r['booking_reference'] for r in conflicts]
            )

    set_reservation_status(reservation_id, status, cancellation_reason=reason if status == 'cancelled' else None)

    if status == 'confirmed':
        mark_dates_booked(loft_id, check_in, check_out)
    elif status == 'cancelled' and current == 'confirmed':
        free_booked_dates(loft_id, check_in, check_out)

    updated = get_reservation_by_id(reservation_id)
    log_update('reservation', reservation_id, before=_audit_state(reservation), after=_audit_state(updated))
    logger.info(f"Reservation {reservation['booking_reference']}: {current} -> {status}")

    _notify_status_change(updated, status, user)
    return updated


def _notify_status_change(reservation: Dict[str, Any], status: str, user=None) -> None:
    actor_id = _user_id(user)
    guest_id = reservation.get('client_user_id')
    partner_id = reservation.get('partner_id')
    reference = reservation['booking_reference']

    guest_messages = {
        'confirmed': ('booking_confirmed', 'Booking confirmed', f'Your booking {reference} is confirmed.'),
        'cancelled': ('booking_cancelled', 'Booking cancelled', f'Your booking {reference} has been cancelled.'),
        'completed': ('booking_completed', 'Stay completed', f'Thank you for staying with us ({reference}).'),
    }
    if guest_id and guest_id != actor_id and status in guest_messages:
        notification_type, title, message = guest_messages[status]
        notify_user(guest_id, notification_type, title, message, reservation_id=reservation['id'])

    if status == 'cancelled' and partner_id and partner_id != actor_id:
        notify_partner(
            partner_id, 'reservation_cancelled',
            property_name=reservation['loft_name'],
            guest_name=reservation['guest_name'],
            reservation_id=reservation['id']
        )


def confirm_reservation(reservation_id: int, user=None) -> Dict[str, Any]:
    return update_reservation_status(reservation_id, 'confirmed', user=user)


def cancel_reservation(reservation_id: int, reason: str = None, user=None) -> Dict[str, Any]:
    return update_reservation_status(reservation_id, 'cancelled', reason=reason, user=user)


def complete_reservation(reservation_id: int, user=None) -> Dict[str, Any]:
    return update_reservation_status(reservation_id, 'completed', user=user)


def update_payment_status(reservation_id: int, payment_status: str) -> Dict[str, Any]:
    """
    Record a payment status change; 'paid' notifies the partner.

    Raises:
        NotFoundError: reservation does not exist
        ValidationError: unknown payment status
    """
    reservation = get_reservation_by_id(reservation_id)
    if not reservation:
        raise NotFoundError('Reservation not found')

    if payment_status not in PAYMENT_STATUSES:
        raise ValidationError(f'Invalid payment status: {payment_status}')

    set_payment_status(reservation_id, payment_status)
    updated = get_reservation_by_id(reservation_id)
    log_update('reservation', reservation_id, before=_audit_state(reservation), after=_audit_state(updated))

    if payment_status == 'paid' and updated.get('partner_id'):
        notify_partner(
            updated['partner_id'], 'payment_received',
            amount=updated['total_amount'],
            currency=updated['currency_code'],
            property_name=updated['loft_name'],
            reservation_id=reservation_id
        )
    return updated


# =============================================================================
# QUERIES
# =============================================================================

def _scope(filters: Dict[str, Any], user) -> Dict[str, Any]:
    """Restrict filters to what the user may see."""
    scoped = dict(filters or {})
    role = _role(user)
    if role == 'partner':
        scoped['partner_id'] = user.id
    elif role not in STAFF_ROLES:
        scoped['client_user_id'] = _user_id(user) or -1
    return scoped


def get_reservations(filters: Dict[str, Any] = None, user=None) -> List[Dict[str, Any]]:
    """
    List reservations visible to a user.

    Staff see everything, partners reservations on their lofts, clients
    their own bookings.
    """
    allowed = ('loft_id', 'partner_id', 'client_user_id', 'status', 'date_from',
               'date_to', 'search', 'limit', 'offset')
    scoped = _scope(filters, user)
    return query_reservations(**{k: v for k, v in scoped.items() if k in allowed})


def get_reservation_for_user(reservation_id: int, user) -> Dict[str, Any]:
    """
    Raises:
        NotFoundError: missing or not visible to the user
    """
    reservation = get_reservation_by_id(reservation_id)
    if not reservation:
        raise NotFoundError('Reservation not found')

    role = _role(user)
    if role in STAFF_ROLES:
        return reservation
    if role == 'partner' and reservation['partner_id'] == user.id:
        return reservation
    if reservation['client_user_id'] is not None and reservation['client_user_id'] == _user_id(user):
        return reservation
    raise NotFoundError('Reservation not found')


def get_recent_reservations(limit: int = 5, user=None) -> List[Dict[str, Any]]:
    partner_id = user.id if _role(user) == 'partner' else None
    return query_recent_reservations(limit=limit, partner_id=partner_id)


def _growth(current: float, previous: float) -> float:
    if not previous:
        return 100.0 if current else 0.0
    return round((current - previous) / previous * 100, 1)


def get_reservation_stats(partner_id: int = None) -> Dict[str, Any]:
    """
    Dashboard statistics for the current month.

    Args:
        partner_id: Restrict to one partner's lofts

    Returns:
        dict with reservation counts, revenue, growth, occupancy_rate and
        guest_satisfaction
    """
    today = get_today()
    month_start = today.replace(day=1)
    next_month_start = (month_start + timedelta(days=32)).replace(day=1)
    last_month_start = (month_start - timedelta(days=1)).replace(day=1)

    current = get_month_totals(month_start.isoformat(), next_month_start.isoformat(), partner_id)
    previous = get_month_totals(last_month_start.isoformat(), month_start.isoformat(), partner_id)

    total_lofts = count_lofts(partner_id)
    days_in_month = (next_month_start - month_start).days

    booked_nights = 0
    for stay in get_stays_in_window(month_start.isoformat(), next_month_start.isoformat(), partner_id):
        start = max(parse_date(stay['check_in_date']), month_start)
        end = min(parse_date(stay['check_out_date']), next_month_start)
        booked_nights += max((end - start).days, 0)

    occupancy = round(booked_nights / (total_lofts * days_in_month) * 100, 1) if total_lofts else 0.0

    return {
        'total_lofts': total_lofts,
        'reservations_this_month': current['count'],
        'reservations_last_month': previous['count'],
        'revenue_this_month': round(current['revenue'], 2),
        'revenue_last_month': round(previous['revenue'], 2),
        'reservations_growth': _growth(current['count'], previous['count']),
        'revenue_growth': _growth(current['revenue'], previous['revenue']),
        'occupancy_rate': occupancy,
        'guest_satisfaction': get_average_rating(partner_id)
    }


# =============================================================================
# GUEST MESSAGES
# =============================================================================

def send_guest_message(reservation_id: int, message_type: str, subject: str, message: str, sender=None) -> Dict[str, Any]:
    """
    Store a message on a reservation and notify the other side.

    Messages from the guest notify the partner; messages from the partner
    or staff notify the guest.

    Returns:
        dict with id and the stored fields

    Raises:
        NotFoundError: reservation does not exist
        ValidationError: unknown type, empty subject or message
    """
    if message_type not in GUEST_MESSAGE_TYPES:
        raise ValidationError(f"Message type must be one of: {', '.join(GUEST_MESSAGE_TYPES)}")
    subject = sanitize_input(subject, MESSAGE_SUBJECT_MAX_LENGTH)
    message = sanitize_input(message)
    if not subject:
        raise ValidationError('Subject is required')
    if not message:
        raise ValidationError('Message is required')

    reservation = get_reservation_by_id(reservation_id)
    if not reservation:
        raise NotFoundError('Reservation not found')

    role = _role(sender)
    if role == 'partner':
        sender_type = 'partner'
    elif role in STAFF_ROLES:
        sender_type = 'admin'
    else:
        sender_type = 'guest'

    message_id = create_message(
        reservation_id, message_type, subject, message,
        sender_id=_user_id(sender), sender_type=sender_type
    )

    # Notifications carry a preview; the full text stays on the reservation
    title = f"{subject} ({reservation['booking_reference']})"
    preview = truncate_text(message, NOTIFICATION_PREVIEW_LENGTH)
    recipient = reservation.get('partner_id') if sender_type == 'guest' else reservation.get('client_user_id')
    if recipient:
        notify_user(recipient, 'guest_message', title, preview,
                    sender_id=_user_id(sender), reservation_id=reservation_id)

    return {
        'id': message_id,
        'reservation_id': reservation_id,
        'message_type': message_type,
        'subject': subject,
        'message': message,
        'sender_type': sender_type
    }


def get_reservation_messages(reservation_id: int) -> List[Dict[str, Any]]:
    return get_messages(reservation_id)
