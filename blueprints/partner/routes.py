"""
Partner routes: dashboard, properties, availability, pricing rules and reservations.
All routes answer JSON and are scoped to the logged-in partner's lofts.
"""

import logging

from flask import Blueprint, request
from flask_login import login_required, current_user

from blueprints.lofts.services.audit_context import with_audit_context
from blueprints.lofts.services.availability_service import (
    block_dates,
    unblock_dates,
    update_availability,
    get_availability_calendar
)
from blueprints.lofts.services.reservation_service import (
    get_reservation_stats,
    get_recent_reservations,
    get_reservations,
    get_reservation_for_user,
    confirm_reservation,
    complete_reservation,
    cancel_reservation,
    update_payment_status,
    send_guest_message
)
from blueprints.partner.services.property_service import (
    get_managed_loft,
    create_property,
    update_property,
    delete_property,
    create_rule,
    update_rule,
    delete_rule,
    check_rule
)
from models.loft import get_all_lofts
from models.notification import get_unread_count
from models.partner import get_partner_profile, is_verified_partner
from models.pricing_rule import get_pricing_rules
from utils.api_response import api_success, api_error, domain_error, get_json_body
from utils.decorators import permission_required, role_required
from utils.exceptions import ValidationError, AvailabilityError, NotFoundError
from utils.messages import get_message
from utils.validators import validate_transaction_id, sanitize_uuid

logger = logging.getLogger(__name__)

partner_bp = Blueprint('partner', __name__)


def _require_verified():
    """403 response for partners still under review, else None."""
    if current_user.role_name == 'partner' and not is_verified_partner(current_user.id):
        return api_error('Your partner account is pending validation', status=403)
    return None


# =============================================================================
# DASHBOARD
# =============================================================================

@partner_bp.route('/dashboard')
@login_required
@role_required('partner')
def dashboard():
    """Monthly statistics, recent reservations and profile status."""
    profile = get_partner_profile(current_user.id)
    return api_success(data={
        'profile': profile,
        'stats': get_reservation_stats(partner_id=current_user.id),
        'recent_reservations': get_recent_reservations(limit=5, user=current_user),
        'unread_notifications': get_unread_count(current_user.id)
    })


# =============================================================================
# PROPERTIES
# =============================================================================

@partner_bp.route('/properties', methods=['GET'])
@login_required
@permission_required('lofts.manage')
def list_properties():
    partner_id = None if current_user.is_staff else current_user.id
    lofts = get_all_lofts(partner_id=partner_id, status=request.args.get('status'))
    return api_success(data=lofts, count=len(lofts))


@partner_bp.route('/properties', methods=['POST'])
@login_required
@permission_required('lofts.manage')
@with_audit_context
def create_property_route():
    """
    Create a loft.

    Request JSON:
    {"name": "Loft Hydra", "address": "12 rue ...", "price_per_night": 12000,
     "max_guests": 4, "zone_area_id": 1, "is_published": true}
    """
    denied = _require_verified()
    if denied:
        return denied

    try:
        loft = create_property(get_json_body(), current_user)
    except ValidationError as e:
        return domain_error(e)
    return api_success(data=loft, message=get_message('loft_created'), status=201)


@partner_bp.route('/properties/<int:loft_id>', methods=['GET'])
@login_required
@permission_required('lofts.manage')
def get_property(loft_id):
    try:
        loft = get_managed_loft(loft_id, current_user)
    except NotFoundError as e:
        return domain_error(e)
    loft['pricing_rules'] = get_pricing_rules(loft_id)
    return api_success(data=loft)


@partner_bp.route('/properties/<int:loft_id>', methods=['PUT'])
@login_required
@permission_required('lofts.manage')
@with_audit_context
def update_property_route(loft_id):
    try:
        loft = update_property(loft_id, get_json_body(), current_user)
    except (ValidationError, NotFoundError) as e:
        return domain_error(e)
    return api_success(data=loft, message=get_message('loft_updated'))


@partner_bp.route('/properties/<int:loft_id>', methods=['DELETE'])
@login_required
@permission_required('lofts.manage')
@with_audit_context
def delete_property_route(loft_id):
    try:
        delete_property(loft_id, current_user)
    except (ValidationError, NotFoundError) as e:
        return domain_error(e)
    return api_success(message=get_message('loft_deleted'))


# =============================================================================
# AVAILABILITY
# =============================================================================

@partner_bp.route('/properties/<int:loft_id>/calendar', methods=['GET'])
@login_required
@permission_required('availability.manage')
def property_calendar(loft_id):
    start, end = request.args.get('start'), request.args.get('end')
    if not start or not end:
        return api_error('start and end dates are required')
    try:
        get_managed_loft(loft_id, current_user)
        calendar = get_availability_calendar(loft_id, start, end)
    except (ValidationError, NotFoundError) as e:
        return domain_error(e)
    return api_success(data=calendar)


@partner_bp.route('/properties/<int:loft_id>/block', methods=['POST'])
@login_required
@permission_required('availability.manage')
def block_property_dates(loft_id):
    """
    Block a date range.

    Request JSON:
    {"start_date": "2026-08-01", "end_date": "2026-08-05", "reason": "maintenance",
     "price_override": null, "minimum_stay": 1}
    """
    data = get_json_body()
    if not data.get('start_date') or not data.get('end_date'):
        return api_error('start_date and end_date are required')

    try:
        get_managed_loft(loft_id, current_user)
        count = block_dates(
            loft_id, data['start_date'], data['end_date'],
            reason=data.get('reason'),
            price_override=data.get('price_override'),
            minimum_stay=data.get('minimum_stay') or 1
        )
    except (ValidationError, AvailabilityError, NotFoundError) as e:
        return domain_error(e)
    return api_success(data={'count': count}, message=get_message('dates_blocked', count=count))


@partner_bp.route('/properties/<int:loft_id>/unblock', methods=['POST'])
@login_required
@permission_required('availability.manage')
def unblock_property_dates(loft_id):
    data = get_json_body()
    if not data.get('start_date') or not data.get('end_date'):
        return api_error('start_date and end_date are required')

    try:
        get_managed_loft(loft_id, current_user)
        count = unblock_dates(loft_id, data['start_date'], data['end_date'])
    except (ValidationError, NotFoundError) as e:
        return domain_error(e)
    return api_success(data={'count': count}, message=get_message('dates_unblocked', count=count))


@partner_bp.route('/properties/<int:loft_id>/availability/<day>', methods=['PUT'])
@login_required
@permission_required('availability.manage')
def set_property_day(loft_id, day):
    """
    Set one date's availability and price.

    Request JSON:
    {"is_available": true, "price_override": 15000, "minimum_stay": 2, "notes": "Festival"}
    """
    data = get_json_body()
    try:
        get_managed_loft(loft_id, current_user)
        update_availability(
            loft_id, day,
            is_available=bool(data.get('is_available', True)),
            price_override=data.get('price_override'),
            minimum_stay=data.get('minimum_stay') or 1,
            notes=data.get('notes')
        )
    except (ValidationError, NotFoundError) as e:
        return domain_error(e)
    return api_success(message='Availability updated')


# =============================================================================
# PRICING RULES
# =============================================================================

@partner_bp.route('/properties/<int:loft_id>/pricing-rules', methods=['GET'])
@login_required
@permission_required('pricing.manage')
def list_pricing_rules(loft_id):
    try:
        get_managed_loft(loft_id, current_user)
    except NotFoundError as e:
        return domain_error(e)
    return api_success(data=get_pricing_rules(loft_id))


@partner_bp.route('/properties/<int:loft_id>/pricing-rules', methods=['POST'])
@login_required
@permission_required('pricing.manage')
@with_audit_context
def create_pricing_rule_route(loft_id):
    """
    Create a pricing rule.

    Request JSON:
    {"rule_name": "Weekend", "rule_type": "weekend", "days_of_week": [4, 5],
     "adjustment_type": "percentage", "adjustment_value": 15, "priority": 10}
    """
    try:
        rule = create_rule(loft_id, get_json_body(), current_user)
    except (ValidationError, NotFoundError) as e:
        return domain_error(e)
    return api_success(data=rule, message=get_message('pricing_rule_created'), status=201)


@partner_bp.route('/pricing-rules/<int:rule_id>', methods=['PUT'])
@login_required
@permission_required('pricing.manage')
@with_audit_context
def update_pricing_rule_route(rule_id):
    try:
        rule = update_rule(rule_id, get_json_body(), current_user)
    except (ValidationError, NotFoundError) as e:
        return domain_error(e)
    return api_success(data=rule, message=get_message('pricing_rule_updated'))


@partner_bp.route('/pricing-rules/<int:rule_id>', methods=['DELETE'])
@login_required
@permission_required('pricing.manage')
@with_audit_context
def delete_pricing_rule_route(rule_id):
    try:
        delete_rule(rule_id, current_user)
    except NotFoundError as e:
        return domain_error(e)
    return api_success(message=get_message('pricing_rule_deleted'))


@partner_bp.route('/pricing-rules/validate', methods=['POST'])
@login_required
@permission_required('pricing.manage')
def validate_pricing_rule_route():
    """Validate a rule without saving; returns {is_valid, errors}."""
    errors = check_rule(get_json_body())
    return api_success(data={'is_valid': not errors, 'errors': errors})


# =============================================================================
# RESERVATIONS
# =============================================================================

@partner_bp.route('/reservations', methods=['GET'])
@login_required
@permission_required('reservations.manage')
def list_partner_reservations():
    args = request.args
    filters = {
        'status': args.get('status'),
        'loft_id': args.get('loft_id', type=int),
        'date_from': args.get('date_from'),
        'date_to': args.get('date_to'),
        'search': args.get('search'),
    }
    reservations = get_reservations({k: v for k, v in filters.items() if v is not None}, user=current_user)
    return api_success(data=reservations, count=len(reservations))


def _change_status(reservation_id, action, **kwargs):
    try:
        get_reservation_for_user(reservation_id, current_user)
        reservation = action(reservation_id, user=current_user, **kwargs)
    except (ValidationError, AvailabilityError, NotFoundError) as e:
        return domain_error(e)
    return api_success(data=reservation, message=get_message('reservation_updated', status=reservation['status']))


@partner_bp.route('/reservations/<int:reservation_id>/confirm', methods=['POST'])
@login_required
@permission_required('reservations.manage')
@with_audit_context
def confirm_partner_reservation(reservation_id):
    return _change_status(reservation_id, confirm_reservation)


@partner_bp.route('/reservations/<int:reservation_id>/complete', methods=['POST'])
@login_required
@permission_required('reservations.manage')
@with_audit_context
def complete_partner_reservation(reservation_id):
    return _change_status(reservation_id, complete_reservation)


@partner_bp.route('/reservations/<int:reservation_id>/cancel', methods=['POST'])
@login_required
@permission_required('reservations.manage')
@with_audit_context
def cancel_partner_reservation(reservation_id):
    return _change_status(reservation_id, cancel_reservation, reason=get_json_body().get('reason'))


@partner_bp.route('/reservations/<int:reservation_id>/payment', methods=['POST'])
@login_required
@permission_required('reservations.manage')
@with_audit_context
def record_payment(reservation_id):
    """
    Record a payment status change.

    Request JSON:
    {"payment_status": "paid", "transaction_id": "9b2f6c1e-...-uuid"}

    A transaction id is required when marking the reservation paid.
    """
    data = get_json_body()
    payment_status = data.get('payment_status')

    transaction_id = None
    if payment_status == 'paid':
        check = validate_transaction_id(data.get('transaction_id'))
        if not check['is_valid']:
            return api_error(check['error'])
        transaction_id = sanitize_uuid(data['transaction_id'])

    try:
        get_reservation_for_user(reservation_id, current_user)
        reservation = update_payment_status(reservation_id, payment_status)
    except (ValidationError, NotFoundError) as e:
        return domain_error(e)

    logger.info(f"Reservation {reservation_id} payment -> {payment_status} (transaction {transaction_id})")
    return api_success(data=reservation, message=f"Payment status updated to {payment_status}")


@partner_bp.route('/reservations/<int:reservation_id>/messages', methods=['POST'])
@login_required
@permission_required('reservations.manage')
def message_guest(reservation_id):
    """
    Send a message to the guest.

    Request JSON:
    {"message_type": "check_in_instructions", "subject": "...", "message": "..."}
    """
    data = get_json_body()
    try:
        get_reservation_for_user(reservation_id, current_user)
        sent = send_guest_message(reservation_id, data.get('message_type', 'general_inquiry'),
                                  data.get('subject'), data.get('message'), sender=current_user)
    except (ValidationError, NotFoundError) as e:
        return domain_error(e)
    return api_success(data=sent, message=get_message('message_sent'), status=201)
