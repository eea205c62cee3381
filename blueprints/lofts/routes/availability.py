"""
Availability API endpoints: checks, calendar and checkout locks.
"""

import logging

from flask import request
from flask_login import login_required, current_user

from blueprints.lofts.routes import can_view_loft
from blueprints.lofts.services.availability_service import (
    check_availability,
    validate_date_range,
    get_availability_calendar,
    lock_dates,
    release_lock
)
from models.loft import get_loft_by_id
from models.reservation_lock import get_lock
from utils.api_response import api_success, api_error, domain_error, get_json_body
from utils.decorators import permission_required
from utils.exceptions import ValidationError, AvailabilityError, NotFoundError
from utils.messages import get_message

logger = logging.getLogger(__name__)


def register_routes(bp):
    """Register availability routes on the blueprint."""

    @bp.route('/lofts/<int:loft_id>/availability', methods=['GET'])
    def loft_availability(loft_id):
        """
        Check whether a loft can be booked.

        Query params:
            check_in, check_out: ISO dates (required)

        Response JSON:
        {
            "success": true,
            "data": {"is_available": false, "unavailable_dates": ["2026-07-02"],
                     "minimum_stay": 2, "maximum_stay": null, "restrictions": [...], "nights": 3}
        }
        """
        loft = get_loft_by_id(loft_id)
        if not loft or not can_view_loft(loft):
            return api_error(get_message('loft_not_found'), status=404)

        check_in, check_out = request.args.get('check_in'), request.args.get('check_out')
        if not check_in or not check_out:
            return api_error(get_message('dates_required'))

        try:
            start, end = validate_date_range(check_in, check_out)
        except ValidationError as e:
            return domain_error(e)

        user_id = current_user.id if current_user.is_authenticated else None
        result = check_availability(loft_id, start, end, user_id=user_id,
                                    lock_id=request.args.get('lock_id'))
        return api_success(data=result)

    @bp.route('/lofts/<int:loft_id>/calendar', methods=['GET'])
    def loft_calendar(loft_id):
        """Per-day availability and price between start and end (exclusive)."""
        loft = get_loft_by_id(loft_id)
        if not loft or not can_view_loft(loft):
            return api_error(get_message('loft_not_found'), status=404)

        start, end = request.args.get('start'), request.args.get('end')
        if not start or not end:
            return api_error('start and end dates are required')

        try:
            calendar = get_availability_calendar(loft_id, start, end)
        except (ValidationError, NotFoundError) as e:
            return domain_error(e)
        return api_success(data=calendar)

    @bp.route('/lofts/<int:loft_id>/lock', methods=['POST'])
    @login_required
    @permission_required('reservations.create')
    def lock_loft_dates(loft_id):
        """
        Hold dates while the guest completes the booking.

        Request JSON:
        {"check_in_date": "2026-07-01", "check_out_date": "2026-07-04"}
        """
        loft = get_loft_by_id(loft_id)
        if not loft or not can_view_loft(loft):
            return api_error(get_message('loft_not_found'), status=404)

        data = get_json_body()
        if not data.get('check_in_date') or not data.get('check_out_date'):
            return api_error(get_message('dates_required'))

        try:
            lock = lock_dates(loft_id, data['check_in_date'], data['check_out_date'], user_id=current_user.id)
        except (ValidationError, AvailabilityError) as e:
            return domain_error(e)
        return api_success(data=lock, status=201)

    @bp.route('/locks/<lock_id>', methods=['DELETE'])
    @login_required
    def release_loft_lock(lock_id):
        """Release a lock held by the current user."""
        lock = get_lock(lock_id)
        if not lock or (lock['user_id'] != current_user.id and current_user.role_name not in ('admin', 'manager')):
            return api_error('Lock not found', status=404)

        release_lock(lock_id)
        return api_success(message='Lock released')
