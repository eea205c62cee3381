"""
Reservation API endpoints.
Booking creation, listing, cancellation and guest messages.
"""

import logging

from flask import request
from flask_login import login_required, current_user

from blueprints.lofts.services.audit_context import with_audit_context
from blueprints.lofts.services.reservation_service import (
    create_reservation,
    cancel_reservation,
    get_reservations,
    get_reservation_for_user,
    send_guest_message,
    get_reservation_messages
)
from blueprints.lofts.services.data_filter import filter_reservations
from utils.api_response import api_success, domain_error, get_json_body
from utils.decorators import permission_required
from utils.exceptions import ValidationError, AvailabilityError, NotFoundError
from utils.messages import get_message

logger = logging.getLogger(__name__)


def register_routes(bp):
    """Register reservation routes on the blueprint."""

    @bp.route('/reservations', methods=['GET'])
    @login_required
    @permission_required('reservations.view')
    def list_reservations():
        """
        Reservations visible to the current user.

        Query params:
            status, loft_id, date_from, date_to, search, limit, offset
        """
        args = request.args
        filters = {
            'status': args.get('status'),
            'loft_id': args.get('loft_id', type=int),
            'date_from': args.get('date_from'),
            'date_to': args.get('date_to'),
            'search': args.get('search'),
            'limit': min(args.get('limit', 100, type=int), 500),
            'offset': args.get('offset', 0, type=int)
        }
        reservations = get_reservations({k: v for k, v in filters.items() if v is not None}, user=current_user)

        # Row-level check on top of the scoped query
        filtered = filter_reservations(reservations, current_user)
        return api_success(data=filtered['data'], count=len(filtered['data']))

    @bp.route('/reservations', methods=['POST'])
    @login_required
    @permission_required('reservations.create')
    @with_audit_context
    def create_reservation_api():
        """
        Create a pending reservation.

        Request JSON:
        {
            "loft_id": 1,
            "check_in_date": "2026-07-01",
            "check_out_date": "2026-07-04",
            "guest_name": "Amina Benali",
            "guest_email": "amina@example.com",
            "guest_phone": "+213555123456",
            "guest_count": 2,
            "special_requests": "Late arrival",
            "lock_id": "optional lock from /lofts/<id>/lock"
        }
        """
        try:
            reservation = create_reservation(get_json_body(), user=current_user)
        except (ValidationError, AvailabilityError, NotFoundError) as e:
            return domain_error(e)

        return api_success(data=reservation, message=get_message('reservation_created'), status=201)

    @bp.route('/reservations/<int:reservation_id>', methods=['GET'])
    @login_required
    @permission_required('reservations.view')
    def get_reservation_api(reservation_id):
        try:
            reservation = get_reservation_for_user(reservation_id, current_user)
        except NotFoundError as e:
            return domain_error(e)
        return api_success(data=reservation)

    @bp.route('/reservations/<int:reservation_id>/cancel', methods=['POST'])
    @login_required
    @permission_required('reservations.view')
    @with_audit_context
    def cancel_reservation_api(reservation_id):
        """
        Cancel a reservation the user can see.

        Request JSON:
        {"reason": "Change of plans"}
        """
        try:
            get_reservation_for_user(reservation_id, current_user)
            reservation = cancel_reservation(reservation_id, reason=get_json_body().get('reason'),
                                             user=current_user)
        except (ValidationError, NotFoundError) as e:
            return domain_error(e)

        return api_success(data=reservation, message=get_message('reservation_updated', status='cancelled'))

    @bp.route('/reservations/<int:reservation_id>/messages', methods=['GET'])
    @login_required
    @permission_required('reservations.view')
    def list_reservation_messages(reservation_id):
        try:
            get_reservation_for_user(reservation_id, current_user)
        except NotFoundError as e:
            return domain_error(e)
        return api_success(data=get_reservation_messages(reservation_id))

    @bp.route('/reservations/<int:reservation_id>/messages', methods=['POST'])
    @login_required
    @permission_required('reservations.view')
    def send_reservation_message(reservation_id):
        """
        Send a message about a reservation.

        Request JSON:
        {"message_type": "general_inquiry", "subject": "...", "message": "..."}
        """
        data = get_json_body()
        try:
            get_reservation_for_user(reservation_id, current_user)
            sent = send_guest_message(
                reservation_id,
                data.get('message_type', 'general_inquiry'),
                data.get('subject'),
                data.get('message'),
                sender=current_user
            )
        except (ValidationError, NotFoundError) as e:
            return domain_error(e)

        return api_success(data=sent, message=get_message('message_sent'), status=201)
