"""
Tests for reservation creation, transitions, scoping and guest messages.
"""

import re
import pytest

from utils.exceptions import AvailabilityError, NotFoundError, ValidationError


def _user(user_id):
    from models.user import User, get_user_by_id

    return User(get_user_by_id(user_id))


class TestValidateReservationData:

    def test_valid(self, reservation_data):
        from blueprints.lofts.services.reservation_service import validate_reservation_data

        assert validate_reservation_data(reservation_data) == []

    def test_missing_fields(self):
        from blueprints.lofts.services.reservation_service import validate_reservation_data

        errors = validate_reservation_data({})
        assert 'Loft is required' in errors
        assert 'Guest name is required' in errors
        assert 'Guest email is required' in errors
        assert 'Check-in date is required' in errors

    def test_invalid_values(self, reservation_data):
        from blueprints.lofts.services.reservation_service import validate_reservation_data

        errors = validate_reservation_data({
            **reservation_data,
            'guest_email': 'not-an-email',
            'guest_count': 0,
            'guest_name': 'x' * 256,
            'check_out_date': '2030/01/01'
        })
        assert errors == [
            'Guest name must be 255 characters or less',
            'Guest email is invalid',
            'Guest count must be at least 1',
            'Check-out date must use the YYYY-MM-DD format'
        ]


class TestCreateReservation:

    def test_creates_pending_reservation(self, app, reservation_data):
        from blueprints.lofts.services.reservation_service import create_reservation

        reservation = create_reservation(reservation_data)

        assert re.match(r'^LB-\d{8}-[A-Z0-9]{6}$', reservation['booking_reference'])
        assert reservation['status'] == 'pending'
        assert reservation['payment_status'] == 'pending'
        assert reservation['total_amount'] == 42385
        assert reservation['base_price'] == 30000
        assert reservation['currency_code'] == 'DZD'
        assert reservation['pricing']['nights'] == 3
        assert reservation['customer_id'] is not None

    def test_notifies_partner(self, app, reservation_data, partner_user):
        from blueprints.lofts.services.reservation_service import create_reservation
        from models.notification import get_user_notifications

        reservation = create_reservation(reservation_data)

        notifications = get_user_notifications(partner_user)
        assert len(notifications) == 1
        assert notifications[0]['type'] == 'new_reservation'
        assert notifications[0]['message'] == 'New reservation for "Loft Hydra" by Amina Benali.'
        assert notifications[0]['reservation_id'] == reservation['id']

    def test_client_booking_is_linked(self, app, reservation_data, client_user):
        from blueprints.lofts.services.reservation_service import create_reservation
        from models.notification import get_user_notifications

        reservation = create_reservation(reservation_data, user=_user(client_user))

        assert reservation['client_user_id'] == client_user
        assert reservation['created_by'] == client_user
        assert get_user_notifications(client_user)[0]['type'] == 'booking_created'

    def test_reuses_customer_by_email(self, app, reservation_data):
        from blueprints.lofts.services.reservation_service import create_reservation, cancel_reservation
        from models.customer import get_customer_by_id

        first = create_reservation(reservation_data)
        cancel_reservation(first['id'])

        second = create_reservation({**reservation_data, 'guest_phone': '+213777000111'})

        assert second['customer_id'] == first['customer_id']
        assert get_customer_by_id(second['customer_id'])['phone'] == '+213777000111'

    def test_invalid_data(self, app, reservation_data):
        from blueprints.lofts.services.reservation_service import create_reservation

        with pytest.raises(ValidationError) as exc_info:
            create_reservation({**reservation_data, 'guest_email': ''})
        assert exc_info.value.errors == ['Guest email is required']

    def test_too_many_guests(self, app, reservation_data):
        from blueprints.lofts.services.reservation_service import create_reservation

        with pytest.raises(ValidationError, match='at most 4 guests'):
            create_reservation({**reservation_data, 'guest_count': 6})

    def test_missing_loft(self, app, reservation_data):
        from blueprints.lofts.services.reservation_service import create_reservation

        with pytest.raises(NotFoundError):
            create_reservation({**reservation_data, 'loft_id': 999})

    def test_double_booking(self, app, reservation_data):
        from blueprints.lofts.services.reservation_service import create_reservation

        create_reservation(reservation_data)

        with pytest.raises(AvailabilityError) as exc_info:
            create_reservation({**reservation_data, 'guest_email': 'other@example.com'})
        assert len(exc_info.value.unavailable_dates) == 3

    def test_lock_is_honoured_and_released(self, app, reservation_data, client_user):
        from blueprints.lofts.services.availability_service import lock_dates
        from blueprints.lofts.services.reservation_service import create_reservation
        from models.reservation_lock import get_lock

        lock = lock_dates(reservation_data['loft_id'], reservation_data['check_in_date'],
                          reservation_data['check_out_date'], user_id=client_user)

        # Someone else cannot book over the lock
        with pytest.raises(AvailabilityError):
            create_reservation(reservation_data)

        create_reservation({**reservation_data, 'lock_id': lock['lock_id']}, user=_user(client_user))
        assert get_lock(lock['lock_id']) is None


class TestStatusTransitions:

    def test_confirm_marks_nights_booked(self, app, reservation_data):
        from blueprints.lofts.services.reservation_service import create_reservation, confirm_reservation
        from models.availability import get_blocked_dates

        reservation = create_reservation(reservation_data)
        confirmed = confirm_reservation(reservation['id'])

        assert confirmed['status'] == 'confirmed'
        assert confirmed['confirmed_at'] is not None
        assert len(get_blocked_dates(reservation['loft_id'], reservation['check_in_date'],
                                     reservation['check_out_date'])) == 3

    def test_cancel_confirmed_frees_nights(self, app, reservation_data, partner_user):
        from blueprints.lofts.services.reservation_service import (
            create_reservation, confirm_reservation, cancel_reservation
        )
        from models.availability import get_blocked_dates
        from models.notification import get_user_notifications

        reservation = create_reservation(reservation_data)
        confirm_reservation(reservation['id'])
        cancelled = cancel_reservation(reservation['id'], reason='Change of plans')

        assert cancelled['status'] == 'cancelled'
        assert cancelled['cancellation_reason'] == 'Change of plans'
        assert get_blocked_dates(reservation['loft_id'], reservation['check_in_date'],
                                 reservation['check_out_date']) == []
        assert get_user_notifications(partner_user)[0]['type'] == 'reservation_cancelled'

    def test_complete(self, app, reservation_data):
        from blueprints.lofts.services.reservation_service import (
            create_reservation, confirm_reservation, complete_reservation
        )

        reservation = create_reservation(reservation_data)
        confirm_reservation(reservation['id'])
        assert complete_reservation(reservation['id'])['status'] == 'completed'

    @pytest.mark.parametrize('path, target', [
        ((), 'completed'),
        (('cancelled',), 'confirmed'),
        (('confirmed', 'completed'), 'cancelled'),
    ])
    def test_forbidden_transitions(self, app, reservation_data, path, target):
        from blueprints.lofts.services.reservation_service import create_reservation, update_reservation_status

        reservation = create_reservation(reservation_data)
        for status in path:
            update_reservation_status(reservation['id'], status)

        with pytest.raises(ValidationError, match='Cannot change status'):
            update_reservation_status(reservation['id'], target)

    def test_unknown_status(self, app, reservation_data):
        from blueprints.lofts.services.reservation_service import create_reservation, update_reservation_status

        reservation = create_reservation(reservation_data)
        with pytest.raises(ValidationError, match='Invalid status: archived'):
            update_reservation_status(reservation['id'], 'archived')

    def test_missing_reservation(self, app):
        from blueprints.lofts.services.reservation_service import confirm_reservation

        with pytest.raises(NotFoundError):
            confirm_reservation(999)

    def test_status_change_is_audited(self, app, reservation_data):
        from blueprints.lofts.services.reservation_service import create_reservation, confirm_reservation
        from models.audit_log import get_audit_logs

        reservation = create_reservation(reservation_data)
        confirm_reservation(reservation['id'])

        logs = get_audit_logs({'entity_type': 'reservation', 'entity_id': reservation['id']})
        assert {log['action'] for log in logs} == {'INSERT', 'UPDATE'}

    def test_payment_received(self, app, reservation_data, partner_user):
        from blueprints.lofts.services.reservation_service import create_reservation, update_payment_status
        from models.notification import get_user_notifications

        reservation = create_reservation(reservation_data)
        updated = update_payment_status(reservation['id'], 'paid')

        assert updated['payment_status'] == 'paid'
        notification = get_user_notifications(partner_user)[0]
        assert notification['type'] == 'payment_received'
        assert notification['message'] == 'Payment of 42385.0 DZD received for "Loft Hydra".'

        with pytest.raises(ValidationError):
            update_payment_status(reservation['id'], 'stolen')


class TestScoping:

    def test_roles_see_their_reservations(self, app, reservation_data, partner_user, client_user):
        from blueprints.admin.services import create_account
        from blueprints.lofts.services.reservation_service import create_reservation, get_reservations

        create_reservation(reservation_data, user=_user(client_user))
        other_id = create_account('guest2', 'guest2@example.com', 'Guest2345', role_name='client')

        assert len(get_reservations(user=_user(1))) == 1
        assert len(get_reservations(user=_user(partner_user))) == 1
        assert len(get_reservations(user=_user(client_user))) == 1
        assert get_reservations(user=_user(other_id)) == []
        assert get_reservations(user=None) == []

    def test_partner_filter_cannot_be_widened(self, app, reservation_data, partner_user):
        from blueprints.lofts.services.reservation_service import create_reservation, get_reservations

        create_reservation(reservation_data)
        assert get_reservations({'partner_id': 999}, user=_user(partner_user))[0]['partner_id'] == partner_user

    def test_get_reservation_for_user(self, app, reservation_data, partner_user, client_user):
        from blueprints.admin.services import create_account
        from blueprints.lofts.services.reservation_service import create_reservation, get_reservation_for_user

        reservation = create_reservation(reservation_data, user=_user(client_user))
        other_id = create_account('guest2', 'guest2@example.com', 'Guest2345', role_name='client')

        for user_id in (1, partner_user, client_user):
            assert get_reservation_for_user(reservation['id'], _user(user_id))['id'] == reservation['id']

        with pytest.raises(NotFoundError):
            get_reservation_for_user(reservation['id'], _user(other_id))

    def test_stats(self, app, reservation_data, partner_user):
        from blueprints.lofts.services.reservation_service import create_reservation, get_reservation_stats

        create_reservation(reservation_data)
        stats = get_reservation_stats(partner_id=partner_user)

        assert stats['total_lofts'] == 1
        assert stats['reservations_this_month'] + stats['reservations_last_month'] == 1
        assert stats['guest_satisfaction'] == 0
        assert stats['occupancy_rate'] == 0.0


class TestGuestMessages:

    def test_guest_message_notifies_partner(self, app, reservation_data, partner_user, client_user):
        from blueprints.lofts.services.reservation_service import (
            create_reservation, send_guest_message, get_reservation_messages
        )
        from models.notification import get_user_notifications

        reservation = create_reservation(reservation_data, user=_user(client_user))
        result = send_guest_message(reservation['id'], 'general_inquiry', ' Parking ', 'Is there parking?',
                                    sender=_user(client_user))

        assert result['sender_type'] == 'guest'
        assert result['subject'] == 'Parking'
        assert get_user_notifications(partner_user)[0]['type'] == 'guest_message'

        messages = get_reservation_messages(reservation['id'])
        assert len(messages) == 1
        assert messages[0]['sender_name'] == 'Amina Benali'

    def test_partner_message_notifies_guest(self, app, reservation_data, partner_user, client_user):
        from blueprints.lofts.services.reservation_service import create_reservation, send_guest_message
        from models.notification import get_user_notifications

        reservation = create_reservation(reservation_data, user=_user(client_user))
        result = send_guest_message(reservation['id'], 'check_in_instructions', 'Keys',
                                    'Keys are at the front desk.', sender=_user(partner_user))

        assert result['sender_type'] == 'partner'
        notification = get_user_notifications(client_user)[0]
        assert notification['type'] == 'guest_message'
        assert notification['title'] == f"Keys ({reservation['booking_reference']})"

    def test_invalid_messages(self, app, reservation_data):
        from blueprints.lofts.services.reservation_service import create_reservation, send_guest_message

        reservation = create_reservation(reservation_data)

        with pytest.raises(ValidationError, match='Message type must be one of'):
            send_guest_message(reservation['id'], 'spam', 'Hi', 'Hello')
        with pytest.raises(ValidationError, match='Subject is required'):
            send_guest_message(reservation['id'], 'general_inquiry', '  ', 'Hello')
        with pytest.raises(ValidationError, match='Message is required'):
            send_guest_message(reservation['id'], 'general_inquiry', 'Hi', '')
        with pytest.raises(NotFoundError):
            send_guest_message(999, 'general_inquiry', 'Hi', 'Hello')
