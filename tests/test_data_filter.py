"""
Tests for role-based row filtering.
"""

from blueprints.lofts.services.data_filter import (
    filter_lofts,
    filter_reservations,
    filter_financial_data,
    filter_notifications
)

ADMIN = {'id': 1, 'role_name': 'admin'}
MANAGER = {'id': 2, 'role_name': 'manager'}
CLIENT = {'id': 20, 'role_name': 'client'}


class TestFilterLofts:

    LOFTS = [
        {'id': 1, 'partner_id': 10, 'is_published': 1},
        {'id': 2, 'partner_id': 10, 'is_published': 0},
        {'id': 3, 'partner_id': 11, 'is_published': 1},
    ]

    def test_staff_see_everything(self):
        result = filter_lofts(self.LOFTS, ADMIN)
        assert result == {'data': self.LOFTS, 'filtered_count': 0, 'has_security_filtering': False}

    def test_partner_sees_own(self):
        result = filter_lofts(self.LOFTS, {'id': 10, 'role_name': 'partner'})
        assert [loft['id'] for loft in result['data']] == [1, 2]
        assert result['filtered_count'] == 1
        assert result['has_security_filtering'] is True

    def test_client_sees_published(self):
        assert [loft['id'] for loft in filter_lofts(self.LOFTS, CLIENT)['data']] == [1, 3]


class TestFilterReservations:

    RESERVATIONS = [
        {'id': 1, 'loft_id': 1, 'partner_id': 10, 'client_user_id': 20},
        {'id': 2, 'loft_id': 3, 'partner_id': 11, 'client_user_id': 21},
        {'id': 3, 'loft_id': 2, 'partner_id': 10, 'client_user_id': None},
    ]

    def test_manager_sees_everything(self):
        assert filter_reservations(self.RESERVATIONS, MANAGER)['filtered_count'] == 0

    def test_partner_by_partner_id(self, app):
        result = filter_reservations(self.RESERVATIONS, {'id': 10, 'role_name': 'partner'})
        assert [r['id'] for r in result['data']] == [1, 3]

    def test_partner_by_loft_ownership(self, app, loft, partner_user):
        rows = [{'id': 7, 'loft_id': loft['id']}, {'id': 8, 'loft_id': 999}]

        result = filter_reservations(rows, {'id': partner_user, 'role_name': 'partner'})
        assert [r['id'] for r in result['data']] == [7]

    def test_client_sees_own(self):
        result = filter_reservations(self.RESERVATIONS, CLIENT)
        assert [r['id'] for r in result['data']] == [1]
        assert result['filtered_count'] == 2

    def test_anonymous_sees_nothing(self):
        result = filter_reservations(self.RESERVATIONS, None)
        assert result['data'] == []
        assert result['has_security_filtering'] is True

    def test_accepts_user_objects(self, app, client_user):
        from models.user import User, get_user_by_id

        user = User(get_user_by_id(client_user))
        rows = [{'id': 1, 'partner_id': 10, 'client_user_id': client_user}, {'id': 2, 'client_user_id': 99}]
        assert [r['id'] for r in filter_reservations(rows, user)['data']] == [1]


class TestFilterFinancialData:

    RECORDS = [
        {'loft_id': 1, 'partner_id': 10, 'revenue': 42385},
        {'loft_id': 3, 'partner_id': 11, 'revenue': 12000},
    ]

    def test_client_gets_nothing(self):
        assert filter_financial_data(self.RECORDS, CLIENT)['data'] == []

    def test_partner_gets_own_rows(self, app):
        result = filter_financial_data(self.RECORDS, {'id': 11, 'role_name': 'partner'})
        assert result['data'] == [self.RECORDS[1]]

    def test_admin_gets_everything(self):
        assert filter_financial_data(self.RECORDS, ADMIN)['data'] == self.RECORDS


class TestFilterNotifications:

    NOTIFICATIONS = [{'id': 1, 'user_id': 20}, {'id': 2, 'user_id': 10}]

    def test_recipient_only(self):
        assert filter_notifications(self.NOTIFICATIONS, CLIENT)['data'] == [{'id': 1, 'user_id': 20}]

    def test_staff(self):
        assert len(filter_notifications(self.NOTIFICATIONS, MANAGER)['data']) == 2

    def test_empty_input(self):
        assert filter_notifications([], CLIENT) == {'data': [], 'filtered_count': 0, 'has_security_filtering': False}
