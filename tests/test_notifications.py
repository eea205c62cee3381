"""
Tests for templated notifications, role visibility and the notification API.
"""

import pytest


class TestRenderTemplate:

    def test_renders_values(self):
        from blueprints.lofts.services.notification_service import render_template

        title, message, priority = render_template(
            'new_reservation', property_name='Loft Hydra', guest_name='Amina Benali'
        )
        assert title == 'Reservation Update'
        assert message == 'New reservation for "Loft Hydra" by Amina Benali.'
        assert priority == 'high'

    def test_rejection_default_reason(self):
        from blueprints.lofts.services.notification_service import render_template

        _, message, _ = render_template('registration_rejected')
        assert message == ('Your partner application could not be approved. '
                           'Please contact support for more information.')

    def test_missing_values_render_empty(self):
        from blueprints.lofts.services.notification_service import render_template

        _, message, priority = render_template('security_alert')
        assert message == ''
        assert priority == 'urgent'

    def test_unknown_type(self):
        from blueprints.lofts.services.notification_service import render_template

        with pytest.raises(ValueError, match='Unknown notification type'):
            render_template('birthday')


class TestNotify:

    def test_notify_partner_stores_metadata(self, app, partner_user):
        from blueprints.lofts.services.notification_service import notify_partner
        from models.notification import get_notification_by_id

        notification_id = notify_partner(
            partner_user, 'property_added', property_name='Loft Hydra', link='/partner/properties'
        )
        notification = get_notification_by_id(notification_id)

        assert notification['title'] == 'Property Update'
        assert notification['link'] == '/partner/properties'
        assert notification['metadata'] == {'property_name': 'Loft Hydra'}
        assert notification['is_read'] is False

    def test_notify_admins(self, app):
        from blueprints.admin.services import create_account
        from blueprints.lofts.services.notification_service import notify_admins
        from models.notification import get_user_notifications

        manager_id = create_account('manager1', 'manager1@example.com', 'Manager123', role_name='manager')
        create_account('guest9', 'guest9@example.com', 'Guest9999', role_name='client')

        ids = notify_admins('system_alert', 'Disk space', 'Backups volume is 90% full', priority='urgent')

        assert len(ids) == 2
        assert get_user_notifications(1)[0]['title'] == 'Disk space'
        assert get_user_notifications(manager_id)[0]['priority'] == 'urgent'

    def test_invalid_priority(self, app):
        from models.notification import create_notification

        with pytest.raises(ValueError, match='Invalid priority'):
            create_notification(1, 'info', 'Hi', 'Hello', priority='critical')


class TestRoleVisibility:

    NOTIFICATIONS = [
        {'id': 1, 'type': 'new_reservation'},
        {'id': 2, 'type': 'booking_confirmed'},
        {'id': 3, 'type': 'revenue_report'},
        {'id': 4, 'type': 'info'},
        {'id': 5, 'type': 'public_announcement'},
        {'id': 6, 'type': 'new_partner_application'},
    ]

    def _visible(self, role):
        from blueprints.lofts.services.notification_service import filter_notifications_for_role

        return [n['id'] for n in filter_notifications_for_role(self.NOTIFICATIONS, role)]

    def test_admin_sees_everything(self):
        assert self._visible('admin') == [1, 2, 3, 4, 5, 6]

    def test_manager(self):
        assert self._visible('manager') == [1, 3, 6]

    def test_partner(self):
        assert self._visible('partner') == [1, 3, 4]

    def test_client(self):
        assert self._visible('client') == [2, 4]

    def test_unknown_role(self):
        assert self._visible('visitor') == [4, 5]
        assert self._visible(None) == [4, 5]


class TestSortByRelevance:

    def test_unread_then_priority_then_newest(self):
        from blueprints.lofts.services.notification_service import sort_by_relevance

        notifications = [
            {'id': 1, 'is_read': True, 'priority': 'urgent', 'created_at': '2026-01-05 10:00:00'},
            {'id': 2, 'is_read': False, 'priority': 'low', 'created_at': '2026-01-04 10:00:00'},
            {'id': 3, 'is_read': False, 'priority': 'high', 'created_at': '2026-01-01 10:00:00'},
            {'id': 4, 'is_read': False, 'priority': 'high', 'created_at': '2026-01-03 10:00:00'},
            {'id': 5, 'is_read': False, 'priority': 'medium', 'created_at': '2026-01-02 10:00:00'},
        ]
        assert [n['id'] for n in sort_by_relevance(notifications)] == [4, 3, 5, 2, 1]


class TestNotificationRoutes:

    def test_requires_login(self, client):
        response = client.get('/api/notifications')
        assert response.status_code == 401
        assert response.get_json()['success'] is False

    def test_list_and_read(self, app, partner_client, partner_user):
        from blueprints.lofts.services.notification_service import notify_partner

        first = notify_partner(partner_user, 'property_added', property_name='Loft Hydra')
        notify_partner(partner_user, 'security_alert', message='New login from Oran')

        response = partner_client.get('/api/notifications')
        payload = response.get_json()
        assert response.status_code == 200
        assert payload['unread_count'] == 2
        assert payload['data'][0]['type'] == 'security_alert'

        response = partner_client.post(f'/api/notifications/{first}/read')
        assert response.status_code == 200
        assert partner_client.get('/api/notifications/unread-count').get_json()['data']['count'] == 1

        response = partner_client.post('/api/notifications/read-all')
        assert response.get_json()['data']['updated'] == 1

    def test_other_users_notification(self, app, partner_client):
        from blueprints.lofts.services.notification_service import notify_user

        admin_notification = notify_user(1, 'info', 'Staff only', 'Hello staff')

        assert partner_client.post(f'/api/notifications/{admin_notification}/read').status_code == 404
        assert partner_client.delete(f'/api/notifications/{admin_notification}').status_code == 404

    def test_delete(self, app, partner_client, partner_user):
        from blueprints.lofts.services.notification_service import notify_partner

        notification_id = notify_partner(partner_user, 'property_added', property_name='Loft Hydra')

        assert partner_client.delete(f'/api/notifications/{notification_id}').status_code == 200
        assert partner_client.get('/api/notifications').get_json()['data'] == []
