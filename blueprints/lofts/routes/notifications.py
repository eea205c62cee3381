"""
Notification API endpoints.
"""

from flask import request
from flask_login import login_required, current_user

from blueprints.lofts.services.notification_service import filter_notifications_for_role, sort_by_relevance
from models.notification import (
    get_user_notifications,
    get_notification_by_id,
    get_unread_count,
    mark_as_read,
    mark_all_as_read,
    delete_notification
)
from utils.api_response import api_success, api_error
from utils.decorators import permission_required
from utils.messages import get_message


def _own_notification(notification_id: int):
    notification = get_notification_by_id(notification_id)
    if not notification or notification['user_id'] != current_user.id:
        return None
    return notification


def register_routes(bp):
    """Register notification routes on the blueprint."""

    @bp.route('/notifications', methods=['GET'])
    @login_required
    @permission_required('notifications.view')
    def list_notifications():
        """
        The current user's notifications, unread and urgent first.

        Query params:
            unread_only: 1 to only return unread notifications
            limit: Maximum rows (default 50)
        """
        unread_only = request.args.get('unread_only') in ('1', 'true')
        limit = min(request.args.get('limit', 50, type=int), 200)

        notifications = get_user_notifications(current_user.id, unread_only=unread_only, limit=limit)
        visible = sort_by_relevance(filter_notifications_for_role(notifications, current_user.role_name))
        return api_success(data=visible, unread_count=get_unread_count(current_user.id))

    @bp.route('/notifications/unread-count', methods=['GET'])
    @login_required
    def notifications_unread_count():
        return api_success(data={'count': get_unread_count(current_user.id)})

    @bp.route('/notifications/<int:notification_id>/read', methods=['POST'])
    @login_required
    def read_notification(notification_id):
        if not _own_notification(notification_id):
            return api_error(get_message('notification_not_found'), status=404)

        mark_as_read(notification_id, current_user.id)
        return api_success(data={'id': notification_id, 'is_read': True})

    @bp.route('/notifications/read-all', methods=['POST'])
    @login_required
    def read_all_notifications():
        updated = mark_all_as_read(current_user.id)
        return api_success(data={'updated': updated})

    @bp.route('/notifications/<int:notification_id>', methods=['DELETE'])
    @login_required
    def remove_notification(notification_id):
        if not delete_notification(notification_id, current_user.id):
            return api_error(get_message('notification_not_found'), status=404)
        return api_success(message='Notification deleted')
