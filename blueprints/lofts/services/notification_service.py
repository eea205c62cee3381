"""
Notification Service - Templated in-app notifications.

Handles:
- Partner notifications from templates (registration, properties, reservations, payments)
- Staff (admin/manager) broadcasts
- Role-based visibility and relevance ordering
"""

import logging
from typing import Any, Dict, List

from models.notification import create_notification
from models.user import get_user_ids_by_role

logger = logging.getLogger(__name__)

PRIORITY_RANK = {'urgent': 3, 'high': 2, 'medium': 1, 'low': 0}

# type -> (title, message template, priority)
PARTNER_TEMPLATES = {
    'registration_received': (
        'Application Received',
        'Your partner application has been received and is under review.',
        'medium'),
    'registration_approved': (
        'Application Approved!',
        'Congratulations! Your partner application has been approved. You can now access your dashboard.',
        'high'),
    'registration_rejected': (
        'Application Update',
        'Your partner application could not be approved. {reason}',
        'medium'),
    'property_added': (
        'Property Update',
        'New property "{property_name}" has been added to your portfolio.',
        'medium'),
    'property_updated': (
        'Property Update',
        'Property "{property_name}" has been updated.',
        'medium'),
    'property_removed': (
        'Property Update',
        'Property "{property_name}" has been removed from your portfolio.',
        'medium'),
    'new_reservation': (
        'Reservation Update',
        'New reservation for "{property_name}" by {guest_name}.',
        'high'),
    'reservation_cancelled': (
        'Reservation Update',
        'Reservation for "{property_name}" by {guest_name} has been cancelled.',
        'medium'),
    'reservation_modified': (
        'Reservation Update',
        'Reservation for "{property_name}" by {guest_name} has been modified.',
        'medium'),
    'payment_received': (
        'Payment Received',
        'Payment of {amount} {currency} received for "{property_name}".',
        'high'),
    'revenue_report': (
        'Monthly Revenue Report',
        'Your revenue report for {month} is ready. Total: {total_revenue} {currency} '
        'from {total_reservations} reservations.',
        'low'),
    'system_maintenance': (
        'Scheduled Maintenance',
        'System maintenance scheduled from {start_time} to {end_time}. {description}',
        'medium'),
    'account_update': (
        'Account Update',
        '{message}',
        'medium'),
    'security_alert': (
        'Security Alert',
        '{message}',
        'urgent'),
    'performance_summary': (
        'Performance Summary',
        'Your properties received {total_reservations} reservations this period.',
        'low'),
}

PARTNER_TYPES = frozenset(PARTNER_TEMPLATES) - {'new_reservation', 'reservation_cancelled', 'reservation_modified',
                                                'payment_received', 'revenue_report', 'system_maintenance',
                                                'security_alert'}
RESERVATION_TYPES = frozenset({'new_reservation', 'reservation_cancelled', 'reservation_modified',
                               'reservation_confirmed', 'reservation_completed'})
SYSTEM_TYPES = frozenset({'system_maintenance', 'security_alert', 'system_alert', 'new_partner_application'})
FINANCIAL_TYPES = frozenset({'payment_received', 'revenue_report'})
BOOKING_TYPES = frozenset({'booking_created', 'booking_confirmed', 'booking_cancelled', 'booking_completed'})
MESSAGE_TYPES = frozenset({'guest_message', 'message'})
GENERAL_TYPES = frozenset({'info', 'warning', 'public_announcement'})

ROLE_VISIBLE_TYPES = {
    'manager': RESERVATION_TYPES | PARTNER_TYPES | SYSTEM_TYPES | FINANCIAL_TYPES,
    'partner': PARTNER_TYPES | RESERVATION_TYPES | FINANCIAL_TYPES | MESSAGE_TYPES | {
        'system_maintenance', 'security_alert', 'info', 'warning'},
    'client': BOOKING_TYPES | MESSAGE_TYPES | {'info'},
}
DEFAULT_VISIBLE_TYPES = frozenset({'info', 'public_announcement'})


class _Defaults(dict):
    """format_map mapping that renders missing keys as empty strings."""

    def __missing__(self, key):
        return ''


def render_template(notification_type: str, **data) -> tuple:
    """
    Render a partner template.

    Returns:
        Tuple of (title, message, priority)

    Raises:
        ValueError: unknown notification type
    """
    template = PARTNER_TEMPLATES.get(notification_type)
    if template is None:
        raise ValueError(f'Unknown notification type: {notification_type}')

    title, message, priority = template
    if notification_type == 'registration_rejected' and not data.get('reason'):
        data['reason'] = 'Please contact support for more information.'
    return title, message.format_map(_Defaults(data)).strip(), priority


def notify_partner(partner_id: int, notification_type: str, **data) -> int:
    """
    Send a templated notification to a partner.

    Args:
        partner_id: Partner user ID
        notification_type: Key of PARTNER_TEMPLATES
        **data: Template values; link, sender_id and reservation_id are
            stored on the notification, everything is kept as metadata

    Returns:
        New notification ID
    """
    title, message, priority = render_template(notification_type, **data)
    notification_id = create_notification(
        user_id=partner_id,
        type=notification_type,
        title=title,
        message=message,
        priority=priority,
        link=data.get('link'),
        sender_id=data.get('sender_id'),
        reservation_id=data.get('reservation_id'),
        metadata={k: v for k, v in data.items() if k not in ('link', 'sender_id')}
    )
    logger.info(f"[Notify] partner={partner_id} type={notification_type} id={notification_id}")
    return notification_id


def notify_user(user_id: int, notification_type: str, title: str, message: str,
                priority: str = 'medium', **kwargs) -> int:
    """Send a free-form notification to one user."""
    return create_notification(
        user_id=user_id,
        type=notification_type,
        title=title,
        message=message,
        priority=priority,
        **kwargs
    )


def notify_admins(notification_type: str, title: str, message: str,
                  priority: str = 'medium', **kwargs) -> List[int]:
    """
    Send a notification to every active admin and manager.

    Returns:
        List of created notification IDs
    """
    ids = [
        create_notification(
            user_id=user_id,
            type=notification_type,
            title=title,
            message=message,
            priority=priority,
            **kwargs
        )
        for user_id in get_user_ids_by_role('admin', 'manager')
    ]
    logger.info(f"[Notify] staff type={notification_type} recipients={len(ids)}")
    return ids


def filter_notifications_for_role(notifications: List[Dict[str, Any]], role: str) -> List[Dict[str, Any]]:
    """
    Keep the notifications a role is allowed to see.

    Admins see everything; unknown roles only see general announcements.
    """
    if role == 'admin':
        return list(notifications)

    visible = ROLE_VISIBLE_TYPES.get(role, DEFAULT_VISIBLE_TYPES)
    return [n for n in notifications if n.get('type') in visible]


def sort_by_relevance(notifications: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Unread first, then by priority (urgent > high > medium > low), then newest."""
    newest_first = sorted(
        notifications,
        key=lambda n: (n.get('created_at') or '', n.get('id') or 0),
        reverse=True
    )
    return sorted(
        newest_first,
        key=lambda n: (bool(n.get('is_read')), -PRIORITY_RANK.get(n.get('priority'), 0))
    )
