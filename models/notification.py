"""
Notification data access functions.
In-app notifications addressed to a single user.
"""

import json
from database import get_db
from utils.datetime_helpers import get_now_str

PRIORITIES = ('low', 'medium', 'high', 'urgent')


def _row_to_notification(row) -> dict:
    notification = dict(row)
    try:
        notification['metadata'] = json.loads(notification['metadata']) if notification.get('metadata') else {}
    except (TypeError, ValueError):
        notification['metadata'] = {}
    notification['is_read'] = bool(notification.get('is_read'))
    return notification


def create_notification(
    user_id: int,
    type: str,
    title: str,
    message: str,
    priority: str = 'medium',
    link: str = None,
    sender_id: int = None,
    reservation_id: int = None,
    metadata: dict = None
) -> int:
    """
    Create a notification for a user.

    Args:
        user_id: Recipient user ID
        type: Notification type (new_reservation, account_update, ...)
        title: Short title
        message: Body text
        priority: low, medium, high or urgent
        link: Optional in-app link
        sender_id: User that triggered the notification
        reservation_id: Related reservation
        metadata: Extra JSON-serializable data

    Returns:
        New notification ID
    """
    if priority not in PRIORITIES:
        raise ValueError(f'Invalid priority: {priority}')

    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute('''
            INSERT INTO notifications
                (user_id, type, title, message, link, priority, sender_id, reservation_id, metadata, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ''', (user_id, type, title, message, link, priority, sender_id, reservation_id,
              json.dumps(metadata, default=str, ensure_ascii=False) if metadata else None,
              get_now_str()))
        return cursor.lastrowid


def get_notification_by_id(notification_id: int) -> dict:
    with get_db() as conn:
        row = conn.execute('SELECT * FROM notifications WHERE id = ?', (notification_id,)).fetchone()
        return _row_to_notification(row) if row else None


def get_user_notifications(user_id: int, unread_only: bool = False, limit: int = 50) -> list:
    """
    Get a user's notifications, newest first.

    Args:
        user_id: Recipient user ID
        unread_only: Only unread notifications
        limit: Maximum rows

    Returns:
        List of notification dicts
    """
    query = 'SELECT * FROM notifications WHERE user_id = ?'
    if unread_only:
        query += ' AND is_read = 0'
    query += ' ORDER BY created_at DESC, id DESC LIMIT ?'

    with get_db() as conn:
        return [_row_to_notification(row) for row in conn.execute(query, (user_id, limit)).fetchall()]


def get_unread_count(user_id: int) -> int:
    with get_db() as conn:
        row = conn.execute(
            'SELECT COUNT(*) as count FROM notifications WHERE user_id = ? AND is_read = 0', (user_id,)
        ).fetchone()
        return row['count']


def mark_as_read(notification_id: int, user_id: int) -> bool:
    """Mark one of the user's notifications as read."""
    with get_db() as conn:
        cursor = conn.execute('''
            UPDATE notifications SET is_read = 1, read_at = ?
            WHERE id = ? AND user_id = ? AND is_read = 0
        ''', (get_now_str(), notification_id, user_id))
        return cursor.rowcount > 0


def mark_all_as_read(user_id: int) -> int:
    """Mark every unread notification of a user as read; returns the count."""
    with get_db() as conn:
        cursor = conn.execute('''
            UPDATE notifications SET is_read = 1, read_at = ?
            WHERE user_id = ? AND is_read = 0
        ''', (get_now_str(), user_id))
        return cursor.rowcount


def delete_notification(notification_id: int, user_id: int) -> bool:
    with get_db() as conn:
        cursor = conn.execute(
            'DELETE FROM notifications WHERE id = ? AND user_id = ?', (notification_id, user_id)
        )
        return cursor.rowcount > 0
