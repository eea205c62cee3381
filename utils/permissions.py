"""
Permission checking and caching utilities.
Provides functions to load and check user permissions.
"""

from database import get_db
from models.role import get_role_permissions


def load_user_permissions(user_id: int) -> set:
    """
    Load all permissions for a user based on their role.

    Args:
        user_id: User ID

    Returns:
        Set of permission codes
    """
    db = get_db()
    cursor = db.cursor()

    cursor.execute('SELECT role_id FROM users WHERE id = ?', (user_id,))
    row = cursor.fetchone()

    if not row or not row['role_id']:
        return set()

    permissions = get_role_permissions(row['role_id'])

    return {perm['code'] for perm in permissions}


def cache_user_permissions(user_id: int):
    """
    Cache user permissions in flask g object.

    Args:
        user_id: User ID
    """
    from flask import g
    g.user_permissions = load_user_permissions(user_id)
    g.user_permissions_owner = user_id
