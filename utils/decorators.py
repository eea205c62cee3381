"""
Route decorators for authentication and authorization.
Provides permission- and role-based access control for routes.
"""

from functools import wraps
from flask import g, abort
from flask_login import login_required, current_user


def permission_required(permission_code: str):
    """
    Decorator to require specific permission for a route.

    Usage:
        @bp.route('/admin/users')
        @login_required
        @permission_required('admin.users.view')
        def admin_users():
            ...

    Args:
        permission_code: Permission code required (e.g., 'lofts.manage')

    Returns:
        Decorator function
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            # Cached per user: the app context can outlive a single login
            if g.get('user_permissions_owner') != current_user.id:
                from utils.permissions import load_user_permissions
                g.user_permissions = load_user_permissions(current_user.id)
                g.user_permissions_owner = current_user.id

            if permission_code not in g.user_permissions:
                abort(403)

            return func(*args, **kwargs)
        return wrapper
    return decorator


def role_required(*role_names: str):
    """
    Decorator to restrict a route to users holding one of the given roles.

    Usage:
        @bp.route('/dashboard')
        @login_required
        @role_required('partner')
        def dashboard():
            ...
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            if getattr(current_user, 'role_name', None) not in role_names:
                abort(403)
            return func(*args, **kwargs)
        return wrapper
    return decorator


__all__ = ['login_required', 'permission_required', 'role_required']
