"""
Audit logging helpers.
Every service write goes through log_audit so the trail records who,
from where, and the before/after state.
"""

import logging
from flask import request, has_request_context
from flask_login import current_user

logger = logging.getLogger(__name__)


def _request_metadata() -> tuple:
    """Return (ip_address, user_agent) for the current request, or (None, None)."""
    if not has_request_context():
        return None, None

    ip_address = request.headers.get('X-Forwarded-For', request.remote_addr)
    if ip_address and ',' in ip_address:
        ip_address = ip_address.split(',')[0].strip()
    user_agent = (request.headers.get('User-Agent') or '')[:255]
    return ip_address, user_agent


def log_audit(
    action: str,
    entity_type: str,
    entity_id: int = None,
    before: dict = None,
    after: dict = None,
    user_id: int = None
) -> int:
    """
    Log an audit entry manually.

    Captures the current user, IP address, and user agent from the Flask
    request. Outside a request (scripts, CLI) the values set through the
    session audit context are used instead.

    Args:
        action: Action type (INSERT, UPDATE, DELETE, ...)
        entity_type: Entity type (loft, reservation, pricing_rule, ...)
        entity_id: ID of the affected entity
        before: Dictionary with entity state before the change
        after: Dictionary with entity state after the change
        user_id: Override user ID (defaults to current_user.id)

    Returns:
        New audit log ID, or None if logging failed

    Example:
        log_audit(
            action='UPDATE',
            entity_type='reservation',
            entity_id=123,
            before={'status': 'pending'},
            after={'status': 'confirmed'}
        )
    """
    try:
        from models.audit_log import create_audit_log
        from blueprints.lofts.services.audit_context import get_audit_context

        user_email = None
        if user_id is None and has_request_context() and current_user.is_authenticated:
            user_id = current_user.id
            user_email = current_user.email

        ip_address, user_agent = _request_metadata()

        if user_id is None or ip_address is None:
            context = get_audit_context()
            if user_id is None and context.get('audit.current_user_id'):
                user_id = int(context['audit.current_user_id'])
                user_email = context.get('audit.user_email')
            ip_address = ip_address or context.get('audit.ip_address')
            user_agent = user_agent or context.get('audit.user_agent')

        changes = None
        if before is not None or after is not None:
            changes = {
                'before': before,
                'after': after
            }

        return create_audit_log(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            user_email=user_email,
            changes=changes,
            ip_address=ip_address,
            user_agent=user_agent
        )

    except Exception as e:
        # Audit logging should never fail the main operation
        logger.error(f"Failed to log audit entry: {e}", exc_info=True)
        return None


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def log_create(entity_type: str, entity_id: int, data: dict = None) -> int:
    """Log an INSERT action."""
    return log_audit(action='INSERT', entity_type=entity_type, entity_id=entity_id, after=data)


def log_update(entity_type: str, entity_id: int, before: dict = None, after: dict = None) -> int:
    """Log an UPDATE action with before/after state."""
    return log_audit(action='UPDATE', entity_type=entity_type, entity_id=entity_id,
                     before=before, after=after)


def log_delete(entity_type: str, entity_id: int, data: dict = None) -> int:
    """Log a DELETE action, keeping the deleted state for the trail."""
    return log_audit(action='DELETE', entity_type=entity_type, entity_id=entity_id, before=data)


__all__ = [
    'log_audit',
    'log_create',
    'log_update',
    'log_delete'
]
