"""
Audit context service.

Stores the acting user on the database session so that writes made outside
a Flask request (scripts, background jobs) are still attributed in the
audit trail. Procedures are called by name; the schema-qualified name is
tried first and the unqualified one is used when it is not registered.
"""

import logging
from functools import wraps

from flask import has_request_context, request, session
from flask_login import current_user

from database.rpc import call_rpc, RpcError, RpcNotFoundError

logger = logging.getLogger(__name__)

SET_CONTEXT_RPCS = ('audit.set_audit_user_context', 'set_audit_user_context')
CLEAR_CONTEXT_RPCS = ('audit.clear_audit_user_context', 'clear_audit_user_context')
GET_CONTEXT_RPCS = ('audit.get_audit_user_context', 'get_audit_user_context')


def _call_with_fallback(names: tuple, **params):
    """Call the first registered procedure among names."""
    qualified, unqualified = names
    try:
        return call_rpc(qualified, **params)
    except RpcNotFoundError:
        logger.debug(f"{qualified} not found, falling back to {unqualified}")
        return call_rpc(unqualified, **params)


def set_audit_context(
    user_id: int,
    user_email: str = None,
    ip_address: str = None,
    user_agent: str = None,
    session_id: str = None
) -> bool:
    """
    Set the audit user context for the current database session.

    Args:
        user_id: Acting user ID
        user_email: Acting user email
        ip_address: Client IP address
        user_agent: Client user agent
        session_id: Web session identifier

    Returns:
        True on success, False when the context could not be stored
    """
    try:
        _call_with_fallback(
            SET_CONTEXT_RPCS,
            p_user_id=user_id,
            p_user_email=user_email,
            p_ip_address=ip_address,
            p_user_agent=user_agent,
            p_session_id=session_id
        )
        return True
    except RpcError as e:
        logger.error(f"Failed to set audit context: {e}")
        return False


def clear_audit_context() -> bool:
    """Clear the audit user context. Returns False on failure."""
    try:
        _call_with_fallback(CLEAR_CONTEXT_RPCS)
        return True
    except RpcError as e:
        logger.error(f"Failed to clear audit context: {e}")
        return False


def get_audit_context() -> dict:
    """Current audit context as {key: value}; empty when unset or unavailable."""
    try:
        return _call_with_fallback(GET_CONTEXT_RPCS) or {}
    except RpcError as e:
        logger.warning(f"Failed to read audit context: {e}")
        return {}


def get_client_ip() -> str:
    """First X-Forwarded-For entry, else the remote address."""
    forwarded = request.headers.get('X-Forwarded-For')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.remote_addr


def set_audit_context_from_request() -> bool:
    """
    Set the audit context from the current request and logged-in user.

    Returns:
        True when a context was stored, False without an authenticated user
    """
    if not has_request_context() or not current_user.is_authenticated:
        return False

    return set_audit_context(
        user_id=current_user.id,
        user_email=current_user.email,
        ip_address=get_client_ip(),
        user_agent=(request.headers.get('User-Agent') or '')[:255],
        session_id=session.get('_id')
    )


def with_audit_context(func):
    """
    Decorator: set the audit context from the request around a call.

    The context is always cleared afterwards, including when the wrapped
    function raises.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        set_audit_context_from_request()
        try:
            return func(*args, **kwargs)
        finally:
            clear_audit_context()

    return wrapper
