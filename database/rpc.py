"""
Named database procedures.

Stored procedures are registered by name and called with keyword
parameters, mirroring the RPC interface of a hosted Postgres. Procedures
run on the current request connection (see database.connection.get_db),
so session-scoped state such as the audit context lives exactly as long
as that connection.

Usage:
    from database.rpc import call_rpc

    call_rpc('set_audit_user_context', p_user_id=1, p_user_email='a@b.c')
    available = call_rpc('check_loft_availability', p_loft_id=3,
                         p_check_in='2025-07-01', p_check_out='2025-07-05')
"""

import logging
from typing import Any, Callable

from database.connection import get_db

logger = logging.getLogger(__name__)

_REGISTRY: dict = {}

AUDIT_CONTEXT_KEYS = (
    'audit.current_user_id',
    'audit.user_email',
    'audit.ip_address',
    'audit.user_agent',
    'audit.session_id',
)


class RpcError(RuntimeError):
    """A registered procedure failed."""


class RpcNotFoundError(RpcError):
    """No procedure registered under the requested name."""


def register_rpc(name: str) -> Callable:
    """Decorator registering a function as a named procedure."""
    def decorator(func):
        _REGISTRY[name] = func
        return func
    return decorator


def unregister_rpc(name: str) -> Callable | None:
    """Remove a procedure; returns the removed function (or None)."""
    return _REGISTRY.pop(name, None)


def rpc_exists(name: str) -> bool:
    return name in _REGISTRY


def call_rpc(name: str, **params: Any) -> Any:
    """
    Call a named procedure.

    Args:
        name: Procedure name (may be schema-qualified, e.g. 'audit.x')
        **params: Keyword parameters passed to the procedure

    Returns:
        Whatever the procedure returns

    Raises:
        RpcNotFoundError: Unknown procedure name
        RpcError: Procedure raised an error
    """
    func = _REGISTRY.get(name)
    if func is None:
        raise RpcNotFoundError(f'Could not find the function {name} in the schema cache')

    try:
        return func(**params)
    except RpcError:
        raise
    except Exception as e:
        logger.error(f"RPC {name} failed: {e}")
        raise RpcError(f'{name}: {e}') from e


# =============================================================================
# AUDIT CONTEXT (session-scoped)
# =============================================================================

def _ensure_context_table(db) -> None:
    db.execute('''
        CREATE TEMP TABLE IF NOT EXISTS audit_session_context (
            key TEXT PRIMARY KEY,
            value TEXT
        )
    ''')


@register_rpc('set_audit_user_context')
def set_audit_user_context(
    p_user_id: int = None,
    p_user_email: str = None,
    p_ip_address: str = None,
    p_user_agent: str = None,
    p_session_id: str = None
) -> bool:
    """Store the acting user on the current DB session."""
    db = get_db()
    _ensure_context_table(db)

    values = (p_user_id, p_user_email, p_ip_address, p_user_agent, p_session_id)
    for key, value in zip(AUDIT_CONTEXT_KEYS, values):
        db.execute(
            'INSERT OR REPLACE INTO audit_session_context (key, value) VALUES (?, ?)',
            (key, None if value is None else str(value))
        )
    return True


@register_rpc('clear_audit_user_context')
def clear_audit_user_context() -> bool:
    """Forget the acting user on the current DB session."""
    db = get_db()
    _ensure_context_table(db)
    db.execute('DELETE FROM audit_session_context')
    return True


@register_rpc('get_audit_user_context')
def get_audit_user_context() -> dict:
    """Return the session audit context as {key: value}, skipping empty keys."""
    db = get_db()
    _ensure_context_table(db)
    rows = db.execute('SELECT key, value FROM audit_session_context').fetchall()
    return {row['key']: row['value'] for row in rows if row['value'] is not None}


# =============================================================================
# BOOKING PROCEDURES
# =============================================================================

@register_rpc('check_loft_availability')
def check_loft_availability(p_loft_id: int, p_check_in: str, p_check_out: str) -> bool:
    from blueprints.lofts.services.availability_service import check_availability

    return check_availability(p_loft_id, p_check_in, p_check_out)['is_available']


@register_rpc('calculate_reservation_price')
def calculate_reservation_price(
    p_loft_id: int,
    p_check_in: str,
    p_check_out: str,
    p_guest_count: int = 1
) -> dict:
    from blueprints.lofts.services.pricing_service import calculate_stay_price

    return calculate_stay_price(p_loft_id, p_check_in, p_check_out, p_guest_count)


@register_rpc('cleanup_expired_reservation_locks')
def cleanup_expired_reservation_locks() -> int:
    from models.reservation_lock import delete_expired_locks

    return delete_expired_locks()


# =============================================================================
# AUDIT PROCEDURES
# =============================================================================

@register_rpc('verify_audit_logs_integrity')
def verify_audit_logs_integrity() -> dict:
    from models.audit_log import verify_integrity

    return verify_integrity()
