"""
Reservation lock data access functions.
A lock holds a loft's dates for a short checkout window so two guests
cannot book the same stay at once.
"""

import uuid
from datetime import timedelta
from database import get_db
from utils.datetime_helpers import get_now


def create_lock(loft_id: int, check_in: str, check_out: str, user_id: int = None,
                minutes: int = 15) -> dict:
    """
    Create a lock on [check_in, check_out) for a loft.

    Args:
        loft_id: Loft ID
        check_in: Check-in date (YYYY-MM-DD)
        check_out: Check-out date (YYYY-MM-DD)
        user_id: User holding the lock
        minutes: Lock lifetime

    Returns:
        Dict with lock_id and expires_at
    """
    lock_id = str(uuid.uuid4())
    now = get_now()
    expires_at = (now + timedelta(minutes=minutes)).strftime('%Y-%m-%d %H:%M:%S')

    with get_db() as conn:
        conn.execute('''
            INSERT INTO reservation_locks (id, loft_id, check_in_date, check_out_date, user_id, expires_at, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        ''', (lock_id, loft_id, check_in, check_out, user_id, expires_at,
              now.strftime('%Y-%m-%d %H:%M:%S')))

    return {'lock_id': lock_id, 'expires_at': expires_at}


def get_lock(lock_id: str) -> dict:
    with get_db() as conn:
        row = conn.execute('SELECT * FROM reservation_locks WHERE id = ?', (lock_id,)).fetchone()
        return dict(row) if row else None


def get_conflicting_locks(loft_id: int, check_in: str, check_out: str,
                          exclude_user_id: int = None, exclude_lock_id: str = None) -> list:
    """
    Unexpired locks overlapping [check_in, check_out).

    Args:
        loft_id: Loft ID
        check_in: Check-in date
        check_out: Check-out date
        exclude_user_id: Ignore locks held by this user
        exclude_lock_id: Ignore this lock

    Returns:
        List of lock dicts
    """
    query = '''
        SELECT * FROM reservation_locks
        WHERE loft_id = ? AND expires_at > ?
          AND check_in_date < ? AND check_out_date > ?
    '''
    params = [loft_id, get_now().strftime('%Y-%m-%d %H:%M:%S'), check_out, check_in]

    if exclude_user_id is not None:
        query += ' AND (user_id IS NULL OR user_id != ?)'
        params.append(exclude_user_id)

    if exclude_lock_id:
        query += ' AND id != ?'
        params.append(exclude_lock_id)

    with get_db() as conn:
        return [dict(row) for row in conn.execute(query, params).fetchall()]


def delete_lock(lock_id: str) -> bool:
    with get_db() as conn:
        cursor = conn.execute('DELETE FROM reservation_locks WHERE id = ?', (lock_id,))
        return cursor.rowcount > 0


def delete_expired_locks() -> int:
    """
    Remove expired locks.

    Returns:
        Number of deleted locks
    """
    with get_db() as conn:
        cursor = conn.execute(
            'DELETE FROM reservation_locks WHERE expires_at <= ?',
            (get_now().strftime('%Y-%m-%d %H:%M:%S'),)
        )
        return cursor.rowcount
