"""
Loft availability data access functions.
One optional row per (loft, date): blocked flag, price override and stay rules.
Dates without a row are available at the loft base price.
"""

from database import get_db

BOOKED_REASON = 'booked'


def get_availability_rows(loft_id: int, start_date: str, end_date: str) -> list:
    """
    Get stored availability rows for dates in [start_date, end_date).

    Args:
        loft_id: Loft ID
        start_date: First date (YYYY-MM-DD)
        end_date: Exclusive end date (YYYY-MM-DD)

    Returns:
        List of row dicts ordered by date
    """
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute('''
            SELECT * FROM loft_availability
            WHERE loft_id = ? AND date >= ? AND date < ?
            ORDER BY date
        ''', (loft_id, start_date, end_date))
        return [dict(row) for row in cursor.fetchall()]


def get_blocked_dates(loft_id: int, start_date: str, end_date: str) -> list:
    """Dates in [start_date, end_date) marked unavailable."""
    with get_db() as conn:
        rows = conn.execute('''
            SELECT date FROM loft_availability
            WHERE loft_id = ? AND date >= ? AND date < ? AND is_available = 0
            ORDER BY date
        ''', (loft_id, start_date, end_date)).fetchall()
        return [row['date'] for row in rows]


def get_price_overrides(loft_id: int, start_date: str, end_date: str) -> dict:
    """Map of date -> price_override for dates in range that carry one."""
    with get_db() as conn:
        rows = conn.execute('''
            SELECT date, price_override FROM loft_availability
            WHERE loft_id = ? AND date >= ? AND date < ? AND price_override IS NOT NULL
        ''', (loft_id, start_date, end_date)).fetchall()
        return {row['date']: row['price_override'] for row in rows}


def upsert_availability(loft_id: int, date: str, is_available: bool = True,
                        price_override: float = None, minimum_stay: int = 1,
                        blocked_reason: str = None, notes: str = None) -> None:
    """
    Insert or replace the availability row for one date.

    Args:
        loft_id: Loft ID
        date: Date (YYYY-MM-DD)
        is_available: False blocks the date
        price_override: Nightly price for this date (None keeps base price)
        minimum_stay: Minimum nights for stays starting this date
        blocked_reason: Why the date is blocked ('booked' for confirmed stays)
        notes: Free text
    """
    db = get_db()
    db.execute('''
        INSERT INTO loft_availability
            (loft_id, date, is_available, price_override, minimum_stay, blocked_reason, notes)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(loft_id, date) DO UPDATE SET
            is_available = excluded.is_available,
            price_override = excluded.price_override,
            minimum_stay = excluded.minimum_stay,
            blocked_reason = excluded.blocked_reason,
            notes = excluded.notes,
            updated_at = CURRENT_TIMESTAMP
    ''', (loft_id, date, 1 if is_available else 0, price_override,
          minimum_stay or 1, blocked_reason, notes))


def delete_unbooked_rows(loft_id: int, start_date: str, end_date: str) -> int:
    """
    Delete availability rows in [start_date, end_date) except booked ones.

    Returns:
        Number of deleted rows
    """
    db = get_db()
    cursor = db.execute('''
        DELETE FROM loft_availability
        WHERE loft_id = ? AND date >= ? AND date < ?
          AND (blocked_reason IS NULL OR blocked_reason != ?)
    ''', (loft_id, start_date, end_date, BOOKED_REASON))
    return cursor.rowcount


def release_booked_dates(loft_id: int, start_date: str, end_date: str) -> int:
    """Delete the 'booked' rows of a stay that no longer holds the dates."""
    db = get_db()
    cursor = db.execute('''
        DELETE FROM loft_availability
        WHERE loft_id = ? AND date >= ? AND date < ? AND blocked_reason = ?
    ''', (loft_id, start_date, end_date, BOOKED_REASON))
    return cursor.rowcount
