"""
Reservation model and data access functions.
Handles reservation rows, overlap queries, status columns and statistics.
Business rules (validation, pricing, transitions) live in reservation_service.
"""

from database import get_db
from utils.datetime_helpers import get_now_str

RESERVATION_STATUSES = ('pending', 'confirmed', 'cancelled', 'completed')
PAYMENT_STATUSES = ('pending', 'paid', 'refunded', 'failed')
BLOCKING_STATUSES = ('pending', 'confirmed')

RESERVATION_SELECT = '''
    SELECT r.*, l.name as loft_name, l.partner_id, l.address as loft_address
    FROM reservations r
    JOIN lofts l ON r.loft_id = l.id
'''

INSERT_FIELDS = [
    'booking_reference', 'loft_id', 'customer_id', 'client_user_id',
    'guest_name', 'guest_email', 'guest_phone', 'guest_nationality', 'guest_count',
    'check_in_date', 'check_out_date', 'special_requests',
    'base_price', 'cleaning_fee', 'service_fee', 'taxes', 'total_amount', 'currency_code',
    'status', 'payment_status', 'created_by'
]


# =============================================================================
# READ OPERATIONS
# =============================================================================

def get_reservation_by_id(reservation_id: int) -> dict:
    """
    Get reservation by ID with loft name and partner.

    Args:
        reservation_id: Reservation ID

    Returns:
        Reservation dict or None if not found
    """
    with get_db() as conn:
        row = conn.execute(RESERVATION_SELECT + ' WHERE r.id = ?', (reservation_id,)).fetchone()
        return dict(row) if row else None


def get_reservations(
    loft_id: int = None,
    partner_id: int = None,
    client_user_id: int = None,
    status: str = None,
    date_from: str = None,
    date_to: str = None,
    search: str = None,
    limit: int = 100,
    offset: int = 0
) -> list:
    """
    Get reservations with optional filtering.

    Args:
        loft_id: Filter by loft
        partner_id: Only reservations on this partner's lofts
        client_user_id: Only reservations booked by this client
        status: Filter by status
        date_from: Stays ending after this date (YYYY-MM-DD)
        date_to: Stays starting before this date (YYYY-MM-DD)
        search: Matches guest name, email or booking reference
        limit: Maximum rows
        offset: Rows to skip

    Returns:
        List of reservation dicts, most recent check-in first
    """
    query = RESERVATION_SELECT + ' WHERE 1=1'
    params = []

    if loft_id is not None:
        query += ' AND r.loft_id = ?'
        params.append(loft_id)

    if partner_id is not None:
        query += ' AND l.partner_id = ?'
        params.append(partner_id)

    if client_user_id is not None:
        query += ' AND r.client_user_id = ?'
        params.append(client_user_id)

    if status:
        query += ' AND r.status = ?'
        params.append(status)

    if date_from:
        query += ' AND r.check_out_date > ?'
        params.append(date_from)

    if date_to:
        query += ' AND r.check_in_date < ?'
        params.append(date_to)

    if search:
        term = f'%{search}%'
        query += ' AND (r.guest_name LIKE ? OR r.guest_email LIKE ? OR r.booking_reference LIKE ?)'
        params.extend([term, term, term])

    query += ' ORDER BY r.check_in_date DESC, r.id DESC LIMIT ? OFFSET ?'
    params.extend([limit, offset])

    with get_db() as conn:
        return [dict(row) for row in conn.execute(query, params).fetchall()]


def get_recent_reservations(limit: int = 5, partner_id: int = None) -> list:
    """Most recently created reservations."""
    query = RESERVATION_SELECT
    params = []
    if partner_id is not None:
        query += ' WHERE l.partner_id = ?'
        params.append(partner_id)
    query += ' ORDER BY r.created_at DESC, r.id DESC LIMIT ?'
    params.append(limit)

    with get_db() as conn:
        return [dict(row) for row in conn.execute(query, params).fetchall()]


def get_overlapping_reservations(loft_id: int, check_in: str, check_out: str,
                                 exclude_reservation_id: int = None) -> list:
    """
    Pending or confirmed reservations overlapping [check_in, check_out).

    Two stays overlap when one starts before the other ends; a check-out
    on the same day as the next check-in is not a conflict.
    """
    placeholders = ','.join('?' * len(BLOCKING_STATUSES))
    query = f'''
        SELECT id, booking_reference, check_in_date, check_out_date, status
        FROM reservations
        WHERE loft_id = ? AND status IN ({placeholders})
          AND check_in_date < ? AND check_out_date > ?
    '''
    params = [loft_id, *BLOCKING_STATUSES, check_out, check_in]

    if exclude_reservation_id is not None:
        query += ' AND id != ?'
        params.append(exclude_reservation_id)

    with get_db() as conn:
        return [dict(row) for row in conn.execute(query, params).fetchall()]


def get_confirmed_reservations(loft_id: int) -> list:
    with get_db() as conn:
        rows = conn.execute('''
            SELECT * FROM reservations
            WHERE loft_id = ? AND status = 'confirmed'
            ORDER BY check_in_date
        ''', (loft_id,)).fetchall()
        return [dict(row) for row in rows]


# =============================================================================
# WRITE OPERATIONS
# =============================================================================

def insert_reservation(data: dict) -> int:
    """
    Insert a reservation row.

    Args:
        data: Column values (see INSERT_FIELDS)

    Returns:
        New reservation ID
    """
    fields = [field for field in INSERT_FIELDS if field in data]
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(f'''
            INSERT INTO reservations ({", ".join(fields)})
            VALUES ({", ".join("?" * len(fields))})
        ''', [data[field] for field in fields])
        return cursor.lastrowid


def set_reservation_status(reservation_id: int, status: str, cancellation_reason: str = None) -> bool:
    """
    Write a status and its timestamp column.

    Args:
        reservation_id: Reservation ID
        status: New status
        cancellation_reason: Stored when status is 'cancelled'

    Returns:
        True if updated
    """
    if status not in RESERVATION_STATUSES:
        raise ValueError(f'Invalid status: {status}')

    now = get_now_str()
    updates = ['status = ?', 'updated_at = ?']
    values = [status, now]

    if status == 'confirmed':
        updates.append('confirmed_at = ?')
        values.append(now)
    elif status == 'completed':
        updates.append('completed_at = ?')
        values.append(now)
    elif status == 'cancelled':
        updates.extend(['cancelled_at = ?', 'cancellation_reason = ?'])
        values.extend([now, cancellation_reason])

    values.append(reservation_id)

    with get_db() as conn:
        cursor = conn.execute(f'UPDATE reservations SET {", ".join(updates)} WHERE id = ?', values)
        return cursor.rowcount > 0


def set_payment_status(reservation_id: int, payment_status: str) -> bool:
    if payment_status not in PAYMENT_STATUSES:
        raise ValueError(f'Invalid payment status: {payment_status}')

    with get_db() as conn:
        cursor = conn.execute('''
            UPDATE reservations SET payment_status = ?, updated_at = ?
            WHERE id = ?
        ''', (payment_status, get_now_str(), reservation_id))
        return cursor.rowcount > 0


# =============================================================================
# STATISTICS
# =============================================================================

def get_month_totals(month_start: str, month_end: str, partner_id: int = None) -> dict:
    """
    Count and revenue of non-cancelled reservations created in [month_start, month_end).

    Returns:
        Dict with count and revenue
    """
    query = '''
        SELECT COUNT(*) as count, COALESCE(SUM(r.total_amount), 0) as revenue
        FROM reservations r
        JOIN lofts l ON r.loft_id = l.id
        WHERE r.status != 'cancelled'
          AND date(r.created_at) >= ? AND date(r.created_at) < ?
    '''
    params = [month_start, month_end]
    if partner_id is not None:
        query += ' AND l.partner_id = ?'
        params.append(partner_id)

    with get_db() as conn:
        row = conn.execute(query, params).fetchone()
        return {'count': row['count'], 'revenue': float(row['revenue'])}


def get_stays_in_window(window_start: str, window_end: str, partner_id: int = None) -> list:
    """Confirmed or completed stays overlapping [window_start, window_end)."""
    query = '''
        SELECT r.check_in_date, r.check_out_date
        FROM reservations r
        JOIN lofts l ON r.loft_id = l.id
        WHERE r.status IN ('confirmed', 'completed')
          AND r.check_in_date < ? AND r.check_out_date > ?
    '''
    params = [window_end, window_start]
    if partner_id is not None:
        query += ' AND l.partner_id = ?'
        params.append(partner_id)

    with get_db() as conn:
        return [dict(row) for row in conn.execute(query, params).fetchall()]


def get_average_rating(partner_id: int = None) -> float:
    """Average rating of published reviews (0 when there are none)."""
    query = '''
        SELECT AVG(rv.rating) as rating
        FROM loft_reviews rv
        JOIN lofts l ON rv.loft_id = l.id
        WHERE rv.published = 1
    '''
    params = []
    if partner_id is not None:
        query += ' AND l.partner_id = ?'
        params.append(partner_id)

    with get_db() as conn:
        row = conn.execute(query, params).fetchone()
        return round(float(row['rating']), 1) if row['rating'] is not None else 0


# =============================================================================
# GUEST MESSAGES
# =============================================================================

def create_message(reservation_id: int, message_type: str, subject: str, message: str,
                   sender_id: int = None, sender_type: str = 'partner', is_automated: bool = False) -> int:
    with get_db() as conn:
        cursor = conn.execute('''
            INSERT INTO reservation_messages
                (reservation_id, message_type, subject, message, sender_id, sender_type, is_automated, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        ''', (reservation_id, message_type, subject, message, sender_id, sender_type,
              1 if is_automated else 0, get_now_str()))
        return cursor.lastrowid


def get_messages(reservation_id: int) -> list:
    with get_db() as conn:
        rows = conn.execute('''
            SELECT m.*, u.full_name as sender_name
            FROM reservation_messages m
            LEFT JOIN users u ON m.sender_id = u.id
            WHERE m.reservation_id = ?
            ORDER BY m.created_at, m.id
        ''', (reservation_id,)).fetchall()
        return [dict(row) for row in rows]
