"""
Partner profile data access functions.
A partner is a user with the 'partner' role plus a business profile that
admins verify before the partner can publish lofts.
"""

from database import get_db
from utils.datetime_helpers import get_now_str

BUSINESS_TYPES = ('individual', 'company')
VERIFICATION_STATUSES = ('pending', 'verified', 'rejected')


def get_partner_profile(user_id: int) -> dict:
    """
    Get the partner profile for a user.

    Args:
        user_id: Partner user ID

    Returns:
        Profile dict joined with user fields, or None
    """
    with get_db() as conn:
        row = conn.execute('''
            SELECT p.*, u.username, u.email, u.full_name
            FROM partner_profiles p
            JOIN users u ON p.user_id = u.id
            WHERE p.user_id = ?
        ''', (user_id,)).fetchone()
        return dict(row) if row else None


def get_partners(verification_status: str = None) -> list:
    """
    List partner profiles.

    Args:
        verification_status: Optional filter (pending, verified, rejected)

    Returns:
        List of profile dicts with loft counts, newest first
    """
    query = '''
        SELECT p.*, u.username, u.email, u.full_name,
               (SELECT COUNT(*) FROM lofts l WHERE l.partner_id = p.user_id) as loft_count
        FROM partner_profiles p
        JOIN users u ON p.user_id = u.id
    '''
    params = []
    if verification_status:
        query += ' WHERE p.verification_status = ?'
        params.append(verification_status)
    query += ' ORDER BY p.created_at DESC, p.id DESC'

    with get_db() as conn:
        return [dict(row) for row in conn.execute(query, params).fetchall()]


def create_partner_profile(user_id: int, business_name: str, business_type: str = 'individual',
                           tax_id: str = None, address: str = None, phone: str = None) -> int:
    """
    Create a pending partner profile.

    Raises:
        ValueError: invalid business type
    """
    if business_type not in BUSINESS_TYPES:
        raise ValueError(f'Invalid business type: {business_type}')

    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute('''
            INSERT INTO partner_profiles (user_id, business_name, business_type, tax_id, address, phone)
            VALUES (?, ?, ?, ?, ?, ?)
        ''', (user_id, business_name, business_type, tax_id, address, phone))
        return cursor.lastrowid


def set_verification_status(user_id: int, status: str, verified_by: int = None,
                            rejection_reason: str = None) -> bool:
    """
    Approve or reject a partner.

    Args:
        user_id: Partner user ID
        status: 'verified' or 'rejected' (or back to 'pending')
        verified_by: Admin user ID
        rejection_reason: Reason shown to the partner on rejection

    Returns:
        True if a profile was updated
    """
    if status not in VERIFICATION_STATUSES:
        raise ValueError(f'Invalid verification status: {status}')

    verified_at = get_now_str() if status == 'verified' else None

    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute('''
            UPDATE partner_profiles
            SET verification_status = ?, verified_at = ?, verified_by = ?,
                rejection_reason = ?, updated_at = CURRENT_TIMESTAMP
            WHERE user_id = ?
        ''', (status, verified_at, verified_by,
              rejection_reason if status == 'rejected' else None, user_id))
        return cursor.rowcount > 0


def is_verified_partner(user_id: int) -> bool:
    profile = get_partner_profile(user_id)
    return bool(profile) and profile['verification_status'] == 'verified'
