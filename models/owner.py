"""
Loft owner data access functions.
Owners are either the company itself or third parties paid a share of revenue.
"""

from database import get_db

OWNERSHIP_TYPES = ('company', 'third_party')


def get_all_owners() -> list:
    """
    Get all owners with their loft count.

    Returns:
        List of owner dicts ordered by name
    """
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute('''
            SELECT o.*, COUNT(l.id) as loft_count
            FROM loft_owners o
            LEFT JOIN lofts l ON l.owner_id = o.id
            GROUP BY o.id
            ORDER BY o.name
        ''')
        return [dict(row) for row in cursor.fetchall()]


def get_owner_by_id(owner_id: int) -> dict:
    with get_db() as conn:
        row = conn.execute('SELECT * FROM loft_owners WHERE id = ?', (owner_id,)).fetchone()
        return dict(row) if row else None


def create_owner(name: str, ownership_type: str = 'third_party', email: str = None,
                 phone: str = None, address: str = None, user_id: int = None) -> int:
    """
    Create a loft owner.

    Args:
        name: Owner name
        ownership_type: 'company' or 'third_party'
        email: Contact email
        phone: Contact phone
        address: Postal address
        user_id: Linked partner account

    Returns:
        New owner ID

    Raises:
        ValueError: invalid ownership type
    """
    if ownership_type not in OWNERSHIP_TYPES:
        raise ValueError(f'Invalid ownership type: {ownership_type}')

    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute('''
            INSERT INTO loft_owners (name, email, phone, address, ownership_type, user_id)
            VALUES (?, ?, ?, ?, ?, ?)
        ''', (name, email, phone, address, ownership_type, user_id))
        return cursor.lastrowid


def update_owner(owner_id: int, **kwargs) -> bool:
    """
    Update owner fields.

    Args:
        owner_id: Owner ID
        **kwargs: name, email, phone, address, ownership_type

    Returns:
        True if updated successfully
    """
    if 'ownership_type' in kwargs and kwargs['ownership_type'] not in OWNERSHIP_TYPES:
        raise ValueError(f"Invalid ownership type: {kwargs['ownership_type']}")

    allowed_fields = ['name', 'email', 'phone', 'address', 'ownership_type']
    updates = []
    values = []

    for field in allowed_fields:
        if field in kwargs:
            updates.append(f'{field} = ?')
            values.append(kwargs[field])

    if not updates:
        return False

    updates.append('updated_at = CURRENT_TIMESTAMP')
    values.append(owner_id)

    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(f'UPDATE loft_owners SET {", ".join(updates)} WHERE id = ?', values)
        return cursor.rowcount > 0


def delete_owner(owner_id: int) -> bool:
    """
    Delete an owner that has no lofts.

    Raises:
        ValueError: owner still has lofts
    """
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute('SELECT COUNT(*) as count FROM lofts WHERE owner_id = ?', (owner_id,))
        if cursor.fetchone()['count'] > 0:
            raise ValueError('Cannot delete an owner that still has lofts')

        cursor.execute('DELETE FROM loft_owners WHERE id = ?', (owner_id,))
        return cursor.rowcount > 0
