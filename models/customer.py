"""
Customer data access functions.
Customers are guest records created or matched when reservations are made.
"""

from database import get_db

CUSTOMER_FIELDS = ['first_name', 'last_name', 'email', 'phone', 'nationality', 'status', 'notes', 'user_id']


def get_customer_by_id(customer_id: int) -> dict:
    with get_db() as conn:
        row = conn.execute('SELECT * FROM customers WHERE id = ?', (customer_id,)).fetchone()
        return dict(row) if row else None


def find_customer(email: str = None, phone: str = None) -> dict:
    """
    Find a customer by email first, then by phone.

    Args:
        email: Email (case-insensitive)
        phone: Phone number

    Returns:
        Customer dict or None
    """
    with get_db() as conn:
        cursor = conn.cursor()

        if email:
            cursor.execute(
                'SELECT * FROM customers WHERE LOWER(email) = LOWER(?) ORDER BY id LIMIT 1',
                (email,)
            )
            row = cursor.fetchone()
            if row:
                return dict(row)

        if phone:
            cursor.execute('SELECT * FROM customers WHERE phone = ? ORDER BY id LIMIT 1', (phone,))
            row = cursor.fetchone()
            if row:
                return dict(row)

    return None


def create_customer(first_name: str, last_name: str = None, **kwargs) -> int:
    """
    Create a customer.

    Args:
        first_name: First name
        last_name: Last name
        **kwargs: email, phone, nationality, status, notes, user_id

    Returns:
        New customer ID
    """
    data = {'first_name': first_name, 'last_name': last_name}
    data.update({field: kwargs[field] for field in CUSTOMER_FIELDS if field in kwargs})

    fields = list(data)
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(
            f'INSERT INTO customers ({", ".join(fields)}) VALUES ({", ".join("?" * len(fields))})',
            [data[field] for field in fields]
        )
        return cursor.lastrowid


def update_customer(customer_id: int, **kwargs) -> bool:
    """Update customer fields; returns True if a row changed."""
    updates = []
    values = []
    for field in CUSTOMER_FIELDS:
        if field in kwargs:
            updates.append(f'{field} = ?')
            values.append(kwargs[field])

    if not updates:
        return False

    updates.append('updated_at = CURRENT_TIMESTAMP')
    values.append(customer_id)

    with get_db() as conn:
        cursor = conn.execute(f'UPDATE customers SET {", ".join(updates)} WHERE id = ?', values)
        return cursor.rowcount > 0
