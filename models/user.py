"""
User model and data access functions.
Handles user authentication, CRUD operations, and Flask-Login integration.
"""

from werkzeug.security import generate_password_hash, check_password_hash
from database import get_db

USER_SELECT = '''
    SELECT u.*, r.name as role_name, r.display_name as role_display_name
    FROM users u
    LEFT JOIN roles r ON u.role_id = r.id
'''

USER_UPDATABLE_FIELDS = ('email', 'full_name', 'phone', 'locale', 'role_id', 'active')


class User:
    """
    Account wrapper handed to Flask-Login.

    Built from a row returned by get_user_by_id / get_user_by_login, so
    role_name is already resolved.
    """

    is_anonymous = False

    def __init__(self, row):
        self.id = row['id']
        self.username = row['username']
        self.email = row['email']
        self.full_name = row['full_name']
        self.phone = row.get('phone')
        self.role_id = row['role_id']
        self.role_name = row.get('role_name')
        self.locale = row.get('locale') or 'fr'
        self.active = row['active']
        self.created_at = row['created_at']
        self.last_login = row.get('last_login')

    @property
    def is_authenticated(self):
        return True

    @property
    def is_active(self):
        """Deactivated accounts cannot log in or keep a session."""
        return self.active == 1

    @property
    def is_staff(self):
        """Admins and managers see every row."""
        return self.role_name in ('admin', 'manager')

    def get_id(self):
        return str(self.id)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'full_name': self.full_name,
            'phone': self.phone,
            'role': self.role_name,
            'locale': self.locale,
        }


def get_user_by_id(user_id: int) -> dict:
    """
    Get user by ID.

    Args:
        user_id: User ID

    Returns:
        User dict or None if not found
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute(USER_SELECT + ' WHERE u.id = ?', (user_id,))
    row = cursor.fetchone()
    return dict(row) if row else None


def get_user_by_username(username: str) -> dict:
    """Get user by username."""
    db = get_db()
    cursor = db.cursor()
    cursor.execute(USER_SELECT + ' WHERE u.username = ?', (username,))
    row = cursor.fetchone()
    return dict(row) if row else None


def get_user_by_email(email: str) -> dict:
    """Get user by email (case-insensitive)."""
    db = get_db()
    cursor = db.cursor()
    cursor.execute(USER_SELECT + ' WHERE LOWER(u.email) = LOWER(?)', (email,))
    row = cursor.fetchone()
    return dict(row) if row else None


def get_user_by_login(login: str) -> dict:
    """
    Get user by username or email.

    Args:
        login: Username or email address

    Returns:
        User dict or None if not found
    """
    if login and '@' in login:
        return get_user_by_email(login)
    return get_user_by_username(login)


def get_all_users(active_only: bool = True, role_name: str = None) -> list:
    """
    Get all users.

    Args:
        active_only: If True, only return active users
        role_name: Optional role filter

    Returns:
        List of user dicts
    """
    db = get_db()
    cursor = db.cursor()

    query = USER_SELECT + ' WHERE 1=1'
    params = []

    if active_only:
        query += ' AND u.active = 1'

    if role_name:
        query += ' AND r.name = ?'
        params.append(role_name)

    query += ' ORDER BY u.created_at DESC, u.id DESC'

    cursor.execute(query, params)
    return [dict(row) for row in cursor.fetchall()]


def get_user_ids_by_role(*role_names: str) -> list:
    """Return ids of active users holding any of the given roles."""
    if not role_names:
        return []
    db = get_db()
    placeholders = ','.join('?' * len(role_names))
    rows = db.execute(f'''
        SELECT u.id FROM users u
        JOIN roles r ON u.role_id = r.id
        WHERE u.active = 1 AND r.name IN ({placeholders})
    ''', role_names).fetchall()
    return [row['id'] for row in rows]


def create_user(username: str, email: str, password: str, full_name: str = None,
                role_id: int = None, phone: str = None, locale: str = 'fr') -> int:
    """
    Create new user with hashed password.

    Args:
        username: Unique username
        email: Unique email
        password: Plain text password (will be hashed)
        full_name: User's full name
        role_id: Role ID to assign
        phone: Contact phone
        locale: Preferred locale (fr, en, ar)

    Returns:
        New user ID

    Raises:
        sqlite3.IntegrityError if username or email already exists
    """
    db = get_db()
    password_hash = generate_password_hash(password)

    cursor = db.cursor()
    cursor.execute('''
        INSERT INTO users (username, email, password_hash, full_name, role_id, phone, locale)
        VALUES (?, ?, ?, ?, ?, ?, ?)
    ''', (username, email, password_hash, full_name, role_id, phone, locale))

    db.commit()
    return cursor.lastrowid


def _set_user_columns(user_id: int, columns: dict) -> bool:
    """Write the given columns and bump updated_at; True if the user exists."""
    assignments = ', '.join(f'{column} = ?' for column in columns)
    db = get_db()
    cursor = db.execute(
        f'UPDATE users SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE id = ?',
        [*columns.values(), user_id]
    )
    db.commit()
    return cursor.rowcount > 0


def update_user(user_id: int, **kwargs) -> bool:
    """
    Update profile or account fields.

    Args:
        user_id: User ID
        **kwargs: Any of USER_UPDATABLE_FIELDS; other keys are ignored

    Returns:
        True if a row was updated
    """
    columns = {field: kwargs[field] for field in USER_UPDATABLE_FIELDS if field in kwargs}
    if not columns:
        return False
    return _set_user_columns(user_id, columns)


def update_password(user_id: int, new_password: str) -> bool:
    """Store a new hash for the plain text password."""
    return _set_user_columns(user_id, {'password_hash': generate_password_hash(new_password)})


def delete_user(user_id: int) -> bool:
    """Deactivate the account. Reservations and audit rows keep pointing at it."""
    return _set_user_columns(user_id, {'active': 0})


def update_last_login(user_id: int) -> None:
    db = get_db()
    db.execute('UPDATE users SET last_login = CURRENT_TIMESTAMP WHERE id = ?', (user_id,))
    db.commit()


def check_password(user_dict: dict, password: str) -> bool:
    """True when the password matches the stored werkzeug hash."""
    return check_password_hash(user_dict['password_hash'], password)
