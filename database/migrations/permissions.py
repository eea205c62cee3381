"""
Permissions migrations.
Permission additions for features shipped after the initial release.
"""

from database.connection import get_db


def _add_permission(cursor, code: str, name: str, module: str, roles: list) -> None:
    """Insert a permission and grant it to the given roles."""
    cursor.execute('''
        INSERT INTO permissions (code, name, module)
        VALUES (?, ?, ?)
    ''', (code, name, module))
    permission_id = cursor.lastrowid

    for role_name in roles:
        cursor.execute('SELECT id FROM roles WHERE name = ?', (role_name,))
        role = cursor.fetchone()
        if role:
            cursor.execute('''
                INSERT OR IGNORE INTO role_permissions (role_id, permission_id)
                VALUES (?, ?)
            ''', (role['id'], permission_id))


def migrate_add_clone_permission() -> bool:
    """
    Migration: Add 'admin.database.clone' permission for admins.

    Returns:
        bool: True if migration applied, False if already applied
    """
    db = get_db()
    cursor = db.cursor()

    cursor.execute("SELECT id FROM permissions WHERE code = 'admin.database.clone'")
    if cursor.fetchone():
        print("Permission 'admin.database.clone' already exists.")
        return False

    print("Adding database clone permission...")
    _add_permission(cursor, 'admin.database.clone', 'Clone databases', 'admin', ['admin'])
    db.commit()
    return True


def migrate_add_audit_permissions() -> bool:
    """
    Migration: Add audit export and retention permissions.

    Returns:
        bool: True if migration applied, False if already applied
    """
    db = get_db()
    cursor = db.cursor()

    cursor.execute("SELECT id FROM permissions WHERE code = 'admin.audit.export'")
    if cursor.fetchone():
        print("Audit permissions already exist.")
        return False

    print("Adding audit permissions...")
    _add_permission(cursor, 'admin.audit.export', 'Export audit logs', 'admin', ['admin', 'manager'])
    cursor.execute("SELECT id FROM permissions WHERE code = 'admin.audit.manage'")
    if not cursor.fetchone():
        _add_permission(cursor, 'admin.audit.manage', 'Audit retention and integrity', 'admin', ['admin'])
    db.commit()
    return True
