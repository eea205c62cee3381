"""
Audit migrations.
Integrity hashing columns and the audit access log.
"""

from database.connection import get_db


def migrate_audit_integrity_columns() -> bool:
    """
    Add user_email, changed_fields and integrity_hash to audit_log and
    backfill hashes for existing rows.

    Returns:
        bool: True if migration was applied, False if skipped
    """
    from models.audit_log import compute_integrity_hash

    db = get_db()
    cursor = db.cursor()

    cursor.execute("PRAGMA table_info(audit_log)")
    existing_columns = [row['name'] for row in cursor.fetchall()]

    if 'integrity_hash' in existing_columns:
        print("  audit_log integrity columns already exist, skipping")
        return False

    print("Adding integrity columns to audit_log...")

    for column in ('user_email', 'changed_fields', 'integrity_hash'):
        if column not in existing_columns:
            cursor.execute(f'ALTER TABLE audit_log ADD COLUMN {column} TEXT')

    cursor.execute('SELECT * FROM audit_log')
    for row in cursor.fetchall():
        cursor.execute(
            'UPDATE audit_log SET integrity_hash = ? WHERE id = ?',
            (compute_integrity_hash(dict(row)), row['id'])
        )

    db.commit()
    print("  audit_log integrity columns added")
    return True


def migrate_audit_access_log_table() -> bool:
    """
    Create the audit_access_log table.

    Returns:
        bool: True if migration was applied, False if skipped
    """
    db = get_db()
    cursor = db.cursor()

    cursor.execute('''
        SELECT name FROM sqlite_master
        WHERE type='table' AND name='audit_access_log'
    ''')

    if cursor.fetchone():
        print("  audit_access_log table already exists, skipping")
        return False

    print("Creating audit_access_log table...")

    cursor.execute('''
        CREATE TABLE audit_access_log (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER REFERENCES users(id) ON DELETE SET NULL,
            access_type TEXT NOT NULL
                CHECK(access_type IN ('VIEW', 'EXPORT', 'SEARCH', 'FILTER')),
            entity_type TEXT,
            entity_id INTEGER,
            filters TEXT,
            records_accessed INTEGER DEFAULT 0,
            ip_address TEXT,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    ''')
    cursor.execute('''
        CREATE INDEX idx_audit_access_user
        ON audit_access_log(user_id, created_at)
    ''')

    db.commit()
    print("  audit_access_log table created successfully")
    return True
