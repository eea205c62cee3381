"""
Booking migrations.
Reservation locks and loft stay limits.
"""

from database.connection import get_db


def migrate_reservation_locks_table() -> bool:
    """
    Create the reservation_locks table used to hold dates during checkout.

    Returns:
        bool: True if migration was applied, False if skipped
    """
    db = get_db()
    cursor = db.cursor()

    cursor.execute('''
        SELECT name FROM sqlite_master
        WHERE type='table' AND name='reservation_locks'
    ''')

    if cursor.fetchone():
        print("  reservation_locks table already exists, skipping")
        return False

    print("Creating reservation_locks table...")

    cursor.execute('''
        CREATE TABLE reservation_locks (
            id TEXT PRIMARY KEY,
            loft_id INTEGER NOT NULL REFERENCES lofts(id) ON DELETE CASCADE,
            check_in_date TEXT NOT NULL,
            check_out_date TEXT NOT NULL,
            user_id INTEGER REFERENCES users(id) ON DELETE CASCADE,
            expires_at TEXT NOT NULL,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    ''')
    cursor.execute('CREATE INDEX idx_locks_loft ON reservation_locks(loft_id, expires_at)')

    db.commit()
    print("  reservation_locks table created successfully")
    return True


def migrate_loft_stay_limits() -> bool:
    """
    Add minimum_stay / maximum_stay columns to lofts.

    Returns:
        bool: True if migration was applied, False if skipped
    """
    db = get_db()
    cursor = db.cursor()

    cursor.execute("PRAGMA table_info(lofts)")
    existing_columns = [row['name'] for row in cursor.fetchall()]

    if 'minimum_stay' in existing_columns and 'maximum_stay' in existing_columns:
        print("  loft stay limit columns already exist, skipping")
        return False

    print("Adding stay limits to lofts...")

    if 'minimum_stay' not in existing_columns:
        cursor.execute('ALTER TABLE lofts ADD COLUMN minimum_stay INTEGER NOT NULL DEFAULT 1')
    if 'maximum_stay' not in existing_columns:
        cursor.execute('ALTER TABLE lofts ADD COLUMN maximum_stay INTEGER')

    db.commit()
    print("  loft stay limits added")
    return True
