"""
Database migrations package.
Organized by feature area for maintainability.

Each module contains related migrations that can be run independently.
The run_all_migrations() function executes all migrations in order and
records applied ones in schema_migrations.
"""

from database.connection import get_db
from .audit import (
    migrate_audit_integrity_columns,
    migrate_audit_access_log_table
)
from .bookings import (
    migrate_reservation_locks_table,
    migrate_loft_stay_limits
)
from .permissions import (
    migrate_add_clone_permission,
    migrate_add_audit_permissions
)


# Ordered list of all migrations
MIGRATIONS = [
    # Phase 1: Booking holds and stay limits
    ('reservation_locks_table', migrate_reservation_locks_table),
    ('loft_stay_limits', migrate_loft_stay_limits),

    # Phase 2: Audit hardening
    ('audit_integrity_columns', migrate_audit_integrity_columns),
    ('audit_access_log_table', migrate_audit_access_log_table),
    ('add_audit_permissions', migrate_add_audit_permissions),

    # Phase 3: Operations
    ('add_clone_permission', migrate_add_clone_permission),
]


def _record_migration(name: str) -> None:
    """Store the migration name in schema_migrations."""
    db = get_db()
    db.execute('''
        CREATE TABLE IF NOT EXISTS schema_migrations (
            name TEXT PRIMARY KEY,
            applied_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    ''')
    db.execute('INSERT OR IGNORE INTO schema_migrations (name) VALUES (?)', (name,))
    db.commit()


def run_all_migrations() -> dict:
    """
    Run all migrations in order.

    Each migration is idempotent - safe to run multiple times.

    Returns:
        dict: {
            'total': int,
            'applied': int,
            'skipped': int,
            'failed': int,
            'results': [(name, bool, str), ...]
        }
    """
    results = []
    applied = 0
    skipped = 0
    failed = 0

    print("=" * 60)
    print("Running all database migrations...")
    print("=" * 60)

    for name, migration_func in MIGRATIONS:
        try:
            result = migration_func()
            if result:
                applied += 1
                results.append((name, True, 'applied'))
            else:
                skipped += 1
                results.append((name, True, 'skipped'))
            _record_migration(name)
        except Exception as e:
            get_db().rollback()
            failed += 1
            results.append((name, False, str(e)))
            print(f"ERROR in migration {name}: {e}")

    print("=" * 60)
    print(f"Migrations complete: {applied} applied, {skipped} skipped, {failed} failed")
    print("=" * 60)

    return {
        'total': len(MIGRATIONS),
        'applied': applied,
        'skipped': skipped,
        'failed': failed,
        'results': results
    }


__all__ = [
    'run_all_migrations',
    'MIGRATIONS',
    'migrate_reservation_locks_table',
    'migrate_loft_stay_limits',
    'migrate_audit_integrity_columns',
    'migrate_audit_access_log_table',
    'migrate_add_audit_permissions',
    'migrate_add_clone_permission',
]
