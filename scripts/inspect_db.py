#!/usr/bin/env python
"""
LoftBook database inspection.

Reports table sizes and detects data problems:
- Overlapping active reservations on the same loft
- Orphaned rows (reservations without loft, lofts with a missing owner/partner)
- Expired reservation locks still stored

Usage:
    python scripts/inspect_db.py
    python scripts/inspect_db.py --db-path /path/to/loftbook.db
"""

import argparse
import os
import sqlite3
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent
DEFAULT_DB_PATH = PROJECT_ROOT / 'instance' / 'loftbook.db'

TABLES = (
    'users', 'partner_profiles', 'loft_owners', 'lofts', 'loft_availability',
    'pricing_rules', 'customers', 'reservations', 'reservation_locks',
    'reservation_messages', 'notifications', 'audit_log', 'audit_access_log',
)


def get_connection(db_path: str) -> sqlite3.Connection:
    """Open a read-only connection to the SQLite database."""
    conn = sqlite3.connect(f"file:{db_path}?mode=ro", uri=True)
    conn.row_factory = sqlite3.Row
    return conn


def issue(check: str, rows: list, describe) -> dict:
    """Create a standardized issue dict."""
    return {
        'check': check,
        'severity': 'fail' if rows else 'ok',
        'count': len(rows),
        'details': [describe(r) for r in rows[:20]]
    }


def table_counts(conn: sqlite3.Connection) -> dict:
    existing = {row['name'] for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")}
    return {
        table: conn.execute(f'SELECT COUNT(*) FROM {table}').fetchone()[0]
        for table in TABLES if table in existing
    }


def check_overlaps(conn: sqlite3.Connection) -> dict:
    rows = conn.execute('''
        SELECT a.loft_id, a.booking_reference as first_ref, b.booking_reference as second_ref,
               a.check_in_date, a.check_out_date
        FROM reservations a
        JOIN reservations b
          ON a.loft_id = b.loft_id AND a.id < b.id
         AND a.check_in_date < b.check_out_date AND a.check_out_date > b.check_in_date
        WHERE a.status = 'confirmed' AND b.status = 'confirmed'
    ''').fetchall()
    return issue(
        'Overlapping confirmed reservations', rows,
        lambda r: f"loft={r['loft_id']} {r['first_ref']} / {r['second_ref']} ({r['check_in_date']})"
    )


def check_orphans(conn: sqlite3.Connection) -> list:
    reservations = conn.execute('''
        SELECT r.booking_reference FROM reservations r
        LEFT JOIN lofts l ON r.loft_id = l.id
        WHERE l.id IS NULL
    ''').fetchall()
    lofts = conn.execute('''
        SELECT l.id, l.name FROM lofts l
        LEFT JOIN loft_owners o ON l.owner_id = o.id
        LEFT JOIN users u ON l.partner_id = u.id
        WHERE (l.owner_id IS NOT NULL AND o.id IS NULL)
           OR (l.partner_id IS NOT NULL AND u.id IS NULL)
    ''').fetchall()
    return [
        issue('Reservations without loft', reservations, lambda r: r['booking_reference']),
        issue('Lofts with missing owner or partner', lofts, lambda r: f"{r['id']} {r['name']}"),
    ]


def check_expired_locks(conn: sqlite3.Connection) -> dict:
    rows = conn.execute('''
        SELECT id, loft_id, expires_at FROM reservation_locks
        WHERE expires_at < strftime('%Y-%m-%d %H:%M:%S', 'now', 'localtime')
    ''').fetchall()
    result = issue('Expired reservation locks', rows, lambda r: f"{r['id']} loft={r['loft_id']}")
    if rows:
        result['severity'] = 'warn'
    return result


def main():
    parser = argparse.ArgumentParser(description='Inspect a LoftBook database')
    parser.add_argument('--db-path', type=str, default=None,
                        help=f'Path to SQLite database file (default: DATABASE_PATH or {DEFAULT_DB_PATH})')
    args = parser.parse_args()

    db_path = args.db_path or os.environ.get('DATABASE_PATH') or str(DEFAULT_DB_PATH)
    if not os.path.exists(db_path):
        print(f"Error: Database not found: {db_path}")
        sys.exit(1)

    conn = get_connection(db_path)
    try:
        counts = table_counts(conn)
        results = [check_overlaps(conn), *check_orphans(conn), check_expired_locks(conn)]
    finally:
        conn.close()

    print(f"Database: {db_path}\n")
    for table, count in counts.items():
        print(f"  {table:<24} {count:>8}")
    print()

    for r in results:
        icon = {'ok': '[OK]', 'warn': '[WARN]', 'fail': '[FAIL]'}.get(r['severity'], '[?]')
        print(f"{icon} {r['check']} ({r['count']} issues)")
        for d in r['details'][:3]:
            print(f"    -> {d}")

    if any(r['severity'] == 'fail' for r in results):
        sys.exit(2)


if __name__ == '__main__':
    main()
