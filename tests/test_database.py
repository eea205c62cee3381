"""
Tests for schema creation, seed data and migrations.
"""

import sqlite3
import pytest

from database import get_db


def _tables():
    rows = get_db().execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
    return {row['name'] for row in rows}


class TestSchema:

    def test_tables_exist(self, app):
        expected = {
            'roles', 'users', 'permissions', 'role_permissions', 'partner_profiles',
            'currencies', 'loft_owners', 'zone_areas', 'lofts', 'loft_availability',
            'pricing_rules', 'customers', 'reservations', 'reservation_locks',
            'reservation_messages', 'notifications', 'audit_log', 'audit_access_log',
        }
        assert expected <= _tables()

    def test_reservation_status_is_checked(self, app, loft):
        with pytest.raises(sqlite3.IntegrityError):
            get_db().execute('''
                INSERT INTO reservations (booking_reference, loft_id, guest_name, guest_email,
                    guest_phone, check_in_date, check_out_date, total_amount, status)
                VALUES ('LB-20260101-ABCDEF', ?, 'A', 'a@example.com', '+213555000000',
                    '2026-01-01', '2026-01-03', 100, 'archived')
            ''', (loft['id'],))


class TestSeed:

    def test_roles_and_admin(self, app):
        db = get_db()
        roles = [row['name'] for row in db.execute('SELECT name FROM roles ORDER BY id')]
        assert roles == ['admin', 'manager', 'partner', 'client']

        admin = db.execute("SELECT u.*, r.name AS role_name FROM users u JOIN roles r ON r.id = u.role_id "
                           "WHERE username = 'admin'").fetchone()
        assert admin['id'] == 1
        assert admin['role_name'] == 'admin'

    def test_currencies(self, app):
        rows = get_db().execute('SELECT code, ratio, is_default FROM currencies ORDER BY id').fetchall()
        assert [tuple(row) for row in rows] == [('DZD', 1.0, 1), ('EUR', 0.0067, 0), ('USD', 0.0074, 0)]

    def test_role_permissions(self, app):
        from database.seed import ROLE_PERMISSIONS
        from utils.permissions import load_user_permissions

        assert set(load_user_permissions(1)) == set(ROLE_PERMISSIONS['admin'])
        assert 'admin.database.clone' in ROLE_PERMISSIONS['admin']
        assert 'admin.users.view' not in ROLE_PERMISSIONS['partner']


class TestMigrations:

    def test_fresh_schema_skips_everything(self, app):
        from database.migrations import run_all_migrations, MIGRATIONS

        result = run_all_migrations()
        assert result['total'] == len(MIGRATIONS)
        assert result['applied'] == 0
        assert result['failed'] == 0
        assert result['skipped'] == len(MIGRATIONS)

        recorded = get_db().execute('SELECT COUNT(*) FROM schema_migrations').fetchone()[0]
        assert recorded == len(MIGRATIONS)

    def test_applies_missing_pieces_once(self, app):
        from database.migrations import run_all_migrations
        from utils.permissions import load_user_permissions

        db = get_db()
        db.execute('DROP TABLE reservation_locks')
        db.execute('''
            DELETE FROM role_permissions WHERE permission_id =
                (SELECT id FROM permissions WHERE code = 'admin.database.clone')
        ''')
        db.execute("DELETE FROM permissions WHERE code = 'admin.database.clone'")
        db.commit()

        result = run_all_migrations()
        assert result['applied'] == 2
        assert ('reservation_locks_table', True, 'applied') in result['results']
        assert 'reservation_locks' in _tables()
        assert 'admin.database.clone' in load_user_permissions(1)

        assert run_all_migrations()['applied'] == 0
