"""
Database seed data.
Initial data population for fresh database installations.
"""

from werkzeug.security import generate_password_hash


PERMISSIONS = [
    # (code, name, module)
    ('lofts.view', 'View lofts', 'lofts'),
    ('lofts.manage', 'Manage lofts', 'lofts'),
    ('availability.manage', 'Manage availability', 'lofts'),
    ('pricing.manage', 'Manage pricing rules', 'lofts'),
    ('reservations.view', 'View reservations', 'reservations'),
    ('reservations.create', 'Create reservations', 'reservations'),
    ('reservations.manage', 'Manage reservations', 'reservations'),
    ('notifications.view', 'View notifications', 'notifications'),
    ('partner.dashboard.view', 'Partner dashboard', 'partner'),
    ('currencies.manage', 'Manage currencies', 'admin'),
    ('admin.users.view', 'View users', 'admin'),
    ('admin.users.manage', 'Manage users', 'admin'),
    ('admin.partners.validate', 'Validate partners', 'admin'),
    ('admin.owners.manage', 'Manage owners', 'admin'),
    ('admin.audit.view', 'View audit logs', 'admin'),
    ('admin.audit.export', 'Export audit logs', 'admin'),
    ('admin.audit.manage', 'Audit retention and integrity', 'admin'),
    ('admin.database.clone', 'Clone databases', 'admin'),
]

ROLE_PERMISSIONS = {
    'admin': [code for code, _, _ in PERMISSIONS],
    'manager': [
        'lofts.view', 'lofts.manage', 'availability.manage', 'pricing.manage',
        'reservations.view', 'reservations.create', 'reservations.manage',
        'notifications.view', 'currencies.manage',
        'admin.users.view', 'admin.partners.validate', 'admin.owners.manage',
        'admin.audit.view', 'admin.audit.export',
    ],
    'partner': [
        'lofts.view', 'lofts.manage', 'availability.manage', 'pricing.manage',
        'reservations.view', 'reservations.manage', 'notifications.view',
        'partner.dashboard.view',
    ],
    'client': [
        'lofts.view', 'reservations.view', 'reservations.create', 'notifications.view',
    ],
}


def seed_database(db):
    """Insert initial seed data."""

    # 1. Create Roles
    roles_data = [
        ('admin', 'Administrator', 'Full system access', 1),
        ('manager', 'Manager', 'Platform operations and partner validation', 1),
        ('partner', 'Partner', 'Property owner managing their own lofts', 1),
        ('client', 'Client', 'Guest booking lofts', 1)
    ]

    for name, display_name, description, is_system in roles_data:
        db.execute('''
            INSERT INTO roles (name, display_name, description, is_system)
            VALUES (?, ?, ?, ?)
        ''', (name, display_name, description, is_system))

    # 2. Create Permissions
    for code, name, module in PERMISSIONS:
        db.execute('''
            INSERT INTO permissions (code, name, module)
            VALUES (?, ?, ?)
        ''', (code, name, module))

    # 3. Assign permissions to roles
    for role_name, codes in ROLE_PERMISSIONS.items():
        role_id = db.execute('SELECT id FROM roles WHERE name = ?', (role_name,)).fetchone()[0]
        for code in codes:
            db.execute('''
                INSERT INTO role_permissions (role_id, permission_id)
                SELECT ?, id FROM permissions WHERE code = ?
            ''', (role_id, code))

    # 4. Create admin user (password: admin123)
    admin_role_id = db.execute("SELECT id FROM roles WHERE name = 'admin'").fetchone()[0]
    db.execute('''
        INSERT INTO users (username, email, password_hash, full_name, role_id)
        VALUES (?, ?, ?, ?, ?)
    ''', ('admin', 'admin@loftbook.local', generate_password_hash('admin123'),
          'Administrator', admin_role_id))

    # 5. Currencies (ratio relative to the default currency)
    currencies = [
        ('DZD', 'Algerian Dinar', 'DA', 1.0, 1),
        ('EUR', 'Euro', '€', 0.0067, 0),
        ('USD', 'US Dollar', '$', 0.0074, 0),
    ]
    for code, name, symbol, ratio, is_default in currencies:
        db.execute('''
            INSERT INTO currencies (code, name, symbol, ratio, is_default)
            VALUES (?, ?, ?, ?, ?)
        ''', (code, name, symbol, ratio, is_default))

    # 6. Zone areas
    for name, city in [('Hydra', 'Alger'), ('Bab Ezzouar', 'Alger'), ('Centre', 'Oran')]:
        db.execute('INSERT INTO zone_areas (name, city) VALUES (?, ?)', (name, city))

    db.commit()
