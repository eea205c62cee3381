"""
Database schema definitions.
Table creation, indexes, and structure management.
"""


def drop_tables(db):
    """Drop all existing tables."""
    # Disable foreign key constraints before dropping
    db.execute('PRAGMA foreign_keys = OFF')

    tables = [
        'schema_migrations',
        'audit_access_log',
        'audit_log',
        'notifications',
        'reservation_messages',
        'loft_reviews',
        'reservation_locks',
        'reservations',
        'customers',
        'pricing_rules',
        'loft_availability',
        'lofts',
        'zone_areas',
        'loft_owners',
        'partner_profiles',
        'currencies',
        'role_permissions',
        'permissions',
        'roles',
        'users'
    ]

    for table in tables:
        db.execute(f'DROP TABLE IF EXISTS {table}')

    # Re-enable foreign key constraints
    db.execute('PRAGMA foreign_keys = ON')


def create_tables(db):
    """Create all database tables."""

    # 1. Users & Auth Tables
    db.execute('''
        CREATE TABLE roles (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT UNIQUE NOT NULL,
            display_name TEXT NOT NULL,
            description TEXT,
            is_system INTEGER DEFAULT 0,
            active INTEGER DEFAULT 1,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    db.execute('''
        CREATE TABLE users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            username TEXT UNIQUE NOT NULL,
            email TEXT UNIQUE NOT NULL,
            password_hash TEXT NOT NULL,
            full_name TEXT,
            phone TEXT,
            role_id INTEGER REFERENCES roles(id),
            locale TEXT DEFAULT 'fr',
            active INTEGER DEFAULT 1,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
            last_login TEXT
        )
    ''')

    db.execute('''
        CREATE TABLE permissions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            code TEXT UNIQUE NOT NULL,
            name TEXT NOT NULL,
            description TEXT,
            module TEXT NOT NULL,
            active INTEGER DEFAULT 1
        )
    ''')

    db.execute('''
        CREATE TABLE role_permissions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            role_id INTEGER NOT NULL REFERENCES roles(id) ON DELETE CASCADE,
            permission_id INTEGER NOT NULL REFERENCES permissions(id) ON DELETE CASCADE,
            granted_at TEXT DEFAULT CURRENT_TIMESTAMP,
            UNIQUE(role_id, permission_id)
        )
    ''')

    db.execute('''
        CREATE TABLE partner_profiles (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER UNIQUE NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            business_name TEXT NOT NULL,
            business_type TEXT NOT NULL DEFAULT 'individual'
                CHECK(business_type IN ('individual', 'company')),
            tax_id TEXT,
            address TEXT,
            phone TEXT,
            verification_status TEXT NOT NULL DEFAULT 'pending'
                CHECK(verification_status IN ('pending', 'verified', 'rejected')),
            rejection_reason TEXT,
            verified_at TEXT,
            verified_by INTEGER REFERENCES users(id),
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    # 2. Currencies
    db.execute('''
        CREATE TABLE currencies (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            code TEXT UNIQUE NOT NULL,
            name TEXT NOT NULL,
            symbol TEXT NOT NULL,
            ratio REAL NOT NULL DEFAULT 1,
            is_default INTEGER DEFAULT 0,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    # 3. Property Tables
    db.execute('''
        CREATE TABLE loft_owners (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            email TEXT,
            phone TEXT,
            address TEXT,
            ownership_type TEXT NOT NULL DEFAULT 'third_party'
                CHECK(ownership_type IN ('company', 'third_party')),
            user_id INTEGER REFERENCES users(id) ON DELETE SET NULL,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    db.execute('''
        CREATE TABLE zone_areas (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT UNIQUE NOT NULL,
            city TEXT,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    db.execute('''
        CREATE TABLE lofts (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            address TEXT NOT NULL,
            description TEXT,
            price_per_month REAL,
            price_per_night REAL NOT NULL DEFAULT 0 CHECK(price_per_night >= 0),
            cleaning_fee REAL NOT NULL DEFAULT 0,
            tax_rate REAL,
            currency_code TEXT NOT NULL DEFAULT 'DZD',
            status TEXT NOT NULL DEFAULT 'available'
                CHECK(status IN ('available', 'occupied', 'maintenance')),
            owner_id INTEGER REFERENCES loft_owners(id) ON DELETE SET NULL,
            partner_id INTEGER REFERENCES users(id) ON DELETE SET NULL,
            company_percentage REAL NOT NULL DEFAULT 50,
            owner_percentage REAL NOT NULL DEFAULT 50,
            zone_area_id INTEGER REFERENCES zone_areas(id),
            max_guests INTEGER NOT NULL DEFAULT 2,
            bedrooms INTEGER DEFAULT 1,
            bathrooms INTEGER DEFAULT 1,
            area_sqm REAL,
            amenities TEXT,
            is_published INTEGER DEFAULT 0,
            minimum_stay INTEGER NOT NULL DEFAULT 1,
            maximum_stay INTEGER,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
            CHECK(company_percentage + owner_percentage = 100)
        )
    ''')

    db.execute('''
        CREATE TABLE loft_availability (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            loft_id INTEGER NOT NULL REFERENCES lofts(id) ON DELETE CASCADE,
            date TEXT NOT NULL,
            is_available INTEGER NOT NULL DEFAULT 1,
            price_override REAL,
            minimum_stay INTEGER DEFAULT 1,
            blocked_reason TEXT,
            notes TEXT,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
            UNIQUE(loft_id, date)
        )
    ''')

    db.execute('''
        CREATE TABLE pricing_rules (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            loft_id INTEGER NOT NULL REFERENCES lofts(id) ON DELETE CASCADE,
            rule_name TEXT NOT NULL,
            rule_type TEXT NOT NULL CHECK(rule_type IN (
                'seasonal', 'weekend', 'holiday', 'event', 'length_of_stay', 'advance_booking'
            )),
            start_date TEXT,
            end_date TEXT,
            days_of_week TEXT,
            minimum_nights INTEGER,
            maximum_nights INTEGER,
            advance_booking_days INTEGER,
            adjustment_type TEXT NOT NULL
                CHECK(adjustment_type IN ('percentage', 'fixed_amount', 'override')),
            adjustment_value REAL NOT NULL,
            priority INTEGER DEFAULT 0,
            is_active INTEGER DEFAULT 1,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    # 4. Booking Tables
    db.execute('''
        CREATE TABLE customers (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            first_name TEXT NOT NULL,
            last_name TEXT,
            email TEXT,
            phone TEXT,
            nationality TEXT,
            status TEXT DEFAULT 'active',
            notes TEXT,
            user_id INTEGER REFERENCES users(id) ON DELETE SET NULL,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    db.execute('''
        CREATE TABLE reservations (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            booking_reference TEXT UNIQUE NOT NULL,
            loft_id INTEGER NOT NULL REFERENCES lofts(id),
            customer_id INTEGER REFERENCES customers(id),
            client_user_id INTEGER REFERENCES users(id) ON DELETE SET NULL,
            guest_name TEXT NOT NULL,
            guest_email TEXT NOT NULL,
            guest_phone TEXT NOT NULL,
            guest_nationality TEXT,
            guest_count INTEGER NOT NULL DEFAULT 1 CHECK(guest_count >= 1),
            check_in_date TEXT NOT NULL,
            check_out_date TEXT NOT NULL,
            special_requests TEXT,
            base_price REAL NOT NULL DEFAULT 0,
            cleaning_fee REAL NOT NULL DEFAULT 0,
            service_fee REAL NOT NULL DEFAULT 0,
            taxes REAL NOT NULL DEFAULT 0,
            total_amount REAL NOT NULL DEFAULT 0,
            currency_code TEXT NOT NULL DEFAULT 'DZD',
            status TEXT NOT NULL DEFAULT 'pending'
                CHECK(status IN ('pending', 'confirmed', 'cancelled', 'completed')),
            payment_status TEXT NOT NULL DEFAULT 'pending'
                CHECK(payment_status IN ('pending', 'paid', 'refunded', 'failed')),
            cancellation_reason TEXT,
            cancelled_at TEXT,
            confirmed_at TEXT,
            completed_at TEXT,
            created_by INTEGER REFERENCES users(id),
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
            CHECK(check_out_date > check_in_date)
        )
    ''')

    db.execute('''
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

    db.execute('''
        CREATE TABLE reservation_messages (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            reservation_id INTEGER NOT NULL REFERENCES reservations(id) ON DELETE CASCADE,
            message_type TEXT NOT NULL,
            subject TEXT NOT NULL,
            message TEXT NOT NULL,
            sender_id INTEGER REFERENCES users(id) ON DELETE SET NULL,
            sender_type TEXT NOT NULL DEFAULT 'partner',
            is_automated INTEGER DEFAULT 0,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    db.execute('''
        CREATE TABLE loft_reviews (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            loft_id INTEGER NOT NULL REFERENCES lofts(id) ON DELETE CASCADE,
            reservation_id INTEGER REFERENCES reservations(id) ON DELETE SET NULL,
            client_user_id INTEGER REFERENCES users(id) ON DELETE SET NULL,
            rating INTEGER NOT NULL CHECK(rating BETWEEN 1 AND 5),
            comment TEXT,
            response TEXT,
            published INTEGER DEFAULT 1,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    # 5. Notifications
    db.execute('''
        CREATE TABLE notifications (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            type TEXT NOT NULL,
            title TEXT NOT NULL,
            message TEXT NOT NULL,
            link TEXT,
            priority TEXT NOT NULL DEFAULT 'medium'
                CHECK(priority IN ('low', 'medium', 'high', 'urgent')),
            is_read INTEGER DEFAULT 0,
            read_at TEXT,
            sender_id INTEGER REFERENCES users(id) ON DELETE SET NULL,
            reservation_id INTEGER REFERENCES reservations(id) ON DELETE SET NULL,
            metadata TEXT,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    # 6. Audit Tables
    db.execute('''
        CREATE TABLE audit_log (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER REFERENCES users(id) ON DELETE SET NULL,
            user_email TEXT,
            action TEXT NOT NULL,
            entity_type TEXT NOT NULL,
            entity_id INTEGER,
            changes TEXT,
            changed_fields TEXT,
            ip_address TEXT,
            user_agent TEXT,
            integrity_hash TEXT,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    db.execute('''
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

    # 7. Migration bookkeeping
    db.execute('''
        CREATE TABLE schema_migrations (
            name TEXT PRIMARY KEY,
            applied_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    ''')


def create_indexes(db):
    """Create performance indexes."""

    # Loft indexes
    db.execute('CREATE INDEX idx_lofts_partner ON lofts(partner_id)')
    db.execute('CREATE INDEX idx_lofts_owner ON lofts(owner_id)')
    db.execute('CREATE INDEX idx_lofts_published ON lofts(is_published, status)')

    # Availability indexes
    db.execute('CREATE INDEX idx_availability_loft_date ON loft_availability(loft_id, date)')
    db.execute('CREATE INDEX idx_pricing_rules_loft ON pricing_rules(loft_id, is_active)')

    # Reservation indexes
    db.execute('CREATE INDEX idx_reservations_dates ON reservations(loft_id, check_in_date, check_out_date)')
    db.execute('CREATE INDEX idx_reservations_status ON reservations(status)')
    db.execute('CREATE INDEX idx_reservations_client ON reservations(client_user_id)')
    db.execute('CREATE INDEX idx_locks_loft ON reservation_locks(loft_id, expires_at)')

    # Customer indexes
    db.execute('CREATE INDEX idx_customers_email ON customers(email)')
    db.execute('CREATE INDEX idx_customers_phone ON customers(phone)')

    # Notification indexes
    db.execute('CREATE INDEX idx_notifications_user ON notifications(user_id, is_read)')

    # Permission indexes
    db.execute('CREATE INDEX idx_permissions_code ON permissions(code)')
    db.execute('CREATE INDEX idx_role_perms ON role_permissions(role_id, permission_id)')

    # Audit indexes
    db.execute('CREATE INDEX idx_audit_entity ON audit_log(entity_type, entity_id)')
    db.execute('CREATE INDEX idx_audit_created ON audit_log(created_at)')
    db.execute('CREATE INDEX idx_audit_user ON audit_log(user_id)')
    db.execute('CREATE INDEX idx_audit_access_user ON audit_access_log(user_id, created_at)')
