"""
Pytest configuration and fixtures.
Ensures tests use an isolated test database, not the production database.
"""

import os
import pytest
import tempfile
from datetime import date, timedelta

# Set test database path BEFORE importing app
# This ensures all tests use an isolated database
TEST_DB_PATH = os.path.join(tempfile.gettempdir(), 'loftbook_test.db')
os.environ['DATABASE_PATH'] = TEST_DB_PATH


@pytest.fixture(scope='session', autouse=True)
def setup_test_environment():
    """Set up test environment before any tests run."""
    os.environ['DATABASE_PATH'] = TEST_DB_PATH
    os.environ['FLASK_ENV'] = 'test'

    yield

    # Cleanup: remove test database after all tests
    for suffix in ('', '-wal', '-shm'):
        path = TEST_DB_PATH + suffix
        if os.path.exists(path):
            try:
                os.remove(path)
            except PermissionError:
                pass  # Windows may have file locked


@pytest.fixture
def app():
    """Create test application with isolated database."""
    from app import create_app
    from database import init_db

    os.environ['DATABASE_PATH'] = TEST_DB_PATH

    app = create_app('test')
    app.config['TESTING'] = True
    app.config['WTF_CSRF_ENABLED'] = False
    app.config['DATABASE_PATH'] = TEST_DB_PATH

    with app.app_context():
        init_db()
        yield app


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


def login(client, username, password):
    return client.post('/login', json={'username': username, 'password': password})


@pytest.fixture
def authenticated_client(app, client):
    """Test client logged in as the seeded admin."""
    login(client, 'admin', 'admin123')
    return client


@pytest.fixture
def partner_user(app):
    """A verified partner account."""
    from blueprints.admin.services import create_account
    from models.partner import create_partner_profile, set_verification_status

    user_id = create_account('partner1', 'partner1@example.com', 'Partner123', role_name='partner',
                             full_name='Karim Haddad')
    create_partner_profile(user_id, 'Haddad Lofts', 'company')
    set_verification_status(user_id, 'verified', verified_by=1)
    return user_id


@pytest.fixture
def partner_client(app, client, partner_user):
    """Test client logged in as the verified partner."""
    login(client, 'partner1', 'Partner123')
    return client


@pytest.fixture
def client_user(app):
    """A guest (client role) account."""
    from blueprints.admin.services import create_account

    return create_account('guest1', 'guest1@example.com', 'Guest1234', role_name='client',
                          full_name='Amina Benali')


@pytest.fixture
def client_user_client(app, client, client_user):
    """Test client logged in as the guest."""
    login(client, 'guest1', 'Guest1234')
    return client


@pytest.fixture
def loft(app, partner_user):
    """A published loft owned by the partner, priced 10,000 DZD a night."""
    from models.loft import create_loft, get_loft_by_id

    loft_id = create_loft(
        name='Loft Hydra',
        address='12 Rue des Pins, Hydra',
        description='Bright loft with a terrace',
        price_per_night=10000,
        cleaning_fee=2000,
        tax_rate=0.19,
        currency_code='DZD',
        partner_id=partner_user,
        zone_area_id=1,
        max_guests=4,
        is_published=True,
        minimum_stay=1
    )
    return get_loft_by_id(loft_id)


@pytest.fixture
def stay_dates():
    """A three-night stay starting 30 days from now."""
    check_in = date.today() + timedelta(days=30)
    return check_in.isoformat(), (check_in + timedelta(days=3)).isoformat()


@pytest.fixture
def reservation_data(loft, stay_dates):
    check_in, check_out = stay_dates
    return {
        'loft_id': loft['id'],
        'check_in_date': check_in,
        'check_out_date': check_out,
        'guest_name': 'Amina Benali',
        'guest_email': 'amina@example.com',
        'guest_phone': '+213555123456',
        'guest_nationality': 'DZ',
        'guest_count': 2,
        'special_requests': 'Late arrival'
    }
