"""
Flask application configuration classes.
Provides configuration for development, production, and testing environments.
"""

import os
from datetime import timedelta


def _clone_environments() -> dict:
    """Read named clone environments (DB URL or SQLite path) from env vars."""
    environments = {}
    for name in ('prod', 'test', 'dev'):
        value = os.environ.get(f'CLONE_{name.upper()}_DATABASE')
        if value:
            environments[name] = value
    return environments


class Config:
    """Base configuration class with common settings."""

    # Secret key for session management and CSRF protection
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # Database configuration
    DATABASE_PATH = os.environ.get('DATABASE_PATH') or 'instance/loftbook.db'

    # Security settings
    WTF_CSRF_ENABLED = True
    WTF_CSRF_TIME_LIMIT = 3600  # CSRF token expires after 1 hour
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    SESSION_COOKIE_SECURE = False  # Set to True in production with HTTPS
    PERMANENT_SESSION_LIFETIME = timedelta(
        hours=int(os.environ.get('SESSION_TIMEOUT_HOURS', 8))
    )

    MAX_CONTENT_LENGTH = int(os.environ.get('MAX_CONTENT_LENGTH', 16 * 1024 * 1024))  # 16MB

    # Pagination
    ITEMS_PER_PAGE = 20

    # Timezone
    TIMEZONE = os.environ.get('TIMEZONE', 'Africa/Algiers')

    # Pricing
    DEFAULT_CURRENCY = os.environ.get('DEFAULT_CURRENCY', 'DZD')
    SERVICE_FEE_RATE = 0.12
    DEFAULT_TAX_RATE = 0.19
    CITY_TAX_PER_NIGHT = 2.0
    TOURIST_TAX_PER_NIGHT = 1.5

    # Booking
    RESERVATION_LOCK_MINUTES = 15
    MAX_ADVANCE_BOOKING_DAYS = 730

    # Audit
    AUDIT_RETENTION_DAYS = int(os.environ.get('AUDIT_RETENTION_DAYS', 365))
    AUDIT_EXPORT_BATCH_SIZE = 1000
    AUDIT_EXPORT_MAX_BATCHES = 100
    AUDIT_SUSPICIOUS_THRESHOLD = 50

    # Database cloning
    CLONE_LOCK_TIMEOUT_SECONDS = int(os.environ.get('CLONE_LOCK_TIMEOUT_SECONDS', 1800))
    CLONE_ENVIRONMENTS = _clone_environments()
    CLONE_BACKUP_DIR = os.environ.get('CLONE_BACKUP_DIR') or 'instance/backups'

    # Application settings
    APP_NAME = 'LoftBook'
    APP_VERSION = '1.0.0'


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG = True
    TESTING = False
    TEMPLATES_AUTO_RELOAD = True
    SESSION_COOKIE_SECURE = False
    WTF_CSRF_SSL_STRICT = False


class ProductionConfig(Config):
    """Production environment configuration."""

    DEBUG = False
    TESTING = False
    SESSION_COOKIE_SECURE = os.environ.get('SESSION_COOKIE_SECURE', 'true').lower() == 'true'
    WTF_CSRF_SSL_STRICT = SESSION_COOKIE_SECURE

    SECRET_KEY = os.environ.get('SECRET_KEY') or Config.SECRET_KEY
    DATABASE_PATH = os.environ.get('DATABASE_PATH') or Config.DATABASE_PATH

    PREFERRED_URL_SCHEME = 'https' if SESSION_COOKIE_SECURE else 'http'

    @classmethod
    def validate(cls) -> None:
        """Validate that required production environment variables are set."""
        secret_key = os.environ.get('SECRET_KEY')
        if not secret_key:
            raise ValueError("SECRET_KEY environment variable must be set in production")
        if len(secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters in production")
        if not os.environ.get('DATABASE_PATH'):
            raise ValueError("DATABASE_PATH environment variable must be set in production")


class TestConfig(Config):
    """Testing environment configuration."""

    TESTING = True
    DEBUG = True
    WTF_CSRF_ENABLED = False  # Disable CSRF for tests
    DATABASE_PATH = os.environ.get('DATABASE_PATH', ':memory:')
    SECRET_KEY = 'test-secret-key'
    CLONE_ENVIRONMENTS = {}
    CLONE_LOCK_TIMEOUT_SECONDS = 5


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'test': TestConfig,
    'default': DevelopmentConfig
}
