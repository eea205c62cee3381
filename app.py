"""
LoftBook - Loft Booking Platform
Flask application factory and initialization
"""

import os
import click
import logging
from flask import Flask, render_template, g
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Import configuration
from config import config

# Import extensions
from extensions import login_manager, csrf

# Import database functions
from database import close_db, init_db


def create_app(config_name=None):
    """
    Application factory for Flask app.

    Args:
        config_name: Configuration name ('development', 'production', 'test')

    Returns:
        Flask application instance
    """
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    app = Flask(__name__)

    app.config.from_object(config[config_name])

    if config_name == 'production':
        config[config_name].validate()

    initialize_extensions(app)
    register_blueprints(app)
    register_error_handlers(app)
    register_cli_commands(app)
    register_context_processors(app)
    register_teardown_handlers(app)
    configure_logging(app)

    return app


def initialize_extensions(app):
    """Initialize Flask extensions."""
    login_manager.init_app(app)
    csrf.init_app(app)


def register_blueprints(app):
    """Register Flask blueprints."""
    from blueprints.auth.routes import auth_bp
    from blueprints.admin.routes import admin_bp
    from blueprints.partner.routes import partner_bp
    from blueprints.lofts import lofts_bp
    from blueprints.api.routes import api_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp, url_prefix='/admin')
    app.register_blueprint(partner_bp, url_prefix='/partner')
    app.register_blueprint(lofts_bp, url_prefix='/api')
    app.register_blueprint(api_bp, url_prefix='/api')

    @app.route('/')
    def index():
        """Send users to their home area."""
        from flask import redirect, url_for
        from flask_login import current_user

        if not current_user.is_authenticated:
            return redirect(url_for('auth.login'))
        if current_user.role_name == 'partner':
            return redirect(url_for('partner.dashboard'))
        if current_user.role_name in ('admin', 'manager'):
            return redirect(url_for('admin.dashboard'))
        return redirect(url_for('auth.profile'))


def register_error_handlers(app):
    """Register error handlers. API callers get JSON, browsers get templates."""
    from utils.api_response import api_error, wants_json

    @app.errorhandler(401)
    def unauthorized_error(error):
        """Handle 401 errors."""
        if wants_json():
            return api_error('Authentication required', status=401)
        from flask import redirect, url_for
        return redirect(url_for('auth.login'))

    @app.errorhandler(404)
    def not_found_error(error):
        """Handle 404 errors."""
        if wants_json():
            return api_error('Resource not found', status=404)
        return render_template('errors/404.html'), 404

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 errors."""
        # Rollback database on error
        db = g.get('db')
        if db:
            db.rollback()
        app.logger.error(f'Internal error: {error}')
        if wants_json():
            return api_error('Internal server error', status=500)
        return render_template('errors/500.html'), 500

    @app.errorhandler(403)
    def forbidden_error(error):
        """Handle 403 errors."""
        if wants_json():
            return api_error('You do not have permission to perform this action', status=403)
        return render_template('errors/403.html'), 403

    from flask_wtf.csrf import CSRFError

    @app.errorhandler(CSRFError)
    def csrf_error(error):
        """Handle missing or invalid CSRF tokens."""
        return api_error(error.description, status=400)

    @app.errorhandler(405)
    def method_not_allowed(error):
        """Handle 405 errors."""
        return api_error('Method not allowed', status=405)


def register_cli_commands(app):
    """Register Flask CLI commands."""

    @app.cli.command('init-db')
    def init_db_command():
        """Initialize database with schema and seed data."""
        click.echo('Initializing database...')
        with app.app_context():
            init_db()
        click.echo('Database initialized successfully!')

    @app.cli.command('migrate')
    def migrate_command():
        """Run pending schema migrations."""
        from database.migrations import run_all_migrations

        with app.app_context():
            result = run_all_migrations()
        click.echo(f"{result['applied']} applied, {result['skipped']} skipped, {result['failed']} failed")

    @app.cli.command('create-user')
    @click.argument('username')
    @click.argument('email')
    @click.option('--role', default='admin', help='Role name (admin, manager, partner, client)')
    @click.password_option()
    def create_user_command(username, email, role, password):
        """Create an account with the given role (validated and audited)."""
        from blueprints.admin.services import create_account
        from utils.exceptions import ValidationError

        with app.app_context():
            try:
                user_id = create_account(username, email, password, role_name=role)
            except ValidationError as e:
                raise click.ClickException(str(e))
        click.echo(f"Created {role} {username} (id {user_id})")

    @app.cli.command('cleanup-audit')
    @click.option('--days', type=int, default=None, help='Retention in days')
    def cleanup_audit_command(days):
        """Delete audit logs older than the retention window."""
        from models.audit_log import cleanup_old_logs

        with app.app_context():
            deleted = cleanup_old_logs(days or app.config['AUDIT_RETENTION_DAYS'])
        click.echo(f'Deleted {deleted} audit log entries')

    @app.cli.command('sync-availability')
    def sync_availability_command():
        """Release expired locks and mark confirmed stays as booked."""
        from models.loft import get_all_lofts
        from blueprints.lofts.services.availability_service import synchronize_availability

        with app.app_context():
            total = 0
            for loft in get_all_lofts():
                total += synchronize_availability(loft['id'])
        click.echo(f'Synchronized {total} booked dates')


def register_context_processors(app):
    """Register template context processors."""

    @app.context_processor
    def utility_processor():
        """Inject application info into templates."""
        from datetime import datetime

        return {
            'current_year': datetime.now().year,
            'app_name': app.config.get('APP_NAME', 'LoftBook'),
            'app_version': app.config.get('APP_VERSION', '1.0.0')
        }


def register_teardown_handlers(app):
    """Register teardown handlers."""

    @app.teardown_appcontext
    def teardown_db(error):
        """Close database connection at end of request."""
        close_db(error)


def configure_logging(app):
    """Configure application logging."""
    if not app.debug and not app.testing:
        # Production logging
        if not os.path.exists('logs'):
            os.mkdir('logs')

        file_handler = logging.FileHandler('logs/loftbook.log')
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)
        logging.getLogger().addHandler(file_handler)

        app.logger.setLevel(logging.INFO)
        app.logger.info('LoftBook startup')
    else:
        app.logger.setLevel(logging.DEBUG)


# Create application instance for development server
if __name__ == '__main__':
    app = create_app()
    app.run(host='0.0.0.0', debug=True)
