"""
Lofts blueprint initialization.
Registers the public booking API (catalog, availability, pricing,
reservations, notifications, currencies) under /api.

Individual route logic is in:
- routes/lofts.py - Catalog search and loft detail
- routes/availability.py - Availability checks, calendar and date locks
- routes/pricing.py - Stay price quotes
- routes/reservations.py - Booking lifecycle and guest messages
- routes/notifications.py - In-app notifications
- routes/currencies.py - Currency list and conversion
"""

from flask import Blueprint

lofts_bp = Blueprint('lofts', __name__)

from blueprints.lofts.routes import lofts  # noqa: E402
from blueprints.lofts.routes import availability  # noqa: E402
from blueprints.lofts.routes import pricing  # noqa: E402
from blueprints.lofts.routes import reservations  # noqa: E402
from blueprints.lofts.routes import notifications  # noqa: E402
from blueprints.lofts.routes import currencies  # noqa: E402

lofts.register_routes(lofts_bp)
availability.register_routes(lofts_bp)
pricing.register_routes(lofts_bp)
reservations.register_routes(lofts_bp)
notifications.register_routes(lofts_bp)
currencies.register_routes(lofts_bp)
