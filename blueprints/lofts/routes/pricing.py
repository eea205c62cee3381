"""
Pricing API endpoints for stay quotes.
"""

from flask import request

from blueprints.lofts.routes import can_view_loft
from blueprints.lofts.services.availability_service import validate_date_range
from blueprints.lofts.services.pricing_service import calculate_stay_price, PriceFormatter
from models.loft import get_loft_by_id
from utils.api_response import api_success, api_error, domain_error
from utils.exceptions import ValidationError, NotFoundError
from utils.messages import get_message


def register_routes(bp):
    """Register pricing routes on the blueprint."""

    @bp.route('/lofts/<int:loft_id>/pricing', methods=['GET'])
    def loft_pricing(loft_id):
        """
        Price a stay.

        Query params:
            check_in, check_out: ISO dates (required)
            guests: Number of guests (default 1)
            locale: en, fr or ar for the formatted lines

        Response JSON:
        {
            "success": true,
            "data": {
                "nights": 3, "subtotal": 36000.0, "service_fee": 4320.0,
                "taxes": 6840.0, "total": 50160.0, "currency": "DZD",
                "nightly_rates": [...],
                "lines": ["12,000.00 DA x 3 nights = 36,000.00 DA", ...],
                "summary": "..."
            }
        }
        """
        loft = get_loft_by_id(loft_id)
        if not loft or not can_view_loft(loft):
            return api_error(get_message('loft_not_found'), status=404)

        check_in, check_out = request.args.get('check_in'), request.args.get('check_out')
        if not check_in or not check_out:
            return api_error(get_message('dates_required'))

        guests = request.args.get('guests', 1, type=int)
        if guests < 1:
            return api_error('guests must be at least 1')
        if guests > loft['max_guests']:
            return api_error(f"This loft accepts at most {loft['max_guests']} guests")

        locale = request.args.get('locale', 'en')
        try:
            start, end = validate_date_range(check_in, check_out)
            breakdown = calculate_stay_price(loft_id, start, end, guests)
        except (ValidationError, NotFoundError) as e:
            return domain_error(e)

        breakdown['lines'] = PriceFormatter.format_pricing_breakdown(breakdown, locale)
        breakdown['summary'] = PriceFormatter.format_price_summary(breakdown, locale)
        return api_success(data=breakdown)
