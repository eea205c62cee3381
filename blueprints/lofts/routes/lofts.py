"""
Loft catalog API endpoints.
"""

import logging

from flask import request

from blueprints.lofts.routes import can_view_loft
from blueprints.lofts.services.availability_service import check_availability, validate_date_range
from blueprints.lofts.services.currency_service import convert_amount
from blueprints.lofts.services.price_display import format_contextual_price, format_nightly_rate
from models.loft import get_loft_by_id, search_lofts
from utils.api_response import api_success, api_error, domain_error
from utils.exceptions import CurrencyError, ValidationError
from utils.messages import get_message

logger = logging.getLogger(__name__)


def _display_fields(loft: dict, currency: str, locale: str) -> dict:
    """Nightly price converted to the requested currency and formatted."""
    price = loft['price_per_night']
    source = loft.get('currency_code') or 'DZD'
    if currency and currency.upper() != source:
        price = convert_amount(price, source, currency.upper())
        source = currency.upper()
    return {
        'display_currency': source,
        'display_price': price,
        'display_price_formatted': format_contextual_price(price, source, 'card', locale),
        'nightly_rate_formatted': format_nightly_rate(price, source, locale)
    }


def register_routes(bp):
    """Register loft catalog routes on the blueprint."""

    @bp.route('/lofts', methods=['GET'])
    def search_lofts_api():
        """
        Search published lofts.

        Query params:
            city, zone_area_id, guests, min_price, max_price, q
            check_in, check_out: keep only lofts free for the stay
            currency: convert displayed prices (DZD, EUR, USD)
            locale: en, fr or ar for formatted prices

        Response JSON:
        {
            "success": true,
            "data": [{"id": 1, "name": "...", "display_price_formatted": "12K DA", ...}],
            "count": 1
        }
        """
        args = request.args
        try:
            lofts = search_lofts(
                city=args.get('city'),
                zone_area_id=args.get('zone_area_id', type=int),
                guests=args.get('guests', type=int),
                min_price=args.get('min_price', type=float),
                max_price=args.get('max_price', type=float),
                query=args.get('q')
            )

            check_in, check_out = args.get('check_in'), args.get('check_out')
            if check_in and check_out:
                start, end = validate_date_range(check_in, check_out)
                lofts = [loft for loft in lofts
                         if check_availability(loft['id'], start, end)['is_available']]

            currency = args.get('currency')
            locale = args.get('locale', 'en')
            data = [{**loft, **_display_fields(loft, currency, locale)} for loft in lofts]
        except (ValidationError, CurrencyError) as e:
            return domain_error(e)

        return api_success(data=data, count=len(data))

    @bp.route('/lofts/<int:loft_id>', methods=['GET'])
    def get_loft_api(loft_id):
        """Loft detail. Unpublished lofts are only visible to who manages them."""
        loft = get_loft_by_id(loft_id)
        if not loft or not can_view_loft(loft):
            return api_error(get_message('loft_not_found'), status=404)

        try:
            loft.update(_display_fields(loft, request.args.get('currency'), request.args.get('locale', 'en')))
        except CurrencyError as e:
            return domain_error(e)
        return api_success(data=loft)
