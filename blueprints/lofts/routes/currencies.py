"""
Currency API endpoints.
"""

from flask import request
from flask_login import login_required

from blueprints.lofts.services.currency_service import get_currency_service, validate_amount
from blueprints.lofts.services.price_display import format_price
from models.currency import upsert_currency
from utils.api_response import api_success, api_error, get_json_body
from utils.audit import log_create
from utils.decorators import permission_required
from utils.exceptions import CurrencyError


def register_routes(bp):
    """Register currency routes on the blueprint."""

    @bp.route('/currencies', methods=['GET'])
    def list_currencies():
        """All currencies with their ratio to the default currency."""
        service = get_currency_service()
        return api_success(data=service.get_currencies(), default=service.get_default_currency()['code'])

    @bp.route('/currencies', methods=['POST'])
    @login_required
    @permission_required('currencies.manage')
    def save_currency():
        """
        Create or update a currency by code.

        Request JSON:
        {"code": "GBP", "name": "Pound Sterling", "symbol": "£", "ratio": 0.0057, "is_default": false}
        """
        data = get_json_body()
        code = (data.get('code') or '').strip().upper()
        name = (data.get('name') or '').strip()
        if len(code) != 3 or not code.isalpha():
            return api_error('Currency code must be 3 letters')
        if not name:
            return api_error('Currency name is required')

        try:
            ratio = validate_amount(data.get('ratio'))
        except CurrencyError as e:
            return api_error(str(e))
        if ratio == 0:
            return api_error('Ratio must be greater than zero')

        values = {
            'code': code,
            'name': name,
            'symbol': (data.get('symbol') or code).strip(),
            'ratio': ratio,
            'is_default': bool(data.get('is_default'))
        }
        currency_id = upsert_currency(**values)
        get_currency_service().clear_cache()
        log_create('currency', currency_id, values)

        return api_success(data={'id': currency_id, **values}, message='Currency saved', status=201)

    @bp.route('/currencies/convert', methods=['GET'])
    @login_required
    def convert_currency():
        """
        Convert an amount between currencies.

        Query params:
            amount, from, to (ISO codes), locale

        Response JSON:
        {"success": true, "data": {"amount": 1000.0, "from": "DZD", "to": "EUR",
                                   "rate": 0.0067, "converted": 6.7, "formatted": "6.70 €"}}
        """
        from_code = (request.args.get('from') or '').upper()
        to_code = (request.args.get('to') or '').upper()
        if not from_code or not to_code:
            return api_error('from and to currencies are required')

        service = get_currency_service()
        try:
            amount = validate_amount(request.args.get('amount', type=float))
            rate = service.get_exchange_rate(from_code, to_code)
            converted = service.convert_amount(amount, from_code, to_code)
        except CurrencyError as e:
            return api_error(str(e))

        return api_success(data={
            'amount': amount,
            'from': from_code,
            'to': to_code,
            'rate': rate,
            'converted': converted,
            'formatted': format_price(converted, to_code, request.args.get('locale', 'en'))
        })
