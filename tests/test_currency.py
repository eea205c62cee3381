"""
Tests for currency rates and conversion.
"""

import pytest

from utils.exceptions import CurrencyError


class TestCurrencyService:
    """Tests against the seeded DZD / EUR / USD ratios."""

    def test_default_currency(self, app):
        from blueprints.lofts.services.currency_service import get_default_currency

        assert get_default_currency()['code'] == 'DZD'

    def test_same_currency_rate(self, app):
        from blueprints.lofts.services.currency_service import get_exchange_rate

        assert get_exchange_rate('EUR', 'eur') == 1.0

    def test_rates_relative_to_default(self, app):
        from blueprints.lofts.services.currency_service import get_exchange_rate, convert_amount

        assert get_exchange_rate('DZD', 'EUR') == pytest.approx(0.0067)
        assert convert_amount(10000, 'DZD', 'EUR') == 67.0
        assert convert_amount(100, 'EUR', 'USD') == 110.45

    def test_unknown_currency(self, app):
        from blueprints.lofts.services.currency_service import get_exchange_rate

        with pytest.raises(CurrencyError, match='One or both currencies not found'):
            get_exchange_rate('DZD', 'XYZ')

    def test_zero_ratio_falls_back_to_one(self, app):
        from blueprints.lofts.services.currency_service import get_exchange_rate
        from models.currency import upsert_currency

        upsert_currency('TST', 'Test', 'T', 0)
        assert get_exchange_rate('DZD', 'TST') == 1.0

    def test_currency_added_after_cache_fill(self, app):
        from blueprints.lofts.services.currency_service import get_currency_service
        from models.currency import upsert_currency

        service = get_currency_service()
        assert len(service.get_currencies()) == 3

        upsert_currency('GBP', 'Pound Sterling', '£', 0.0057)
        assert service.get_currency_by_code('gbp')['code'] == 'GBP'

        service.clear_cache()
        assert len(service.get_currencies()) == 4

    def test_currency_by_id(self, app):
        from blueprints.lofts.services.currency_service import get_currency_service

        service = get_currency_service()
        assert service.get_currency_by_id(1)['code'] == 'DZD'
        with pytest.raises(CurrencyError, match='Currency with ID 999 not found'):
            service.get_currency_by_id(999)


class TestValidateAmount:

    def test_valid(self):
        from blueprints.lofts.services.currency_service import validate_amount

        assert validate_amount(10) == 10.0
        assert validate_amount(0) == 0.0

    @pytest.mark.parametrize('amount, message', [
        ('10', 'Amount must be a number'),
        (None, 'Amount must be a number'),
        (True, 'Amount must be a number'),
        (float('inf'), 'Amount must be a finite number'),
        (-1, 'Amount cannot be negative'),
        (2 ** 53, 'Amount is too large'),
    ])
    def test_invalid(self, amount, message):
        from blueprints.lofts.services.currency_service import validate_amount

        with pytest.raises(CurrencyError, match=message):
            validate_amount(amount)


class TestCurrencyRoutes:

    def test_list_is_public(self, client):
        response = client.get('/api/currencies')
        payload = response.get_json()

        assert response.status_code == 200
        assert payload['default'] == 'DZD'
        assert [c['code'] for c in payload['data']] == ['DZD', 'EUR', 'USD']

    def test_convert(self, authenticated_client):
        response = authenticated_client.get('/api/currencies/convert?amount=1000&from=dzd&to=EUR')
        data = response.get_json()['data']

        assert response.status_code == 200
        assert data['converted'] == 6.7
        assert data['formatted'] == '6.70 €'

    def test_convert_errors(self, authenticated_client):
        assert authenticated_client.get('/api/currencies/convert?amount=10&from=DZD').status_code == 400

        response = authenticated_client.get('/api/currencies/convert?amount=-5&from=DZD&to=EUR')
        assert response.get_json()['error'] == 'Amount cannot be negative'

    def test_convert_requires_login(self, client):
        assert client.get('/api/currencies/convert?amount=1&from=DZD&to=EUR').status_code == 401

    def test_save_currency(self, authenticated_client):
        response = authenticated_client.post('/api/currencies', json={
            'code': 'gbp', 'name': 'Pound Sterling', 'symbol': '£', 'ratio': 0.0057
        })
        assert response.status_code == 201
        assert response.get_json()['data']['code'] == 'GBP'

        codes = [c['code'] for c in authenticated_client.get('/api/currencies').get_json()['data']]
        assert 'GBP' in codes

    def test_save_currency_validation(self, authenticated_client):
        assert authenticated_client.post('/api/currencies', json={
            'code': 'POUND', 'name': 'Pound', 'ratio': 1
        }).get_json()['error'] == 'Currency code must be 3 letters'
        assert authenticated_client.post('/api/currencies', json={
            'code': 'GBP', 'name': 'Pound', 'ratio': 0
        }).get_json()['error'] == 'Ratio must be greater than zero'

    def test_save_currency_forbidden_for_clients(self, client_user_client):
        response = client_user_client.post('/api/currencies', json={
            'code': 'GBP', 'name': 'Pound Sterling', 'ratio': 0.0057
        })
        assert response.status_code == 403
