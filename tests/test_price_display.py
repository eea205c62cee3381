"""
Tests for price formatting and validation helpers.
"""

from blueprints.lofts.services.price_display import (
    format_price,
    format_price_range,
    format_discounted_price,
    format_nightly_rate,
    format_contextual_price,
    format_price_with_tax,
    format_price_comparison,
    validate_price,
    validate_price_range,
    validate_pricing_breakdown
)


class TestFormatPrice:

    def test_symbol_after_amount(self):
        assert format_price(1500) == '1,500.00 DA'
        assert format_price(99.5, 'EUR') == '99.50 €'

    def test_dollar_prefix(self):
        assert format_price(120, 'USD') == '$120.00'

    def test_french_grouping(self):
        assert format_price(1234.5, 'EUR', 'fr') == '1 234,50 €'

    def test_compact(self):
        assert format_price(1500, compact=True) == '1.5K DA'
        assert format_price(2_500_000, compact=True) == '2.5M DA'
        assert format_price(950, compact=True) == '950 DA'

    def test_without_currency(self):
        assert format_price(1500, show_currency=False) == '1,500.00'

    def test_unknown_currency_uses_code(self):
        assert format_price(10, 'gbp') == '10.00 GBP'


class TestFormatHelpers:

    def test_price_range(self):
        result = format_price_range(8000, 12000)
        assert result['formatted'] == '8.0K DA - 12.0K DA'
        assert format_price_range(10000, 10000)['formatted'] == '10.0K DA'

    def test_discounted_price(self):
        result = format_discounted_price(100, 80, 'EUR')
        assert result == {
            'current': '80.00 €',
            'original': '100.00 €',
            'discount': '20%',
            'savings': '20.00 €'
        }

    def test_discount_on_free_original(self):
        assert format_discounted_price(0, 0)['discount'] == '0%'

    def test_nightly_rate(self):
        assert format_nightly_rate(120, 'EUR') == '120.00 €/night'
        assert format_nightly_rate(120, 'EUR', 'fr') == '120,00 €/nuit'

    def test_contextual_price(self):
        assert format_contextual_price(1500, 'DZD', 'card') == '1.5K DA'
        assert format_contextual_price(1500, 'DZD', 'list') == '1,500 DA'
        assert format_contextual_price(1500, 'DZD', 'detail') == '1,500.00 DA'

    def test_price_with_tax(self):
        result = format_price_with_tax(100, 19, 'EUR')
        assert result['total_price'] == '119.00 €'
        assert result['formatted'] == '119.00 € (tax included)'
        assert format_price_with_tax(100, 19, 'EUR', show_tax_breakdown=False)['formatted'] == '119.00 €'

    def test_price_comparison(self):
        result = format_price_comparison([
            {'label': 'Hydra', 'amount': 12000},
            {'label': 'Centre', 'amount': 8000},
            {'label': 'Bab Ezzouar', 'amount': 9000},
        ])
        assert [r['is_lowest'] for r in result] == [False, True, False]
        assert [r['is_highest'] for r in result] == [True, False, False]
        assert format_price_comparison([]) == []


class TestValidatePrice:

    def test_valid(self):
        assert validate_price(100) == (True, None)
        assert validate_price('99.90') == (True, None)
        assert validate_price(0) == (True, None)

    def test_invalid(self):
        assert validate_price('abc') == (False, 'Price must be a valid number')
        assert validate_price(None) == (False, 'Price must be a valid number')
        assert validate_price(True) == (False, 'Price must be a valid number')
        assert validate_price(float('nan')) == (False, 'Price must be a valid number')
        assert validate_price(-1) == (False, 'Price cannot be negative')
        assert validate_price(1_000_001) == (False, 'Price exceeds maximum allowed value')

    def test_price_range(self):
        assert validate_price_range(10, 20) == (True, None)
        assert validate_price_range(20, 10) == (False, 'Minimum price cannot be greater than maximum price')
        assert validate_price_range(-5, 10) == (False, 'Price cannot be negative')


class TestValidatePricingBreakdown:

    VALID = {'nights': 3, 'subtotal': 300, 'cleaning_fee': 50, 'service_fee': 36, 'taxes': 14, 'total': 400}

    def test_consistent_breakdown(self):
        assert validate_pricing_breakdown(self.VALID) == (True, [])

    def test_rounding_tolerance(self):
        assert validate_pricing_breakdown({**self.VALID, 'total': 400.01})[0] is True

    def test_total_mismatch(self):
        is_valid, errors = validate_pricing_breakdown({**self.VALID, 'total': 410})
        assert is_valid is False
        assert errors == ['Total amount does not match sum of components']

    def test_invalid_nights_and_fields(self):
        is_valid, errors = validate_pricing_breakdown({**self.VALID, 'nights': 0, 'taxes': -1})
        assert is_valid is False
        assert 'Number of nights must be a positive integer' in errors
        assert 'taxes: Price cannot be negative' in errors
