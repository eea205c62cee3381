"""
Tests for stay pricing: calculator, rule validation and breakdown formatting.
"""

import pytest
from datetime import date, timedelta

from blueprints.lofts.services.pricing_service import (
    PricingCalculator,
    PriceFormatter,
    validate_pricing_rule
)
from utils.exceptions import ValidationError, NotFoundError

LOFT = {
    'id': 1,
    'price_per_night': 10000,
    'cleaning_fee': 2000,
    'tax_rate': 0.19,
    'currency_code': 'DZD'
}

CHECK_IN = date(2030, 7, 1)
BOOKED_ON = date(2030, 6, 1)


def stay(nights):
    return CHECK_IN.isoformat(), (CHECK_IN + timedelta(days=nights)).isoformat()


def rule(**fields):
    base = {
        'rule_name': 'Rule',
        'rule_type': 'seasonal',
        'adjustment_type': 'percentage',
        'adjustment_value': 10,
        'priority': 0,
        'is_active': True
    }
    base.update(fields)
    return base


class TestPricingCalculator:
    """Tests for PricingCalculator.calculate."""

    def test_plain_stay(self):
        """3 nights, 2 guests, no rules."""
        breakdown = PricingCalculator(LOFT).calculate(*stay(3), guests=2, booking_date=BOOKED_ON)

        assert breakdown['nights'] == 3
        assert breakdown['base_price'] == 30000
        assert breakdown['subtotal'] == 30000
        assert breakdown['cleaning_fee'] == 2000
        assert breakdown['service_fee'] == 3600
        assert breakdown['tax_breakdown']['vat'] == 6764
        assert breakdown['tax_breakdown']['city_tax'] == 12
        assert breakdown['tax_breakdown']['tourist_tax'] == 9
        assert breakdown['taxes'] == 6785
        assert breakdown['total'] == 42385
        assert breakdown['currency'] == 'DZD'
        assert breakdown['average_nightly_rate'] == 10000

    def test_total_is_sum_of_components(self):
        breakdown = PricingCalculator(LOFT).calculate(*stay(5), guests=3, booking_date=BOOKED_ON)
        components = (breakdown['subtotal'] + breakdown['cleaning_fee']
                      + breakdown['service_fee'] + breakdown['taxes'])
        assert breakdown['total'] == pytest.approx(components, abs=0.01)

    def test_weekend_rule_only_on_listed_days(self):
        weekend = rule(rule_name='Weekend', rule_type='weekend', days_of_week=[4, 5], adjustment_value=20)
        breakdown = PricingCalculator(LOFT, [weekend]).calculate(*stay(7), booking_date=BOOKED_ON)

        for night in breakdown['nightly_rates']:
            weekday = date.fromisoformat(night['date']).weekday()
            expected = 12000 if weekday in (4, 5) else 10000
            assert night['rate'] == expected
            assert bool(night['adjustments']) == (weekday in (4, 5))
        assert breakdown['base_price'] == 74000

    def test_weekend_days_as_string(self):
        weekend = rule(rule_type='weekend', days_of_week='0,1,2,3,4,5,6', adjustment_type='fixed_amount',
                       adjustment_value=500)
        breakdown = PricingCalculator(LOFT, [weekend]).calculate(*stay(2), booking_date=BOOKED_ON)
        assert breakdown['base_price'] == 21000

    def test_seasonal_override(self):
        season = rule(rule_name='Low season', adjustment_type='override', adjustment_value=8000,
                      start_date='2030-06-01', end_date='2030-07-31')
        breakdown = PricingCalculator(LOFT, [season]).calculate(*stay(3), booking_date=BOOKED_ON)
        assert [n['rate'] for n in breakdown['nightly_rates']] == [8000, 8000, 8000]

    def test_seasonal_rule_dates_are_inclusive(self):
        season = rule(adjustment_value=50, start_date='2030-07-02', end_date='2030-07-02')
        breakdown = PricingCalculator(LOFT, [season]).calculate(*stay(3), booking_date=BOOKED_ON)
        assert [n['rate'] for n in breakdown['nightly_rates']] == [10000, 15000, 10000]

    def test_rules_apply_by_priority(self):
        percent = rule(rule_name='Event', rule_type='event', adjustment_value=10, priority=10,
                       start_date='2030-07-01', end_date='2030-07-01')
        fixed = rule(rule_name='Holiday', rule_type='holiday', adjustment_type='fixed_amount',
                     adjustment_value=500, priority=5, start_date='2030-07-01', end_date='2030-07-01')

        first = PricingCalculator(LOFT, [fixed, percent]).calculate(*stay(1), booking_date=BOOKED_ON)
        assert first['nightly_rates'][0]['rate'] == 11500

        percent['priority'], fixed['priority'] = 5, 10
        second = PricingCalculator(LOFT, [fixed, percent]).calculate(*stay(1), booking_date=BOOKED_ON)
        assert second['nightly_rates'][0]['rate'] == 11550

    def test_inactive_rules_ignored(self):
        season = rule(adjustment_value=50, start_date='2030-01-01', end_date='2030-12-31', is_active=False)
        breakdown = PricingCalculator(LOFT, [season]).calculate(*stay(2), booking_date=BOOKED_ON)
        assert breakdown['base_price'] == 20000

    def test_length_of_stay_discount(self):
        long_stay = rule(rule_name='Week discount', rule_type='length_of_stay', adjustment_value=-10,
                         minimum_nights=3)
        breakdown = PricingCalculator(LOFT, [long_stay]).calculate(*stay(3), booking_date=BOOKED_ON)

        assert breakdown['base_price'] == 30000
        assert breakdown['subtotal'] == 27000
        assert breakdown['discounts'] == [
            {'rule_name': 'Week discount', 'rule_type': 'length_of_stay', 'amount': 3000}
        ]
        assert breakdown['surcharges'] == []

    def test_length_of_stay_bounds(self):
        long_stay = rule(rule_type='length_of_stay', adjustment_value=-10, minimum_nights=3, maximum_nights=5)
        calculator = PricingCalculator(LOFT, [long_stay])
        assert calculator.calculate(*stay(2), booking_date=BOOKED_ON)['discounts'] == []
        assert calculator.calculate(*stay(6), booking_date=BOOKED_ON)['discounts'] == []
        assert len(calculator.calculate(*stay(4), booking_date=BOOKED_ON)['discounts']) == 1

    def test_advance_booking(self):
        early = rule(rule_name='Early bird', rule_type='advance_booking', adjustment_value=-5,
                     advance_booking_days=60)
        calculator = PricingCalculator(LOFT, [early])

        late = calculator.calculate(*stay(2), booking_date=CHECK_IN - timedelta(days=30))
        assert late['discounts'] == []

        early_booking = calculator.calculate(*stay(2), booking_date=CHECK_IN - timedelta(days=90))
        assert early_booking['subtotal'] == 19000

    def test_booking_date_defaults_to_local_today(self, app):
        from unittest.mock import patch

        early = rule(rule_name='Early bird', rule_type='advance_booking', adjustment_value=-5,
                     advance_booking_days=60)
        calculator = PricingCalculator(LOFT, [early])

        with patch('blueprints.lofts.services.pricing_service.get_today',
                   return_value=CHECK_IN - timedelta(days=60)):
            assert calculator.calculate(*stay(2))['subtotal'] == 19000

        with patch('blueprints.lofts.services.pricing_service.get_today',
                   return_value=CHECK_IN - timedelta(days=59)):
            assert calculator.calculate(*stay(2))['discounts'] == []

    def test_stay_surcharge(self):
        short = rule(rule_name='Short stay', rule_type='length_of_stay', adjustment_type='fixed_amount',
                     adjustment_value=1500, minimum_nights=1, maximum_nights=1)
        breakdown = PricingCalculator(LOFT, [short]).calculate(*stay(1), booking_date=BOOKED_ON)
        assert breakdown['surcharges'][0]['amount'] == 1500
        assert breakdown['subtotal'] == 11500

    def test_availability_overrides(self):
        overrides = {'2030-07-02': 15000}
        breakdown = PricingCalculator(LOFT).calculate(*stay(3), booking_date=BOOKED_ON, overrides=overrides)
        assert [n['base'] for n in breakdown['nightly_rates']] == [10000, 15000, 10000]
        assert breakdown['base_price'] == 35000

    def test_long_stay_halves_vat(self):
        breakdown = PricingCalculator(LOFT).calculate(*stay(30), booking_date=BOOKED_ON)
        assert breakdown['tax_breakdown']['vat_rate'] == pytest.approx(0.095)

    def test_loft_without_tax_rate_uses_default(self):
        loft = {**LOFT, 'tax_rate': None}
        breakdown = PricingCalculator(loft, tax_config={'vat_rate': 0.1}).calculate(*stay(1), booking_date=BOOKED_ON)
        assert breakdown['tax_breakdown']['vat_rate'] == 0.1

    def test_adjustment_never_negative(self):
        cut = rule(rule_type='event', adjustment_type='fixed_amount', adjustment_value=-20000,
                   start_date='2030-07-01', end_date='2030-07-01')
        breakdown = PricingCalculator(LOFT, [cut]).calculate(*stay(1), booking_date=BOOKED_ON)
        assert breakdown['nightly_rates'][0]['rate'] == 0

    def test_invalid_dates(self):
        calculator = PricingCalculator(LOFT)
        with pytest.raises(ValidationError):
            calculator.calculate('2030-07-05', '2030-07-01')
        with pytest.raises(ValidationError):
            calculator.calculate('2030-07-01', '2030-07-01')
        with pytest.raises(ValidationError):
            calculator.calculate('07/01/2030', '2030-07-03')


class TestCalculateStayPrice:
    """Tests for pricing with stored rules and overrides."""

    def test_uses_stored_rules_and_overrides(self, app, loft, stay_dates):
        from blueprints.lofts.services.availability_service import update_availability
        from blueprints.lofts.services.pricing_service import calculate_stay_price
        from models.pricing_rule import create_pricing_rule

        check_in, check_out = stay_dates
        update_availability(loft['id'], check_in, is_available=True, price_override=15000)
        create_pricing_rule(loft['id'], rule_name='Stay 3+', rule_type='length_of_stay',
                            adjustment_type='percentage', adjustment_value=-10, minimum_nights=3)

        breakdown = calculate_stay_price(loft['id'], check_in, check_out, guests=2)

        assert breakdown['nightly_rates'][0]['rate'] == 15000
        assert breakdown['base_price'] == 35000
        assert breakdown['subtotal'] == 31500

    def test_missing_loft(self, app):
        from blueprints.lofts.services.pricing_service import calculate_stay_price

        with pytest.raises(NotFoundError):
            calculate_stay_price(9999, '2030-07-01', '2030-07-03')

    def test_rpc_wrapper(self, app, loft, stay_dates):
        from database.rpc import call_rpc

        breakdown = call_rpc('calculate_reservation_price', p_loft_id=loft['id'],
                             p_check_in=stay_dates[0], p_check_out=stay_dates[1], p_guest_count=2)
        assert breakdown['total'] == 42385


class TestValidatePricingRule:
    """Tests for pricing rule validation."""

    def test_valid_seasonal_rule(self):
        assert validate_pricing_rule(rule(start_date='2030-06-01', end_date='2030-08-31')) == []

    def test_missing_fields(self):
        errors = validate_pricing_rule({})
        assert 'Rule name is required' in errors
        assert any(e.startswith('Rule type must be one of') for e in errors)
        assert any(e.startswith('Adjustment type must be one of') for e in errors)
        assert 'Adjustment value must be a number' in errors

    def test_name_length(self):
        errors = validate_pricing_rule(rule(rule_name='x' * 101, start_date='2030-06-01', end_date='2030-06-02'))
        assert errors == ['Rule name must be 100 characters or less']

    def test_percentage_bounds(self):
        assert 'Percentage adjustment must be between -100 and 500' in validate_pricing_rule(
            rule(adjustment_value=-150, start_date='2030-06-01', end_date='2030-06-02'))
        assert 'Percentage adjustment must be between -100 and 500' in validate_pricing_rule(
            rule(adjustment_value=501, start_date='2030-06-01', end_date='2030-06-02'))

    def test_override_must_be_positive(self):
        errors = validate_pricing_rule(rule(adjustment_type='override', adjustment_value=0,
                                            start_date='2030-06-01', end_date='2030-06-02'))
        assert errors == ['Override price must be greater than 0']

    def test_dated_rules_need_dates(self):
        errors = validate_pricing_rule(rule(rule_type='holiday'))
        assert errors == ['Start and end dates are required for holiday rules']

    def test_end_before_start(self):
        errors = validate_pricing_rule(rule(start_date='2030-06-10', end_date='2030-06-01'))
        assert errors == ['End date must be on or after start date']

    def test_weekend_days(self):
        assert validate_pricing_rule(rule(rule_type='weekend', days_of_week=[])) == [
            'Days of week are required for weekend rules']
        assert validate_pricing_rule(rule(rule_type='weekend', days_of_week=[5, 7])) == [
            'Days of week must be between 0 (Monday) and 6 (Sunday)']
        assert validate_pricing_rule(rule(rule_type='weekend', days_of_week=[4, 5])) == []

    def test_length_of_stay_nights(self):
        assert validate_pricing_rule(rule(rule_type='length_of_stay', minimum_nights=0)) == [
            'Minimum nights must be at least 1']
        assert validate_pricing_rule(rule(rule_type='length_of_stay', minimum_nights=5, maximum_nights=3)) == [
            'Maximum nights cannot be less than minimum nights']

    def test_advance_booking_days(self):
        assert validate_pricing_rule(rule(rule_type='advance_booking')) == [
            'Advance booking days must be at least 1']

    def test_priority(self):
        errors = validate_pricing_rule(rule(priority=101, start_date='2030-06-01', end_date='2030-06-02'))
        assert errors == ['Priority must be an integer between 0 and 100']
        errors = validate_pricing_rule(rule(priority=True, start_date='2030-06-01', end_date='2030-06-02'))
        assert errors == ['Priority must be an integer between 0 and 100']


class TestPriceFormatter:
    """Tests for breakdown rendering."""

    def breakdown(self, **extra):
        data = PricingCalculator(LOFT).calculate(*stay(3), guests=2, booking_date=BOOKED_ON)
        data.update(extra)
        return data

    def test_format_pricing_breakdown(self):
        lines = PriceFormatter.format_pricing_breakdown(self.breakdown())
        assert lines[0] == '10,000.00 DA x 3 nights = 30,000.00 DA'
        assert 'Cleaning fee: 2,000.00 DA' in lines
        assert 'Service fee: 3,600.00 DA' in lines
        assert lines[-1] == 'Total: 42,385.00 DA'

    def test_discount_line(self):
        discounts = [{'rule_name': 'Week discount', 'rule_type': 'length_of_stay', 'amount': 3000}]
        lines = PriceFormatter.format_pricing_breakdown(self.breakdown(discounts=discounts))
        assert 'Discount (Week discount): -3,000.00 DA' in lines

    def test_french_labels(self):
        lines = PriceFormatter.format_pricing_breakdown(self.breakdown(), locale='fr')
        assert lines[0].startswith('10 000,00 DA x 3 nuits')
        assert lines[-1] == 'Total: 42 385,00 DA'

    def test_price_summary(self):
        summary = PriceFormatter.format_price_summary(self.breakdown())
        assert summary == '30,000.00 DA + 5,600.00 DA fees + 6,785.00 DA taxes = 42,385.00 DA'
        assert PriceFormatter.format_price_summary(self.breakdown(), show_breakdown=False) == 'Total: 42,385.00 DA'

    def test_format_nightly_rate(self):
        plain = {'date': '2030-07-01', 'base': 10000, 'rate': 10000, 'adjustments': []}
        assert PriceFormatter.format_nightly_rate(plain) == '10,000.00 DA/night'

        adjusted = {'date': '2030-07-05', 'base': 10000, 'rate': 12000,
                    'adjustments': [{'rule_name': 'Weekend', 'rule_type': 'weekend', 'amount': 2000}]}
        assert PriceFormatter.format_nightly_rate(adjusted) == '12,000.00 DA/night (Weekend, base 10,000.00 DA)'
