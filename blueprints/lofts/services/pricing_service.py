"""
Pricing Service - Business logic for stay pricing.

Handles:
- Nightly rate calculation (availability overrides, seasonal/weekend/holiday/event rules)
- Stay-level rules (length of stay, advance booking)
- Service fee, VAT, city and tourist taxes
- Pricing rule validation
- Breakdown formatting
"""

import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from flask import current_app

from models.availability import get_price_overrides
from models.loft import get_loft_by_id
from models.pricing_rule import get_pricing_rules
from blueprints.lofts.services.price_display import format_price, PER_NIGHT_TEXT
from utils.datetime_helpers import get_today, parse_date
from utils.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

RULE_TYPES = ('seasonal', 'weekend', 'holiday', 'event', 'length_of_stay', 'advance_booking')
ADJUSTMENT_TYPES = ('percentage', 'fixed_amount', 'override')

# Rules applied night by night; the rest apply to the stay subtotal
NIGHTLY_RULE_TYPES = ('seasonal', 'weekend', 'holiday', 'event')
DATED_RULE_TYPES = ('seasonal', 'holiday', 'event')
STAY_RULE_TYPES = ('length_of_stay', 'advance_booking')

DEFAULT_TAX_CONFIG = {
    'vat_rate': 0.19,
    'service_fee_rate': 0.12,
    'city_tax_per_night': 2.0,
    'tourist_tax_per_night': 1.5,
    'long_stay_nights': 30,
    'long_stay_vat_factor': 0.5,
}


def _money(value: float) -> float:
    return round(float(value), 2)


def get_tax_config() -> Dict[str, Any]:
    """Tax configuration from the app config."""
    config = current_app.config
    return {
        **DEFAULT_TAX_CONFIG,
        'vat_rate': config.get('DEFAULT_TAX_RATE', DEFAULT_TAX_CONFIG['vat_rate']),
        'service_fee_rate': config.get('SERVICE_FEE_RATE', DEFAULT_TAX_CONFIG['service_fee_rate']),
        'city_tax_per_night': config.get('CITY_TAX_PER_NIGHT', DEFAULT_TAX_CONFIG['city_tax_per_night']),
        'tourist_tax_per_night': config.get('TOURIST_TAX_PER_NIGHT', DEFAULT_TAX_CONFIG['tourist_tax_per_night']),
    }


# =============================================================================
# CALCULATOR
# =============================================================================

class PricingCalculator:
    """
    Price a stay at one loft.

    Args:
        loft: Loft dict (price_per_night, cleaning_fee, tax_rate, currency_code)
        rules: Pricing rule dicts; inactive rules are ignored
        tax_config: Overrides for DEFAULT_TAX_CONFIG
    """

    def __init__(self, loft: Dict[str, Any], rules: Optional[List[Dict[str, Any]]] = None,
                 tax_config: Optional[Dict[str, Any]] = None):
        self.loft = loft
        self.rules = sorted(
            [r for r in (rules or []) if r.get('is_active', True)],
            key=lambda r: r.get('priority') or 0,
            reverse=True
        )
        self.tax_config = {**DEFAULT_TAX_CONFIG, **(tax_config or {})}

    @staticmethod
    def apply_adjustment(amount: float, rule: Dict[str, Any]) -> float:
        """Apply one rule's adjustment to an amount (never below zero)."""
        value = float(rule['adjustment_value'])
        adjustment_type = rule['adjustment_type']

        if adjustment_type == 'percentage':
            result = amount * (1 + value / 100)
        elif adjustment_type == 'fixed_amount':
            result = amount + value
        elif adjustment_type == 'override':
            result = value
        else:
            result = amount

        return max(result, 0.0)

    @staticmethod
    def _rule_applies_to_night(rule: Dict[str, Any], night: date) -> bool:
        rule_type = rule['rule_type']
        if rule_type in DATED_RULE_TYPES:
            if not rule.get('start_date') or not rule.get('end_date'):
                return False
            return parse_date(rule['start_date']) <= night <= parse_date(rule['end_date'])
        if rule_type == 'weekend':
            return night.weekday() in _parse_days(rule.get('days_of_week'))
        return False

    @staticmethod
    def _rule_applies_to_stay(rule: Dict[str, Any], nights: int, lead_days: int) -> bool:
        rule_type = rule['rule_type']
        if rule_type == 'length_of_stay':
            minimum = rule.get('minimum_nights') or 1
            maximum = rule.get('maximum_nights')
            return nights >= minimum and (maximum is None or nights <= maximum)
        if rule_type == 'advance_booking':
            required = rule.get('advance_booking_days')
            return required is not None and lead_days >= required
        return False

    def calculate(self, check_in, check_out, guests: int = 1, booking_date=None,
                  overrides: Optional[Dict[str, float]] = None) -> Dict[str, Any]:
        """
        Price the stay [check_in, check_out).

        Args:
            check_in: Check-in date
            check_out: Check-out date
            guests: Guest count (city and tourist taxes are per guest)
            booking_date: Date the booking is made (defaults to today)
            overrides: {YYYY-MM-DD: nightly price} from the availability calendar

        Returns:
            Breakdown dict (nights, nightly_rates, base_price, discounts,
            surcharges, subtotal, cleaning_fee, service_fee, taxes,
            tax_breakdown, total, currency)

        Raises:
            ValidationError: invalid or inverted dates
        """
        try:
            start = parse_date(check_in)
            end = parse_date(check_out)
        except (TypeError, ValueError):
            raise ValidationError('Invalid date format')

        if end <= start:
            raise ValidationError('Check-out date must be after check-in date')

        overrides = overrides or {}
        guests = max(int(guests or 1), 1)
        nights = (end - start).days
        base_rate = float(self.loft.get('price_per_night') or 0)

        # Nightly rates
        nightly_rates = []
        night = start
        while night < end:
            day = night.isoformat()
            base = float(overrides[day]) if overrides.get(day) is not None else base_rate
            rate = base
            adjustments = []
            for rule in self.rules:
                if rule['rule_type'] in NIGHTLY_RULE_TYPES and self._rule_applies_to_night(rule, night):
                    adjusted = self.apply_adjustment(rate, rule)
                    adjustments.append({
                        'rule_name': rule.get('rule_name'),
                        'rule_type': rule['rule_type'],
                        'amount': _money(adjusted - rate)
                    })
                    rate = adjusted
            nightly_rates.append({
                'date': day,
                'base': _money(base),
                'rate': _money(rate),
                'adjustments': adjustments
            })
            night += timedelta(days=1)

        base_price = _money(sum(n['rate'] for n in nightly_rates))

        # Stay-level rules
        booking_day = parse_date(booking_date) if booking_date else get_today()
        lead_days = (start - booking_day).days
        discounts, surcharges = [], []
        subtotal = base_price
        for rule in self.rules:
            if rule['rule_type'] in STAY_RULE_TYPES and self._rule_applies_to_stay(rule, nights, lead_days):
                adjusted = self.apply_adjustment(subtotal, rule)
                delta = _money(adjusted - subtotal)
                entry = {'rule_name': rule.get('rule_name'), 'rule_type': rule['rule_type']}
                if delta < 0:
                    discounts.append({**entry, 'amount': -delta})
                elif delta > 0:
                    surcharges.append({**entry, 'amount': delta})
                subtotal = adjusted
        subtotal = _money(subtotal)

        # Fees and taxes
        cleaning_fee = _money(float(self.loft.get('cleaning_fee') or 0))
        service_fee = _money(subtotal * self.tax_config['service_fee_rate'])

        vat_rate = self.loft.get('tax_rate')
        if vat_rate is None:
            vat_rate = self.tax_config['vat_rate']
        vat_rate = float(vat_rate)
        if nights >= self.tax_config['long_stay_nights']:
            vat_rate *= self.tax_config['long_stay_vat_factor']

        vat = _money((subtotal + service_fee + cleaning_fee) * vat_rate)
        city_tax = _money(self.tax_config['city_tax_per_night'] * nights * guests)
        tourist_tax = _money(self.tax_config['tourist_tax_per_night'] * nights * guests)
        taxes = _money(vat + city_tax + tourist_tax)

        total = _money(subtotal + cleaning_fee + service_fee + taxes)

        return {
            'nights': nights,
            'guests': guests,
            'nightly_rates': nightly_rates,
            'average_nightly_rate': _money(base_price / nights),
            'base_price': base_price,
            'discounts': discounts,
            'surcharges': surcharges,
            'subtotal': subtotal,
            'cleaning_fee': cleaning_fee,
            'service_fee': service_fee,
            'taxes': taxes,
            'tax_breakdown': {
                'vat_rate': round(vat_rate, 4),
                'vat': vat,
                'city_tax': city_tax,
                'tourist_tax': tourist_tax
            },
            'total': total,
            'currency': self.loft.get('currency_code') or 'DZD'
        }


def calculate_stay_price(loft_id: int, check_in, check_out, guests: int = 1) -> Dict[str, Any]:
    """
    Price a stay using the loft's active rules and availability overrides.

    Raises:
        NotFoundError: loft does not exist
        ValidationError: invalid dates
    """
    loft = get_loft_by_id(loft_id)
    if not loft:
        raise NotFoundError('Loft not found')

    try:
        start = parse_date(check_in).isoformat()
        end = parse_date(check_out).isoformat()
    except (TypeError, ValueError):
        raise ValidationError('Invalid date format')

    calculator = PricingCalculator(
        loft,
        rules=get_pricing_rules(loft_id, active_only=True),
        tax_config=get_tax_config()
    )
    breakdown = calculator.calculate(
        start, end,
        guests=guests,
        booking_date=get_today(),
        overrides=get_price_overrides(loft_id, start, end)
    )
    logger.debug(f"[Pricing] loft={loft_id} {start}->{end} guests={guests} total={breakdown['total']}")
    return breakdown


# =============================================================================
# RULE VALIDATION
# =============================================================================

def _parse_days(days) -> List[int]:
    """days_of_week as a list of ints (accepts list or '5,6' string)."""
    if not days:
        return []
    if isinstance(days, str):
        days = [d.strip() for d in days.split(',') if d.strip() != '']
    return [int(d) for d in days]


def validate_pricing_rule(rule: Dict[str, Any]) -> List[str]:
    """
    Validate a pricing rule.

    Args:
        rule: Rule fields

    Returns:
        List of error messages (empty when the rule is valid)
    """
    errors = []

    rule_name = (rule.get('rule_name') or '').strip()
    if not rule_name:
        errors.append('Rule name is required')
    elif len(rule_name) > 100:
        errors.append('Rule name must be 100 characters or less')

    rule_type = rule.get('rule_type')
    if rule_type not in RULE_TYPES:
        errors.append(f"Rule type must be one of: {', '.join(RULE_TYPES)}")

    adjustment_type = rule.get('adjustment_type')
    if adjustment_type not in ADJUSTMENT_TYPES:
        errors.append(f"Adjustment type must be one of: {', '.join(ADJUSTMENT_TYPES)}")

    value = rule.get('adjustment_value')
    try:
        if value is None or isinstance(value, bool):
            raise TypeError
        value = float(value)
    except (TypeError, ValueError):
        errors.append('Adjustment value must be a number')
        value = None

    if value is not None:
        if adjustment_type == 'percentage' and not -100 <= value <= 500:
            errors.append('Percentage adjustment must be between -100 and 500')
        elif adjustment_type == 'override' and value <= 0:
            errors.append('Override price must be greater than 0')

    if rule_type in DATED_RULE_TYPES:
        if not rule.get('start_date') or not rule.get('end_date'):
            errors.append(f'Start and end dates are required for {rule_type} rules')
        else:
            try:
                if parse_date(rule['end_date']) < parse_date(rule['start_date']):
                    errors.append('End date must be on or after start date')
            except (TypeError, ValueError):
                errors.append('Invalid date format')

    if rule_type == 'weekend':
        try:
            days = _parse_days(rule.get('days_of_week'))
            if not days:
                errors.append('Days of week are required for weekend rules')
            elif any(d < 0 or d > 6 for d in days):
                errors.append('Days of week must be between 0 (Monday) and 6 (Sunday)')
        except (TypeError, ValueError):
            errors.append('Days of week must be between 0 (Monday) and 6 (Sunday)')

    if rule_type == 'length_of_stay':
        minimum = rule.get('minimum_nights')
        maximum = rule.get('maximum_nights')
        try:
            if minimum is None or int(minimum) < 1:
                errors.append('Minimum nights must be at least 1')
            elif maximum is not None and int(maximum) < int(minimum):
                errors.append('Maximum nights cannot be less than minimum nights')
        except (TypeError, ValueError):
            errors.append('Minimum and maximum nights must be integers')

    if rule_type == 'advance_booking':
        days = rule.get('advance_booking_days')
        try:
            if days is None or int(days) < 1:
                errors.append('Advance booking days must be at least 1')
        except (TypeError, ValueError):
            errors.append('Advance booking days must be at least 1')

    priority = rule.get('priority')
    if priority is not None:
        if isinstance(priority, bool) or not isinstance(priority, int) or not 0 <= priority <= 100:
            errors.append('Priority must be an integer between 0 and 100')

    return errors


# =============================================================================
# FORMATTING
# =============================================================================

class PriceFormatter:
    """Human-readable renderings of a pricing breakdown."""

    LABELS = {
        'en': {'nights': 'nights', 'cleaning': 'Cleaning fee', 'service': 'Service fee',
               'taxes': 'Taxes', 'total': 'Total', 'fees': 'Fees', 'discount': 'Discount'},
        'fr': {'nights': 'nuits', 'cleaning': 'Frais de ménage', 'service': 'Frais de service',
               'taxes': 'Taxes', 'total': 'Total', 'fees': 'Frais', 'discount': 'Réduction'},
        'ar': {'nights': 'ليالي', 'cleaning': 'رسوم التنظيف', 'service': 'رسوم الخدمة',
               'taxes': 'الضرائب', 'total': 'المجموع', 'fees': 'الرسوم', 'discount': 'خصم'},
    }

    @classmethod
    def _labels(cls, locale: str) -> Dict[str, str]:
        return cls.LABELS.get(locale, cls.LABELS['en'])

    @classmethod
    def format_pricing_breakdown(cls, breakdown: Dict[str, Any], locale: str = 'en') -> List[str]:
        """
        One line per component of the breakdown.

        Returns:
            List of strings, total last
        """
        labels = cls._labels(locale)
        currency = breakdown.get('currency', 'DZD')
        nights = breakdown.get('nights', 0)
        average = breakdown.get('average_nightly_rate')
        if average is None and nights:
            average = breakdown.get('base_price', breakdown.get('subtotal', 0)) / nights

        lines = [
            f"{format_price(average or 0, currency, locale)} x {nights} {labels['nights']}"
            f" = {format_price(breakdown.get('base_price', breakdown.get('subtotal', 0)), currency, locale)}"
        ]
        for discount in breakdown.get('discounts', []):
            lines.append(f"{labels['discount']} ({discount['rule_name']}): "
                         f"-{format_price(discount['amount'], currency, locale)}")
        for surcharge in breakdown.get('surcharges', []):
            lines.append(f"{surcharge['rule_name']}: +{format_price(surcharge['amount'], currency, locale)}")
        if breakdown.get('cleaning_fee'):
            lines.append(f"{labels['cleaning']}: {format_price(breakdown['cleaning_fee'], currency, locale)}")
        lines.append(f"{labels['service']}: {format_price(breakdown.get('service_fee', 0), currency, locale)}")
        lines.append(f"{labels['taxes']}: {format_price(breakdown.get('taxes', 0), currency, locale)}")
        lines.append(f"{labels['total']}: {format_price(breakdown.get('total', 0), currency, locale)}")
        return lines

    @classmethod
    def format_price_summary(cls, breakdown: Dict[str, Any], locale: str = 'en',
                             show_breakdown: bool = True) -> str:
        """Single-line summary: subtotal + fees + taxes = total."""
        labels = cls._labels(locale)
        currency = breakdown.get('currency', 'DZD')
        total = format_price(breakdown.get('total', 0), currency, locale)
        if not show_breakdown:
            return f"{labels['total']}: {total}"

        fees = breakdown.get('cleaning_fee', 0) + breakdown.get('service_fee', 0)
        return (
            f"{format_price(breakdown.get('subtotal', 0), currency, locale)}"
            f" + {format_price(fees, currency, locale)} {labels['fees'].lower()}"
            f" + {format_price(breakdown.get('taxes', 0), currency, locale)} {labels['taxes'].lower()}"
            f" = {total}"
        )

    @staticmethod
    def format_nightly_rate(nightly: Dict[str, Any], currency: str = 'DZD', locale: str = 'en') -> str:
        """
        Render one entry of breakdown['nightly_rates'].

        Shows the base rate and the rule names when rules changed it.
        """
        per_night = PER_NIGHT_TEXT.get(locale, PER_NIGHT_TEXT['en'])
        rate = f"{format_price(nightly['rate'], currency, locale)}{per_night}"
        if not nightly.get('adjustments'):
            return rate
        names = ', '.join(a['rule_name'] for a in nightly['adjustments'] if a.get('rule_name'))
        return f"{rate} ({names}, base {format_price(nightly['base'], currency, locale)})"
