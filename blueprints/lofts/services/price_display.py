"""
Price display and validation helpers.

Pure formatting functions used by API responses (catalog cards, stay
summaries, pricing breakdowns). Locale support is limited to the built-in
en/fr/ar suffix tables.
"""

import math
from typing import Any, Dict, List, Tuple

CURRENCY_SYMBOLS = {
    'DZD': 'DA',
    'EUR': '€',
    'USD': '$',
}

# Symbol goes before the amount for these currencies
PREFIX_SYMBOLS = ('USD',)

PER_NIGHT_TEXT = {
    'en': '/night',
    'fr': '/nuit',
    'ar': '/ليلة',
}

TAX_INCLUDED_TEXT = {
    'en': '(tax included)',
    'fr': '(taxes incluses)',
    'ar': '(شامل الضرائب)',
}

MAX_PRICE = 1_000_000
BREAKDOWN_TOLERANCE = 0.01


# =============================================================================
# FORMATTING
# =============================================================================

def _group_digits(amount: float, precision: int, locale: str) -> str:
    text = f'{amount:,.{precision}f}'
    if locale == 'fr':
        # 1 234,56
        text = text.replace(',', ' ').replace('.', ',')
    return text


def _compact(amount: float) -> str:
    value = abs(amount)
    sign = '-' if amount < 0 else ''
    if value >= 1_000_000:
        return f'{sign}{value / 1_000_000:.1f}M'
    if value >= 1_000:
        return f'{sign}{value / 1_000:.1f}K'
    return f'{sign}{value:.0f}' if float(value).is_integer() else f'{sign}{value:.2f}'


def format_price(amount: float, currency: str = 'DZD', locale: str = 'en',
                 compact: bool = False, precision: int = 2, show_currency: bool = True) -> str:
    """
    Format an amount with its currency symbol.

    Args:
        amount: Amount to format
        currency: ISO currency code (DZD, EUR, USD)
        locale: en, fr or ar
        compact: Use the 1.2K / 3.4M short form
        precision: Decimal places in full form
        show_currency: Append or prepend the currency symbol

    Returns:
        Formatted string, e.g. '1,500.00 DA', '$120.00', '1.2K €'
    """
    currency = (currency or 'DZD').upper()
    number = _compact(amount) if compact else _group_digits(round(float(amount), precision), precision, locale)

    if not show_currency:
        return number

    symbol = CURRENCY_SYMBOLS.get(currency, currency)
    if currency in PREFIX_SYMBOLS:
        return f'{symbol}{number}'
    return f'{number} {symbol}'


def format_price_range(min_price: float, max_price: float, currency: str = 'DZD',
                       locale: str = 'en', compact: bool = True) -> Dict[str, str]:
    """Format min/max prices; equal values give a single price."""
    min_formatted = format_price(min_price, currency, locale, compact=compact)
    max_formatted = format_price(max_price, currency, locale, compact=compact)

    formatted = min_formatted if min_price == max_price else f'{min_formatted} - {max_formatted}'
    return {
        'min': min_formatted,
        'max': max_formatted,
        'currency': currency,
        'formatted': formatted
    }


def format_discounted_price(original_price: float, current_price: float,
                            currency: str = 'DZD', locale: str = 'en') -> Dict[str, str]:
    """Current/original prices with discount percentage and savings."""
    if original_price:
        discount = round((original_price - current_price) / original_price * 100)
    else:
        discount = 0
    return {
        'current': format_price(current_price, currency, locale),
        'original': format_price(original_price, currency, locale),
        'discount': f'{discount}%',
        'savings': format_price(original_price - current_price, currency, locale)
    }


def format_nightly_rate(amount: float, currency: str = 'DZD', locale: str = 'en') -> str:
    """'120.00 €/night', '120,00 €/nuit', ..."""
    return f"{format_price(amount, currency, locale)}{PER_NIGHT_TEXT.get(locale, PER_NIGHT_TEXT['en'])}"


def format_contextual_price(amount: float, currency: str = 'DZD', context: str = 'detail',
                            locale: str = 'en') -> str:
    """Compact price for cards, full precision for detail and summary views."""
    if context == 'card':
        return format_price(amount, currency, locale, compact=True)
    if context == 'list':
        return format_price(amount, currency, locale, precision=0)
    return format_price(amount, currency, locale, precision=2)


def format_price_with_tax(base_amount: float, tax_amount: float, currency: str = 'DZD',
                          locale: str = 'en', show_tax_breakdown: bool = True) -> Dict[str, str]:
    total = format_price(base_amount + tax_amount, currency, locale)
    formatted = total
    if show_tax_breakdown:
        formatted = f"{total} {TAX_INCLUDED_TEXT.get(locale, TAX_INCLUDED_TEXT['en'])}"
    return {
        'base_price': format_price(base_amount, currency, locale),
        'tax_amount': format_price(tax_amount, currency, locale),
        'total_price': total,
        'formatted': formatted
    }


def format_price_comparison(prices: List[Dict[str, Any]], locale: str = 'en') -> List[Dict[str, Any]]:
    """
    Format labelled prices and flag the cheapest and most expensive.

    Args:
        prices: List of dicts with label, amount and optional currency

    Returns:
        List of dicts with label, formatted, amount, is_lowest, is_highest
    """
    if not prices:
        return []

    amounts = [p['amount'] for p in prices]
    lowest, highest = min(amounts), max(amounts)

    return [{
        'label': p['label'],
        'formatted': format_price(p['amount'], p.get('currency', 'DZD'), locale),
        'amount': p['amount'],
        'is_lowest': p['amount'] == lowest,
        'is_highest': p['amount'] == highest
    } for p in prices]


# =============================================================================
# VALIDATION
# =============================================================================

def validate_price(value) -> Tuple[bool, str]:
    """
    Validate a single price.

    Returns:
        (is_valid, error) with error None when valid
    """
    if isinstance(value, bool):
        return False, 'Price must be a valid number'
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return False, 'Price must be a valid number'

    if math.isnan(amount) or math.isinf(amount):
        return False, 'Price must be a valid number'
    if amount < 0:
        return False, 'Price cannot be negative'
    if amount > MAX_PRICE:
        return False, 'Price exceeds maximum allowed value'
    return True, None


def validate_price_range(min_price, max_price) -> Tuple[bool, str]:
    for value in (min_price, max_price):
        is_valid, error = validate_price(value)
        if not is_valid:
            return False, error

    if float(min_price) > float(max_price):
        return False, 'Minimum price cannot be greater than maximum price'
    return True, None


def validate_pricing_breakdown(breakdown: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """
    Check a breakdown's consistency.

    Returns:
        (is_valid, errors)
    """
    errors = []

    nights = breakdown.get('nights')
    if not isinstance(nights, int) or isinstance(nights, bool) or nights <= 0:
        errors.append('Number of nights must be a positive integer')

    for field in ('subtotal', 'cleaning_fee', 'service_fee', 'taxes', 'total'):
        is_valid, error = validate_price(breakdown.get(field, 0))
        if not is_valid:
            errors.append(f'{field}: {error}')

    if not errors:
        expected = sum(float(breakdown.get(field, 0)) for field in ('subtotal', 'cleaning_fee', 'service_fee', 'taxes'))
        if abs(expected - float(breakdown.get('total', 0))) > BREAKDOWN_TOLERANCE:
            errors.append('Total amount does not match sum of components')

    return not errors, errors
