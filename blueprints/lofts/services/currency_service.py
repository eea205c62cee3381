"""
Currency Service - Exchange rates and conversions.

Currency ratios are relative to the default currency (ratio 1). Rows are
cached per application; call clear_cache() after editing currencies.
"""

import logging
import math
from typing import Any, Dict, List

from flask import current_app

from models.currency import (
    get_all_currencies,
    get_currency_by_code as get_currency_row_by_code,
    get_currency_by_id as get_currency_row_by_id,
    get_default_currency_row
)
from utils.exceptions import CurrencyError

logger = logging.getLogger(__name__)

MAX_SAFE_AMOUNT = 2 ** 53 - 1


class CurrencyService:
    """Cached access to currencies and conversions."""

    def __init__(self):
        self._by_code: Dict[str, Dict[str, Any]] = {}
        self._loaded = False

    def _load(self) -> None:
        if self._loaded:
            return
        self._by_code = {row['code']: row for row in get_all_currencies()}
        self._loaded = True
        logger.debug(f"Loaded {len(self._by_code)} currencies")

    def clear_cache(self) -> None:
        self._by_code = {}
        self._loaded = False

    def get_currencies(self) -> List[Dict[str, Any]]:
        self._load()
        return list(self._by_code.values())

    def get_currency_by_code(self, code: str) -> Dict[str, Any]:
        """Currency row for a code, or None."""
        self._load()
        code = (code or '').upper()
        currency = self._by_code.get(code)
        if currency is None:
            # Added since the cache was filled
            currency = get_currency_row_by_code(code)
            if currency:
                self._by_code[code] = currency
        return currency

    def get_currency_by_id(self, currency_id: int) -> Dict[str, Any]:
        """
        Raises:
            CurrencyError: no currency with this ID
        """
        currency = get_currency_row_by_id(currency_id)
        if not currency:
            raise CurrencyError(f'Currency with ID {currency_id} not found')
        return currency

    def get_default_currency(self) -> Dict[str, Any]:
        """
        Raises:
            CurrencyError: no currency flagged as default
        """
        self._load()
        for currency in self._by_code.values():
            if currency.get('is_default'):
                return currency

        currency = get_default_currency_row()
        if not currency:
            raise CurrencyError('No default currency configured')
        return currency

    def get_exchange_rate(self, from_code: str, to_code: str) -> float:
        """
        Rate to multiply an amount in from_code by to get to_code.

        Raises:
            CurrencyError: unknown currency or invalid computed rate
        """
        if (from_code or '').upper() == (to_code or '').upper():
            return 1.0

        source = self.get_currency_by_code(from_code)
        target = self.get_currency_by_code(to_code)
        if not source or not target:
            raise CurrencyError('One or both currencies not found')

        source_ratio = float(source['ratio'] or 0)
        target_ratio = float(target['ratio'] or 0)
        if source_ratio == 0 or target_ratio == 0:
            logger.warning(f"Zero ratio for {from_code}/{to_code}, using 1.0")
            return 1.0

        rate = target_ratio / source_ratio
        if rate < 0 or math.isinf(rate) or math.isnan(rate):
            raise CurrencyError('Calculated exchange rate is invalid')
        return rate

    def convert_amount(self, amount, from_code: str, to_code: str) -> float:
        """
        Convert an amount between currencies, rounded to 2 decimals.

        Raises:
            CurrencyError: invalid amount or currencies
        """
        amount = validate_amount(amount)
        return round(amount * self.get_exchange_rate(from_code, to_code), 2)


def validate_amount(amount) -> float:
    """
    Check that an amount can be converted.

    Returns:
        The amount as float

    Raises:
        CurrencyError: not a finite, non-negative number within range
    """
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        raise CurrencyError('Amount must be a number')
    if math.isnan(amount) or math.isinf(amount):
        raise CurrencyError('Amount must be a finite number')
    if amount < 0:
        raise CurrencyError('Amount cannot be negative')
    if amount > MAX_SAFE_AMOUNT:
        raise CurrencyError('Amount is too large')
    return float(amount)


def get_currency_service() -> CurrencyService:
    """The current app's CurrencyService (created on first use)."""
    service = current_app.extensions.get('currency_service')
    if service is None:
        service = CurrencyService()
        current_app.extensions['currency_service'] = service
    return service


def get_exchange_rate(from_code: str, to_code: str) -> float:
    return get_currency_service().get_exchange_rate(from_code, to_code)


def convert_amount(amount, from_code: str, to_code: str) -> float:
    return get_currency_service().convert_amount(amount, from_code, to_code)


def get_default_currency() -> Dict[str, Any]:
    return get_currency_service().get_default_currency()


def clear_cache() -> None:
    get_currency_service().clear_cache()
