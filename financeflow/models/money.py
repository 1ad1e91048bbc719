"""
Money Values

Every amount is persisted in the base currency (CHF). A user's display
currency only applies when an amount is shown or typed in:

    shown  = convert(stored, rate)
    stored = to_base(typed, rate)

Rates are static: units of display currency per 1 CHF.
No rounding happens here; only format_money() rounds, for presentation.
"""

from enum import Enum
from typing import Mapping, Optional, Union

from babel.numbers import format_currency


class Currency(str, Enum):
    """Supported display currencies."""
    CHF = "CHF"
    EUR = "EUR"
    USD = "USD"
    GBP = "GBP"


BASE_CURRENCY = Currency.CHF

EXCHANGE_RATES: dict[Currency, float] = {
    Currency.CHF: 1.0,
    Currency.EUR: 0.96,
    Currency.USD: 1.10,
    Currency.GBP: 0.85,
}


def rate_for(
    currency: Union[Currency, str],
    rates: Optional[Mapping[Currency, float]] = None,
) -> float:
    """
    Look up the display rate for a currency.

    Raises:
        ValueError: If the code is not a supported currency
        KeyError: If the currency has no rate in the table
    """
    table = EXCHANGE_RATES if rates is None else rates
    return table[Currency(currency)]


def convert(amount: float, rate: float) -> float:
    """Base currency amount -> display currency amount."""
    return amount * rate


def to_base(display_amount: float, rate: float) -> float:
    """Display currency amount -> base currency amount."""
    return display_amount / rate


def display(
    amount_base: float,
    target_currency: Union[Currency, str],
    rates: Optional[Mapping[Currency, float]] = None,
) -> float:
    """Convert a stored amount into the given display currency."""
    return convert(amount_base, rate_for(target_currency, rates))


def format_money(
    amount: float,
    currency: Union[Currency, str] = BASE_CURRENCY,
    locale: str = "fr_CH",
) -> str:
    """Render an amount as a two-decimal localized currency string."""
    return format_currency(
        amount,
        Currency(currency).value,
        locale=locale,
        format_type="standard",
    )
