"""
Price and quantity normalization

The one place where text read from the DOM becomes a number.

Separator convention: '.' is the decimal separator and ',' is a thousands
separator. Everything that is not a digit or '.' is discarded, then any '.'
left at either end is stripped (it belongs to a currency abbreviation such
as "Rs. 500", not to the number). More than one interior '.' is rejected.
"""

import re
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

DECIMAL_SEPARATOR = '.'
THOUSANDS_SEPARATOR = ','

_DISCARD = re.compile(r'[^0-9.]')


def quantum(precision: int) -> Decimal:
    """Smallest step at ``precision`` decimal places, e.g. 2 -> Decimal('0.01')"""
    return Decimal(1).scaleb(-precision)


def round_amount(value: Decimal, precision: int = 2) -> Decimal:
    return value.quantize(quantum(precision), rounding=ROUND_HALF_UP)


def _clean(text) -> str:
    if text is None:
        raise ValueError('Cannot parse a number from None')

    digits = _DISCARD.sub('', str(text)).strip(DECIMAL_SEPARATOR)
    if not digits:
        raise ValueError(f"No number in {text!r}")
    if digits.count(DECIMAL_SEPARATOR) > 1:
        raise ValueError(f"Ambiguous number {text!r}: more than one '{DECIMAL_SEPARATOR}'")
    return digits


def parse_amount(text: str, precision: int = 2) -> Decimal:
    """
    Parse a displayed price into a fixed-precision Decimal.

    >>> parse_amount('Rs. 1,500')
    Decimal('1500.00')
    >>> parse_amount('$ 12.5')
    Decimal('12.50')

    Raises:
        ValueError: when no number can be read from ``text``
    """
    try:
        return round_amount(Decimal(_clean(text)), precision)
    except InvalidOperation as e:
        raise ValueError(f"Unparseable amount {text!r}") from e


def parse_quantity(text: str) -> int:
    """Parse a displayed quantity; fractional quantities are rejected."""
    value = Decimal(_clean(text))
    if value != value.to_integral_value():
        raise ValueError(f"Fractional quantity {text!r}")
    return int(value)


def format_amount(value: Decimal, precision: int = 2) -> str:
    return f"{round_amount(value, precision):.{precision}f}"
