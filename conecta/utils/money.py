"""Money parsing and formatting.

Amounts travel as ``Decimal`` end to end.  Display strings use two fraction
digits and comma thousands separators, the way the operators read MXN
amounts (``$1,234.50``).

parse_money:     operator input ("$1,234.50") → Decimal, None if unreadable
to_decimal:      stored / JSON value → Decimal, None → 0
quantize:        round half-up to cents
format_amount:   Decimal → "1,234.50"
format_currency: Decimal → "$1,234.50"
money_str:       Decimal → "1234.50" for JSON payloads (None stays None)
"""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

ZERO = Decimal("0")
CENT = Decimal("0.01")

_NON_NUMERIC = re.compile(r"[^\d.]")
_LEADING_NUMBER = re.compile(r"^\d*\.?\d*")


def to_decimal(value) -> Decimal:
    """Coerce a number, numeric string or None to Decimal.

    None and "" are treated as zero, matching how missing cost columns are
    summed.  Raises ValueError for anything else that is not numeric.
    """
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    try:
        return Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"Invalid amount: {value!r}") from exc


def parse_money(value) -> Decimal | None:
    """Parse operator-typed money text.

    Everything except digits and the decimal point is stripped (currency
    symbol, thousands separators, spaces), then the leading numeric prefix
    is read.  Returns None when no number remains or the value is not
    finite.

        "$1,234.50" → Decimal("1234.50")
        "$0.00"     → Decimal("0.00")
        "abc"       → None
    """
    if value is None:
        return None
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        amount = to_decimal(value)
        # NaN / infinity
        return amount if amount.is_finite() else None
    cleaned = _NON_NUMERIC.sub("", str(value))
    number = _LEADING_NUMBER.match(cleaned).group(0)
    if number in ("", "."):
        return None
    return Decimal(number)


def quantize(value) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def format_amount(value) -> str:
    """Two decimals with thousands separators, no symbol: ``1,234.50``."""
    return f"{quantize(value):,.2f}"


def format_currency(value) -> str:
    """Locale-style currency string: ``$1,234.50`` / ``-$5.00``."""
    amount = quantize(value)
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def money_str(value) -> str | None:
    """Serialise an amount for JSON (``"1234.50"``); None passes through."""
    if value is None:
        return None
    return f"{quantize(value):.2f}"
