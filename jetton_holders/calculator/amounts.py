"""Fixed-point conversions for raw ledger amounts.

Jetton balances arrive as integers in the smallest unit, scaled by
``10 ** decimals``. Supplies routinely exceed 2**53, so every conversion on
the display and percentage path uses exact integer division:

- display    = raw // 10**decimals "." (raw % 10**decimals, zero-padded, trimmed)
- percentage = raw * 100 * 10**digits // total_supply, shown with ``digits`` places

Float only appears in :func:`to_number`, which feeds the fiat value and must
never be accumulated further. None of these helpers raise on bad input; they
return :data:`UNAVAILABLE` (or ``None``) so a render pass is never aborted.
"""

import logging
import re
from fractions import Fraction
from typing import Any

from ..core.types import UNAVAILABLE

logger = logging.getLogger(__name__)

_INT_PATTERN = re.compile(r"^([+-]?\d+)(?:\.0*)?$")


def coerce_int(value: Any) -> int | None:
    """Interpret ``value`` as an exact integer, or return None.

    Accepts ints, integer-like strings (surrounding whitespace allowed, a
    fractional part of zeros such as "0.0" included) and floats with no
    fractional part. Booleans are rejected.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        match = _INT_PATTERN.match(text)
        if match:
            return int(match.group(1))
        return None
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def to_display(raw: Any, decimals: Any, group_thousands: bool = False) -> str:
    """
    Render a raw amount as a decimal string without losing precision.

    Args:
        raw: Amount in the smallest unit (int or integer-like string)
        decimals: Decimal exponent of the token
        group_thousands: Insert "," separators in the integer part

    Returns:
        e.g. ``to_display(1_500_000_000, 9) == "1.5"``; the sentinel on bad input
    """
    n = coerce_int(raw)
    d = coerce_int(decimals)
    if n is None or d is None or d < 0:
        return UNAVAILABLE

    sign = "-" if n < 0 else ""
    whole, frac = divmod(abs(n), 10**d)
    frac_text = str(frac).rjust(d, "0").rstrip("0") if d else ""
    whole_text = f"{whole:,}" if group_thousands else str(whole)

    if frac_text:
        return f"{sign}{whole_text}.{frac_text}"
    return f"{sign}{whole_text}"


def to_number(raw: Any, decimals: Any) -> float | None:
    """Float approximation of a raw amount, for fiat multiplication only."""
    n = coerce_int(raw)
    d = coerce_int(decimals)
    if n is None or d is None or d < 0:
        return None
    # int / int is correctly rounded even past 2**53
    return n / 10**d


def percent_of(raw: Any, total: Any, decimals: int = 3) -> str:
    """
    Share of ``total`` held by ``raw``, as a percentage string.

    Truncates (never rounds up) at ``decimals`` fractional digits, so with the
    default of 3 this is ``raw * 10**5 // total`` thousandths of a percent.
    Returns the sentinel when ``total`` is zero or either input is malformed.
    """
    n = coerce_int(raw)
    t = coerce_int(total)
    if n is None or t is None or t <= 0 or decimals < 0:
        return UNAVAILABLE

    scale = 10**decimals
    scaled = abs(n) * 100 * scale // t
    sign = "-" if n < 0 and scaled else ""
    whole, frac = divmod(scaled, scale)
    if decimals:
        return f"{sign}{whole}.{frac:0{decimals}d}%"
    return f"{sign}{whole}%"


def share_ratio(raw: Any, total: Any) -> Fraction | None:
    """Exact share of supply, for ordering; None when it cannot be computed."""
    n = coerce_int(raw)
    t = coerce_int(total)
    if n is None or t is None or t <= 0:
        return None
    return Fraction(n, t)


def format_change(delta: int | None, decimals: int) -> str:
    """
    Render a signed 24h balance change.

    ``None`` (no data reported) shows the sentinel, a reported zero shows
    ``"0"``, and positive values carry an explicit ``+``.
    """
    if delta is None:
        return UNAVAILABLE
    n = coerce_int(delta)
    if n is None:
        return UNAVAILABLE
    if n == 0:
        return "0"
    text = to_display(n, decimals)
    return f"+{text}" if n > 0 else text


def fiat_value(raw: Any, decimals: Any, price_usd: float | None) -> float | None:
    """USD value of a raw amount at ``price_usd``; None when price is unknown."""
    if price_usd is None:
        return None
    amount = to_number(raw, decimals)
    if amount is None:
        return None
    return amount * price_usd


def format_usd(value: float | None) -> str:
    """Format a USD amount, or the sentinel when unavailable."""
    if value is None:
        return UNAVAILABLE
    return f"${value:,.2f}"


class ScaledAmount:
    """Conversions bound to one token's decimal exponent.

    A session creates one from :class:`TokenMeta` and uses it for every
    balance it shows, so the scale cannot drift between columns.
    """

    def __init__(self, decimals: int, total_supply: int = 0):
        if decimals < 0:
            raise ValueError(f"decimals must be non-negative, got {decimals}")
        self.decimals = decimals
        self.total_supply = total_supply

    def display(self, raw: Any, group_thousands: bool = False) -> str:
        return to_display(raw, self.decimals, group_thousands=group_thousands)

    def number(self, raw: Any) -> float | None:
        return to_number(raw, self.decimals)

    def percent(self, raw: Any, digits: int = 3) -> str:
        return percent_of(raw, self.total_supply, decimals=digits)

    def change(self, delta: int | None) -> str:
        return format_change(delta, self.decimals)

    def usd(self, raw: Any, price_usd: float | None) -> float | None:
        return fiat_value(raw, self.decimals, price_usd)
