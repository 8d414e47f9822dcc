from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from typing import Any, Optional

CENTS = Decimal("0.01")

# Quantities and unit costs above MAX_AMOUNT are rejected, so every total
# stays within MONEY_PRECISION digits when quantized to cents.
MAX_AMOUNT = Decimal("1e15")
MONEY_PRECISION = 50


def to_decimal(x: Any) -> Decimal:
    if isinstance(x, Decimal):
        return x
    if x is None:
        return Decimal(0)
    return Decimal(str(x))


def parse_number(x: Any) -> Optional[Decimal]:
    """Coerce a submitted value to Decimal.

    Returns None for anything that is not a finite number (blank strings,
    booleans, dicts, "abc", NaN). Accepts "1.234,50"-style input only when
    there is a single decimal comma.
    """
    if x is None or isinstance(x, bool):
        return None
    if isinstance(x, (int, float, Decimal)):
        value = to_decimal(x)
    elif isinstance(x, str):
        s = x.strip()
        if not s:
            return None
        if "," in s and s.count(",") == 1:
            s = s.replace(".", "").replace(",", ".")
        try:
            value = Decimal(s)
        except InvalidOperation:
            return None
    else:
        return None
    if not value.is_finite():
        return None
    return value


def quantize_money(amount: Decimal) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = MONEY_PRECISION
        return to_decimal(amount).quantize(CENTS, rounding=ROUND_HALF_UP)


def money(amount: Decimal, symbol: str = "R$", places: int = 2) -> str:
    q = Decimal(10) ** -places
    with localcontext() as ctx:
        ctx.prec = MONEY_PRECISION
        val = to_decimal(amount).quantize(q, rounding=ROUND_HALF_UP)
    parts = f"{val:.{places}f}".split(".")
    whole = parts[0]
    frac = parts[1] if len(parts) > 1 else "00"
    sign = ""
    if whole.startswith("-"):
        sign = "-"
        whole = whole[1:]
    whole_with_commas = "{:,}".format(int(whole))
    return f"{sign}{symbol} {whole_with_commas}.{frac}"


def percent(fraction: Decimal, places: int = 1) -> str:
    value = (to_decimal(fraction) * 100).quantize(Decimal(10) ** -places, rounding=ROUND_HALF_UP)
    return f"{value}%"
