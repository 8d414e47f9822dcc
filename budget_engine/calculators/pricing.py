from __future__ import annotations

from decimal import Decimal, localcontext

from ..models import CalculationPolicy, CalculationResult
from ..utils import MONEY_PRECISION, quantize_money, to_decimal


def apply_policy(subtotal: Decimal, policy: CalculationPolicy) -> CalculationResult:
    """Derive profit, tax and total from an unrounded subtotal.

    Tax is charged on subtotal + profit. Each component is rounded half-up to
    cents only here, and total is the sum of the rounded components so that
    subtotal + profit_amount + tax_amount == total holds exactly.
    """
    with localcontext() as ctx:
        ctx.prec = MONEY_PRECISION
        subtotal = to_decimal(subtotal)
        profit = subtotal * to_decimal(policy.profit_margin)
        tax = (subtotal + profit) * to_decimal(policy.tax_rate)

        subtotal_out = quantize_money(subtotal)
        profit_out = quantize_money(profit)
        tax_out = quantize_money(tax)
        total = subtotal_out + profit_out + tax_out
    return CalculationResult(
        subtotal=subtotal_out,
        profit_amount=profit_out,
        tax_amount=tax_out,
        total=total,
    )
