from __future__ import annotations

from decimal import Decimal, localcontext
from typing import Dict, Iterable, List, Optional

from ..errors import ValidationError, negative_value, value_too_large
from ..models import CalculationPolicy, CalculationResult, NormalizedItem
from ..utils import MAX_AMOUNT, MONEY_PRECISION, quantize_money
from .pricing import apply_policy


def amount_violation(
    kind: str,
    number: Decimal,
    field_label: str,
    category_name: str,
    repetition: Optional[int] = None,
) -> Optional[str]:
    """Message for a quantity or unit cost outside 0..MAX_AMOUNT, else None."""
    if number < 0:
        return negative_value(kind, field_label, category_name, repetition)
    if number > MAX_AMOUNT:
        return value_too_large(kind, field_label, category_name, repetition)
    return None


def _check_amounts(items: List[NormalizedItem]) -> None:
    violations: List[str] = []
    for item in items:
        for kind, number in (("quantidade", item.quantity), ("custo unitário", item.unit_cost)):
            message = amount_violation(kind, number, item.field_label, item.category_name)
            if message:
                violations.append(message)
    if violations:
        raise ValidationError(violations)


def _sum_by(items: Iterable[NormalizedItem], key) -> Dict:
    totals: Dict = {}
    with localcontext() as ctx:
        ctx.prec = MONEY_PRECISION
        for item in items:
            k = key(item)
            totals[k] = totals.get(k, Decimal(0)) + item.amount
    return {k: quantize_money(v) for k, v in totals.items()}


def calculate(items: Iterable[NormalizedItem], policy: CalculationPolicy) -> CalculationResult:
    """Compute subtotal, profit, tax and total for normalized lines.

    An empty list is a valid draft and yields an all-zero result.
    """
    items = list(items)
    _check_amounts(items)
    with localcontext() as ctx:
        ctx.prec = MONEY_PRECISION
        subtotal = sum((item.amount for item in items), Decimal(0))
    return apply_policy(subtotal, policy)


def category_subtotals(items: Iterable[NormalizedItem]) -> Dict[str, Decimal]:
    return _sum_by(items, lambda item: item.category_id)


def entry_amounts(items: Iterable[NormalizedItem]) -> Dict[int, Decimal]:
    """Sum of line amounts per submitted entry, keyed by entry_index."""
    return _sum_by(items, lambda item: item.entry_index)
