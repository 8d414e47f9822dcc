"""Shape engine output into the calculate response contract.

Values are passed through as computed; nothing here rounds or adjusts.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from ..calculators.budget import category_subtotals, entry_amounts
from ..errors import BudgetEngineError, ValidationError
from ..models import (
    CalculatedItem,
    CalculationData,
    CalculationResponse,
    CalculationResult,
    ErrorResponse,
    FieldLine,
    NormalizedItem,
)
from ..utils import quantize_money


def _calculated_items(items: Sequence[NormalizedItem]) -> List[CalculatedItem]:
    amounts = entry_amounts(items)
    grouped: Dict[int, CalculatedItem] = {}
    for item in items:
        entry = grouped.get(item.entry_index)
        if entry is None:
            entry = CalculatedItem(
                category_id=item.category_id,
                amount=amounts[item.entry_index],
                order=item.order,
            )
            grouped[item.entry_index] = entry
        entry.field_values[item.field_label] = FieldLine(
            value=item.value,
            quantity=item.quantity,
            unit_cost=item.unit_cost,
            amount=quantize_money(item.amount),
        )
    return list(grouped.values())


def format_result(
    result: CalculationResult,
    items: Sequence[NormalizedItem],
    metadata: Optional[Dict[str, Any]] = None,
) -> CalculationResponse:
    items = list(items)
    data = CalculationData(
        subtotal=result.subtotal,
        profit_amount=result.profit_amount,
        tax_amount=result.tax_amount,
        total=result.total,
        subtotals=category_subtotals(items),
        items=_calculated_items(items),
        metadata=dict(metadata or {}),
    )
    return CalculationResponse(success=True, data=data)


def format_error(error: BudgetEngineError) -> ErrorResponse:
    if isinstance(error, ValidationError):
        return ErrorResponse(message=error.message, errors=list(error.errors))
    return ErrorResponse(message=str(error), errors=[str(error)])
