"""Dashboard aggregates over a company's templates and budgets."""

from __future__ import annotations

from decimal import Decimal, localcontext
from typing import Iterable, Union

from .models import BudgetSummary, CompanyStats, Template
from .schema import TemplateSchema
from .utils import MONEY_PRECISION, quantize_money


def company_stats(
    templates: Iterable[Union[Template, TemplateSchema]],
    budgets: Iterable[BudgetSummary],
) -> CompanyStats:
    stats = CompanyStats()
    for t in templates:
        template = t.template if isinstance(t, TemplateSchema) else t
        stats.total_templates += 1
        if template.is_active:
            stats.active_templates += 1

    value = Decimal(0)
    with localcontext() as ctx:
        ctx.prec = MONEY_PRECISION
        for b in budgets:
            stats.total_budgets += 1
            if b.status == "draft":
                stats.draft_budgets += 1
            elif b.status == "sent":
                stats.sent_budgets += 1
            elif b.status == "approved":
                stats.approved_budgets += 1
            elif b.status == "rejected":
                stats.rejected_budgets += 1
            value += b.total
    stats.total_budget_value = quantize_money(value)
    return stats
