from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from .calculators.budget import calculate
from .catalog import TemplateCatalog
from .errors import ValidationError
from .models import CalculateRequest, CalculationResponse, CalculationResult, CompanySettings, NormalizedItem
from .normalize.items import Submission, normalize_items
from .output.formatter import format_result
from .schema import TemplateSchema

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Calculation:
    schema: TemplateSchema
    items: List[NormalizedItem]
    result: CalculationResult
    response: CalculationResponse


def run_calculation(schema: TemplateSchema, items: Submission, company: CompanySettings) -> Calculation:
    """Normalize, calculate and format one submission against one template."""
    try:
        normalized = normalize_items(schema, items)
        result = calculate(normalized, company.policy())
    except ValidationError as e:
        logger.warning("Validation failed for template %s: %d errors", schema.id, len(e.errors))
        raise
    response = format_result(
        result,
        normalized,
        metadata={
            "template_id": schema.id,
            "strategy": schema.strategy,
            "currency": company.currency,
        },
    )
    logger.info(
        "Calculated template=%s lines=%d total=%s",
        schema.id,
        len(normalized),
        result.total,
    )
    return Calculation(schema=schema, items=normalized, result=result, response=response)


class CalculationService:
    def __init__(self, catalog: TemplateCatalog, company: CompanySettings):
        self.catalog = catalog
        self.company = company

    def run(self, request: CalculateRequest, company_id: Optional[str] = None) -> Calculation:
        schema = self.catalog.get(request.template_id, company_id=company_id)
        return run_calculation(schema, request.items, self.company)

    def calculate(self, request: CalculateRequest, company_id: Optional[str] = None) -> CalculationResponse:
        return self.run(request, company_id=company_id).response
