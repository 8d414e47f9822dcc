from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, PlainSerializer, model_validator


FieldType = Literal["text", "number", "select", "date", "boolean", "calculated"]
Strategy = Literal["default", "industrial", "service"]
BudgetStatus = Literal["draft", "sent", "approved", "rejected"]

NUMERIC_FIELD_TYPES = ("number", "calculated")

# Decimals stay exact in Python and go out as JSON numbers
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]
Rate = Annotated[Decimal, Field(ge=0, le=1), PlainSerializer(float, return_type=float, when_used="json")]


class TemplateField(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    label: str
    type: FieldType = "number"
    required: bool = False
    default_unit_cost: Money = Field(
        default=Decimal(0),
        ge=0,
        validation_alias=AliasChoices("default_unit_cost", "default_cost"),
    )
    options: Optional[Any] = None
    order: int = 0

    @property
    def is_numeric(self) -> bool:
        return self.type in NUMERIC_FIELD_TYPES


class TemplateCategory(BaseModel):
    id: str
    name: str
    order: int = 0
    is_repeatable: bool = False
    fields: List[TemplateField] = Field(default_factory=list)


class Template(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    is_active: bool = True
    company_id: Optional[str] = None
    strategy: Strategy = "default"
    categories: List[TemplateCategory] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _lift_strategy(cls, data: Any) -> Any:
        # Older payloads nest the strategy under calculation_rules
        if isinstance(data, dict) and "strategy" not in data:
            rules = data.get("calculation_rules") or {}
            if isinstance(rules, dict) and rules.get("strategy"):
                data = {**data, "strategy": rules["strategy"]}
        return data


class CalculationPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    tax_rate: Rate = Decimal(0)
    profit_margin: Rate = Decimal(0)


class CompanySettings(BaseModel):
    currency: str = "BRL"
    currency_symbol: str = "R$"
    tax_rate: Rate = Decimal("0.18")
    profit_margin: Rate = Decimal("0.30")

    def policy(self) -> CalculationPolicy:
        return CalculationPolicy(tax_rate=self.tax_rate, profit_margin=self.profit_margin)


@dataclass(frozen=True)
class NormalizedItem:
    """One (category, field, quantity, unit_cost) line after normalization.

    entry_index groups the lines that came from the same submitted item, so
    the formatter can rebuild per-item amounts.
    """

    category_id: str
    category_name: str
    field_id: str
    field_label: str
    quantity: Decimal
    unit_cost: Decimal
    entry_index: int = 0
    order: int = 0
    value: Any = None

    @property
    def amount(self) -> Decimal:
        return self.quantity * self.unit_cost


class CalculationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    subtotal: Money = Decimal("0.00")
    profit_amount: Money = Decimal("0.00")
    tax_amount: Money = Decimal("0.00")
    total: Money = Decimal("0.00")


# Request / response contract

class CalculateRequest(BaseModel):
    template_id: str
    # Either a list of per-category entries or a flat field-keyed map
    items: Union[List[Dict[str, Any]], Dict[str, Any]] = Field(default_factory=list)


class FieldLine(BaseModel):
    value: Any = None
    quantity: Money = Decimal(0)
    unit_cost: Money = Decimal(0)
    amount: Money = Decimal(0)


class CalculatedItem(BaseModel):
    category_id: str
    field_values: Dict[str, FieldLine] = Field(default_factory=dict)
    amount: Money = Decimal("0.00")
    order: int = 0


class CalculationData(BaseModel):
    subtotal: Money
    profit_amount: Money
    tax_amount: Money
    total: Money
    subtotals: Dict[str, Money] = Field(default_factory=dict)
    items: List[CalculatedItem] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class CalculationResponse(BaseModel):
    success: bool = True
    data: CalculationData


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    errors: List[str] = Field(default_factory=list)


# Dashboard aggregates

class BudgetSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str = ""
    status: BudgetStatus = "draft"
    template_id: Optional[str] = None
    total: Money = Field(
        default=Decimal(0),
        le=Decimal("1e30"),
        validation_alias=AliasChoices("total", "total_amount", "total_value"),
    )


class CompanyStats(BaseModel):
    total_templates: int = 0
    active_templates: int = 0
    total_budgets: int = 0
    draft_budgets: int = 0
    sent_budgets: int = 0
    approved_budgets: int = 0
    rejected_budgets: int = 0
    total_budget_value: Money = Decimal("0.00")


class StatsRequest(BaseModel):
    budgets: List[BudgetSummary] = Field(default_factory=list)
