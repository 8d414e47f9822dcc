"""Error types raised by the budget calculation core."""

from __future__ import annotations

from typing import Iterable, List, Optional


class BudgetEngineError(ValueError):
    """Base class for budget engine errors.

    Subclasses keep ValueError compatibility so callers that already catch
    ValueError around numeric parsing keep working.
    """


class SchemaError(BudgetEngineError):
    """Malformed template or a reference to a category/field it does not have."""


class TemplateNotFoundError(SchemaError):
    """Template does not exist or belongs to another company."""

    def __init__(self, template_id: str):
        super().__init__(template_not_found(template_id))
        self.template_id = template_id


class ValidationError(BudgetEngineError):
    """Submitted line items violate the template or the arithmetic rules.

    Carries every violation found, not only the first one.
    """

    def __init__(self, errors: Iterable[str], message: Optional[str] = None):
        self.errors: List[str] = list(errors)
        self.message = message or "Erro de validação"
        super().__init__(f"{self.message}: " + "; ".join(self.errors) if self.errors else self.message)


def _entry_suffix(repetition: Optional[int]) -> str:
    return f" (item {repetition})" if repetition else ""


def required_field_missing(field_label: str, category_name: str, repetition: Optional[int] = None) -> str:
    return f'Campo obrigatório "{field_label}" não preenchido na categoria "{category_name}"' + _entry_suffix(repetition)


def required_field_not_numeric(field_label: str, category_name: str, repetition: Optional[int] = None) -> str:
    return f'Campo numérico "{field_label}" inválido na categoria "{category_name}"' + _entry_suffix(repetition)


def category_not_found_for_item(position: int) -> str:
    return f"Categoria não encontrada para o item {position}"


def category_not_repeatable(category_name: str, count: int) -> str:
    return f'Categoria "{category_name}" não permite múltiplos itens ({count} enviados)'


def negative_value(kind: str, field_label: str, category_name: str, repetition: Optional[int] = None) -> str:
    return f'Valor negativo em {kind} do campo "{field_label}" na categoria "{category_name}"' + _entry_suffix(repetition)


def value_too_large(kind: str, field_label: str, category_name: str, repetition: Optional[int] = None) -> str:
    return f'Valor acima do limite em {kind} do campo "{field_label}" na categoria "{category_name}"' + _entry_suffix(repetition)


def template_not_found(template_id: str) -> str:
    return f"Template {template_id} não encontrado"
