from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from ..errors import (
    ValidationError,
    category_not_found_for_item,
    category_not_repeatable,
    required_field_missing,
    required_field_not_numeric,
)
from ..calculators.budget import amount_violation
from ..models import NormalizedItem, TemplateCategory, TemplateField
from ..schema import TemplateSchema
from ..utils import parse_number, to_decimal

logger = logging.getLogger(__name__)

GROUPING_KEYS = ("category_id", "categoryId")
UNIT_COST_KEYS = ("unit_cost", "unitCost")
RESERVED_KEYS = {"order", "field_values", "fieldValues", *GROUPING_KEYS}


class ItemShape(str, Enum):
    NESTED = "nested"  # one entry per category occurrence, keyed by category_id
    FLAT = "flat"  # field-keyed map applied to every category


@dataclass(frozen=True)
class SubmittedItem:
    category_id: Optional[str]
    field_values: Dict[str, Any] = field(default_factory=dict)
    order: int = 0
    position: int = 0


Submission = Union[Iterable[Mapping[str, Any]], Mapping[str, Any], None]


def _entries(items: Submission) -> List[Any]:
    if items is None:
        return []
    if isinstance(items, Mapping):
        return [items]
    return list(items)


def detect_shape(items: Submission) -> ItemShape:
    """Classify a submission by whether any entry carries a category key."""
    for entry in _entries(items):
        if isinstance(entry, Mapping) and any(entry.get(k) not in (None, "") for k in GROUPING_KEYS):
            return ItemShape.NESTED
    return ItemShape.FLAT


def _entry_values(entry: Mapping[str, Any]) -> Dict[str, Any]:
    for key in ("field_values", "fieldValues"):
        values = entry.get(key)
        if isinstance(values, Mapping):
            return dict(values)
    return {k: v for k, v in entry.items() if k not in RESERVED_KEYS}


def _entry_order(entry: Mapping[str, Any], position: int) -> int:
    order = entry.get("order")
    if isinstance(order, bool):
        return position
    try:
        return int(order)
    except (TypeError, ValueError):
        return position


def parse_items(items: Submission) -> Tuple[ItemShape, List[SubmittedItem]]:
    """Parse a raw submission into one canonical list of SubmittedItem.

    FLAT submissions are merged into a single item with no category; later
    entries win on repeated keys.
    """
    shape = detect_shape(items)
    entries = _entries(items)

    if shape is ItemShape.FLAT:
        merged: Dict[str, Any] = {}
        for entry in entries:
            if isinstance(entry, Mapping):
                merged.update(_entry_values(entry))
        return shape, [SubmittedItem(category_id=None, field_values=merged)]

    parsed: List[SubmittedItem] = []
    for position, entry in enumerate(entries):
        if not isinstance(entry, Mapping):
            parsed.append(SubmittedItem(category_id=None, order=position, position=position))
            continue
        category_id = next((entry[k] for k in GROUPING_KEYS if entry.get(k) not in (None, "")), None)
        parsed.append(
            SubmittedItem(
                category_id=str(category_id) if category_id is not None else None,
                field_values=_entry_values(entry),
                order=_entry_order(entry, position),
                position=position,
            )
        )
    return shape, parsed


def _split_value(raw: Any) -> Tuple[Any, Any, Any]:
    """Return (value, quantity, unit_cost) from a submitted field entry.

    A mapping may carry value, quantity and unit_cost/unitCost; anything else
    is the value itself.
    """
    if isinstance(raw, Mapping):
        value = raw.get("value")
        quantity = raw.get("quantity", value)
        unit_cost = next((raw[k] for k in UNIT_COST_KEYS if k in raw), None)
        return value, quantity, unit_cost
    return raw, raw, None


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def _index_values(
    schema: TemplateSchema, category: TemplateCategory, values: Mapping[str, Any]
) -> Dict[str, Any]:
    indexed: Dict[str, Any] = {}
    for key, raw in values.items():
        f = schema.lookup_field(category.id, str(key))
        if f is None:
            logger.debug("Ignoring unknown field %r in category %r", key, category.name)
            continue
        indexed[f.id] = raw
    return indexed


def _normalize_field(
    f: TemplateField,
    category: TemplateCategory,
    raw: Any,
    violations: List[str],
    repetition: Optional[int] = None,
) -> Optional[Tuple[Decimal, Decimal, Any]]:
    value, quantity_raw, unit_cost_raw = _split_value(raw)

    if f.required and _is_empty(value) and _is_empty(quantity_raw):
        violations.append(required_field_missing(f.label, category.name, repetition))
        return None

    quantity = parse_number(quantity_raw)
    if quantity is None:
        if f.is_numeric and f.required:
            violations.append(required_field_not_numeric(f.label, category.name, repetition))
            return None
        quantity = Decimal(0)

    if _is_empty(unit_cost_raw):
        unit_cost = to_decimal(f.default_unit_cost)
    else:
        unit_cost = parse_number(unit_cost_raw)
        if unit_cost is None:
            if f.is_numeric and f.required:
                violations.append(required_field_not_numeric(f.label, category.name, repetition))
                return None
            unit_cost = Decimal(0)

    bad = [
        message
        for message in (
            amount_violation("quantidade", quantity, f.label, category.name, repetition),
            amount_violation("custo unitário", unit_cost, f.label, category.name, repetition),
        )
        if message
    ]
    if bad:
        violations.extend(bad)
        return None

    return quantity, unit_cost, value


def _group_by_category(
    schema: TemplateSchema,
    shape: ItemShape,
    submitted: List[SubmittedItem],
    violations: List[str],
) -> Dict[str, List[SubmittedItem]]:
    groups: Dict[str, List[SubmittedItem]] = {}
    if shape is ItemShape.FLAT:
        flat = submitted[0] if submitted else SubmittedItem(category_id=None)
        for cat in schema.categories():
            if _index_values(schema, cat, flat.field_values):
                groups[cat.id] = [
                    SubmittedItem(cat.id, flat.field_values, order=cat.order, position=flat.position)
                ]
        return groups

    for item in submitted:
        if item.category_id is None or not schema.has_category(item.category_id):
            violations.append(category_not_found_for_item(item.position + 1))
            continue
        groups.setdefault(item.category_id, []).append(item)
    return groups


def normalize_items(schema: TemplateSchema, items: Submission) -> List[NormalizedItem]:
    """Turn a raw submission into ordered (category, field, quantity, unit_cost) lines.

    Lines come out in category order, then submission order within a
    repeatable category, then field order. Every violation is collected
    before raising ValidationError.
    """
    shape, submitted = parse_items(items)
    violations: List[str] = []
    groups = _group_by_category(schema, shape, submitted, violations)

    out: List[NormalizedItem] = []
    entry_index = 0
    for cat in schema.categories():
        entries = sorted(groups.get(cat.id, []), key=lambda i: (i.order, i.position))
        if not cat.is_repeatable and len(entries) > 1:
            # Fields are still checked; the raise below discards the lines
            violations.append(category_not_repeatable(cat.name, len(entries)))
        for n, entry in enumerate(entries, start=1):
            repetition = n if len(entries) > 1 else None
            values = _index_values(schema, cat, entry.field_values)
            for f in schema.fields(cat.id):
                normalized = _normalize_field(f, cat, values.get(f.id), violations, repetition)
                if normalized is None:
                    continue
                quantity, unit_cost, value = normalized
                out.append(
                    NormalizedItem(
                        category_id=cat.id,
                        category_name=cat.name,
                        field_id=f.id,
                        field_label=f.label,
                        quantity=quantity,
                        unit_cost=unit_cost,
                        entry_index=entry_index,
                        order=entry.order,
                        value=value,
                    )
                )
            entry_index += 1

    if violations:
        raise ValidationError(violations)
    return out
