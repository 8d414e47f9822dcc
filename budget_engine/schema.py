"""Read-only traversal over a budget template.

Templates arrive either in the canonical nested shape
(template -> categories -> fields) or in the older flat shape where
``fields`` hang directly off the template. The flat shape is adapted once,
here, into a single non-repeatable category so nothing downstream has to
branch on it.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from .errors import SchemaError
from .models import Template, TemplateCategory, TemplateField


def _adapt_legacy(payload: Mapping[str, Any]) -> Dict[str, Any]:
    data = {k: v for k, v in payload.items() if k != "fields"}
    template_id = str(payload.get("id", ""))
    data["categories"] = [
        {
            "id": f"{template_id}:default",
            "name": payload.get("name") or "Geral",
            "order": 0,
            "is_repeatable": False,
            "fields": list(payload.get("fields") or []),
        }
    ]
    return data


class TemplateSchema:
    def __init__(self, template: Template):
        self.template = template
        self._categories: List[TemplateCategory] = sorted(template.categories, key=lambda c: c.order)
        self._by_id: Dict[str, TemplateCategory] = {}
        self._fields: Dict[str, List[TemplateField]] = {}
        self._by_label: Dict[str, Dict[str, TemplateField]] = {}
        self._by_field_id: Dict[str, Dict[str, TemplateField]] = {}
        self._validate()

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "TemplateSchema":
        """Build a schema from a raw dict in either template shape."""
        if not isinstance(payload, Mapping):
            raise SchemaError("Template payload must be a mapping")
        if "fields" in payload and not payload.get("categories"):
            payload = _adapt_legacy(payload)
        try:
            template = Template.model_validate(payload)
        except ValueError as e:
            raise SchemaError(f"Invalid template: {e}") from e
        return cls(template)

    def _validate(self) -> None:
        problems: List[str] = []
        seen_orders: Dict[int, str] = {}
        for cat in self._categories:
            if cat.id in self._by_id:
                problems.append(f"Duplicate category id '{cat.id}'")
                continue
            if cat.order in seen_orders:
                problems.append(
                    f"Categories '{seen_orders[cat.order]}' and '{cat.name}' share order {cat.order}"
                )
            seen_orders[cat.order] = cat.name
            self._by_id[cat.id] = cat

            fields = sorted(cat.fields, key=lambda f: f.order)
            labels: Dict[str, TemplateField] = {}
            ids: Dict[str, TemplateField] = {}
            for f in fields:
                if f.label in labels:
                    problems.append(f"Duplicate field label '{f.label}' in category '{cat.name}'")
                if f.id in ids:
                    problems.append(f"Duplicate field id '{f.id}' in category '{cat.name}'")
                labels[f.label] = f
                ids[f.id] = f
            self._fields[cat.id] = fields
            self._by_label[cat.id] = labels
            self._by_field_id[cat.id] = ids
        if problems:
            raise SchemaError(f"Malformed template '{self.template.id}': " + "; ".join(problems))

    @property
    def id(self) -> str:
        return self.template.id

    @property
    def name(self) -> str:
        return self.template.name

    @property
    def company_id(self) -> Optional[str]:
        return self.template.company_id

    @property
    def strategy(self) -> str:
        return self.template.strategy

    def categories(self) -> List[TemplateCategory]:
        return list(self._categories)

    def category(self, category_id: str) -> TemplateCategory:
        try:
            return self._by_id[category_id]
        except KeyError:
            raise SchemaError(f"Category '{category_id}' not found in template '{self.id}'") from None

    def has_category(self, category_id: str) -> bool:
        return category_id in self._by_id

    def fields(self, category_id: str) -> List[TemplateField]:
        self.category(category_id)
        return list(self._fields[category_id])

    def resolve_field(self, category_id: str, label: str) -> TemplateField:
        cat = self.category(category_id)
        field = self._by_label[category_id].get(label)
        if field is None:
            raise SchemaError(f"Field '{label}' not found in category '{cat.name}'")
        return field

    def lookup_field(self, category_id: str, key: str) -> Optional[TemplateField]:
        """Match a submitted key against a field id first, then its label."""
        self.category(category_id)
        return self._by_field_id[category_id].get(key) or self._by_label[category_id].get(key)

    def resolve_field_key(self, category_id: str, key: str) -> TemplateField:
        field = self.lookup_field(category_id, key)
        if field is None:
            raise SchemaError(f"Field '{key}' not found in category '{self.category(category_id).name}'")
        return field
