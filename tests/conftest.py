"""Shared pytest fixtures for budget engine tests."""

from decimal import Decimal
from pathlib import Path

import pytest

from budget_engine.catalog import TemplateCatalog
from budget_engine.models import CalculationPolicy, CompanySettings
from budget_engine.schema import TemplateSchema


def make_template(**overrides):
    """Template with one required numeric field, like the settings page example."""
    data = {
        "id": "tpl-obra",
        "name": "Obra",
        "company_id": "acme",
        "categories": [
            {
                "id": "cat-materiais",
                "name": "Materiais",
                "order": 1,
                "is_repeatable": False,
                "fields": [
                    {"id": "f-cimento", "label": "Cimento", "type": "number", "required": True, "default_cost": 25.0, "order": 1},
                ],
            }
        ],
    }
    data.update(overrides)
    return data


@pytest.fixture
def policy():
    return CalculationPolicy(tax_rate=Decimal("0.18"), profit_margin=Decimal("0.3"))


@pytest.fixture
def company():
    return CompanySettings(tax_rate=Decimal("0.18"), profit_margin=Decimal("0.3"))


@pytest.fixture
def simple_schema():
    """Single non-repeatable 'Materiais' category with required 'Cimento'."""
    return TemplateSchema.from_payload(make_template())


@pytest.fixture
def full_schema():
    """Two categories: a singular one with an optional field and a repeatable one."""
    return TemplateSchema.from_payload(
        make_template(
            strategy="industrial",
            categories=[
                {
                    "id": "cat-mao",
                    "name": "Mão de Obra",
                    "order": 2,
                    "is_repeatable": True,
                    "fields": [
                        {"id": "f-horas", "label": "Horas", "type": "number", "required": True, "default_cost": 10, "order": 1},
                        {"id": "f-obs", "label": "Observações", "type": "text", "order": 2},
                    ],
                },
                {
                    "id": "cat-materiais",
                    "name": "Materiais",
                    "order": 1,
                    "fields": [
                        {"id": "f-areia", "label": "Areia", "type": "number", "default_cost": 80, "order": 2},
                        {"id": "f-cimento", "label": "Cimento", "type": "number", "required": True, "default_cost": 25, "order": 1},
                    ],
                },
            ],
        )
    )


@pytest.fixture
def catalog(simple_schema, full_schema):
    other = TemplateSchema.from_payload(make_template(id="tpl-outra", company_id="other-co"))
    # full_schema shares an id with simple_schema, so give it its own
    full = TemplateSchema.from_payload({**full_schema.template.model_dump(), "id": "tpl-completo"})
    return TemplateCatalog([simple_schema, full, other])


@pytest.fixture
def configs_dir():
    """The sample configs directory shipped with the repo."""
    return Path(__file__).resolve().parents[1] / "configs"


@pytest.fixture
def template_factory():
    """Build raw template payloads, overriding top-level keys."""
    return make_template
