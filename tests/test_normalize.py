"""Tests for line item shape detection and normalization."""

from decimal import Decimal

import pytest

from budget_engine.errors import ValidationError
from budget_engine.normalize.items import ItemShape, detect_shape, normalize_items, parse_items


def test_detect_nested_shape():
    items = [{"category_id": "cat-materiais", "field_values": {}, "order": 0}]
    assert detect_shape(items) is ItemShape.NESTED


def test_detect_flat_shape():
    assert detect_shape({"Cimento": {"value": 1}}) is ItemShape.FLAT
    assert detect_shape([{"field_values": {"Cimento": 1}}]) is ItemShape.FLAT
    assert detect_shape([]) is ItemShape.FLAT


def test_parse_flat_merges_entries():
    shape, parsed = parse_items([{"Cimento": 1}, {"Areia": 2, "order": 5}])
    assert shape is ItemShape.FLAT
    assert len(parsed) == 1
    assert parsed[0].field_values == {"Cimento": 1, "Areia": 2}


def test_parse_nested_accepts_camel_case_keys():
    shape, parsed = parse_items([{"categoryId": "c1", "fieldValues": {"X": 1}, "order": "3"}])
    assert shape is ItemShape.NESTED
    assert parsed[0].category_id == "c1"
    assert parsed[0].field_values == {"X": 1}
    assert parsed[0].order == 3


def test_nested_single_required_field(simple_schema):
    items = [{"category_id": "cat-materiais", "field_values": {"Cimento": {"value": 10, "unit_cost": 25}}, "order": 0}]
    lines = normalize_items(simple_schema, items)
    assert len(lines) == 1
    line = lines[0]
    assert (line.category_id, line.field_label) == ("cat-materiais", "Cimento")
    assert line.quantity == Decimal("10")
    assert line.unit_cost == Decimal("25")
    assert line.amount == Decimal("250")


def test_field_matched_by_id(simple_schema):
    items = [{"category_id": "cat-materiais", "field_values": {"f-cimento": {"value": 4}}}]
    lines = normalize_items(simple_schema, items)
    assert lines[0].quantity == Decimal("4")
    assert lines[0].unit_cost == Decimal("25")


def test_unit_cost_camel_case_and_scalar_value(simple_schema):
    items = [{"category_id": "cat-materiais", "field_values": {"Cimento": {"value": "2", "unitCost": "12.5"}}}]
    assert normalize_items(simple_schema, items)[0].amount == Decimal("25.0")

    scalar = [{"category_id": "cat-materiais", "field_values": {"Cimento": 3}}]
    line = normalize_items(simple_schema, scalar)[0]
    assert line.quantity == Decimal("3")
    assert line.unit_cost == Decimal("25")


def test_zero_quantity_satisfies_required(simple_schema):
    items = [{"category_id": "cat-materiais", "field_values": {"Cimento": {"value": 0, "unit_cost": 25}}}]
    lines = normalize_items(simple_schema, items)
    assert lines[0].quantity == Decimal("0")


def test_missing_required_field(simple_schema):
    items = [{"category_id": "cat-materiais", "field_values": {}}]
    with pytest.raises(ValidationError) as exc:
        normalize_items(simple_schema, items)
    assert exc.value.errors == ['Campo obrigatório "Cimento" não preenchido na categoria "Materiais"']


def test_blank_string_counts_as_missing(simple_schema):
    items = [{"category_id": "cat-materiais", "field_values": {"Cimento": {"value": "   "}}}]
    with pytest.raises(ValidationError, match="Cimento"):
        normalize_items(simple_schema, items)


def test_all_violations_collected(full_schema):
    items = [
        {"category_id": "cat-materiais", "field_values": {"Areia": {"value": 1}}, "order": 0},
        {"category_id": "cat-mao", "field_values": {"Observações": "urgente"}, "order": 1},
    ]
    with pytest.raises(ValidationError) as exc:
        normalize_items(full_schema, items)
    assert exc.value.errors == [
        'Campo obrigatório "Cimento" não preenchido na categoria "Materiais"',
        'Campo obrigatório "Horas" não preenchido na categoria "Mão de Obra"',
    ]


def test_required_numeric_field_must_be_numeric(simple_schema):
    items = [{"category_id": "cat-materiais", "field_values": {"Cimento": {"value": "dez"}}}]
    with pytest.raises(ValidationError) as exc:
        normalize_items(simple_schema, items)
    assert exc.value.errors == ['Campo numérico "Cimento" inválido na categoria "Materiais"']


def test_optional_non_numeric_is_zero(full_schema):
    items = [{"category_id": "cat-materiais", "field_values": {"Cimento": 1, "Areia": {"value": "abc", "unit_cost": "x"}}}]
    lines = normalize_items(full_schema, items)
    areia = [l for l in lines if l.field_label == "Areia"][0]
    assert areia.quantity == Decimal(0)
    assert areia.unit_cost == Decimal(0)


def test_absent_optional_field_uses_default_cost_and_zero_quantity(full_schema):
    items = [{"category_id": "cat-materiais", "field_values": {"Cimento": 2}}]
    lines = normalize_items(full_schema, items)
    areia = [l for l in lines if l.field_label == "Areia"][0]
    assert areia.quantity == Decimal(0)
    assert areia.unit_cost == Decimal("80")
    assert areia.amount == 0


def test_text_field_kept_as_value(full_schema):
    items = [{"category_id": "cat-mao", "field_values": {"Horas": 1, "Observações": "fim de semana"}}]
    lines = normalize_items(full_schema, items)
    obs = [l for l in lines if l.field_label == "Observações"][0]
    assert obs.value == "fim de semana"
    assert obs.quantity == Decimal(0)


def test_output_order_category_then_entry_then_field(full_schema):
    items = [
        {"category_id": "cat-mao", "field_values": {"Horas": 5}, "order": 2},
        {"category_id": "cat-materiais", "field_values": {"Cimento": 1}, "order": 0},
        {"category_id": "cat-mao", "field_values": {"Horas": 3}, "order": 1},
    ]
    lines = normalize_items(full_schema, items)
    keys = [(l.category_id, l.field_label, l.quantity) for l in lines]
    assert keys == [
        ("cat-materiais", "Cimento", Decimal(1)),
        ("cat-materiais", "Areia", Decimal(0)),
        ("cat-mao", "Horas", Decimal(3)),
        ("cat-mao", "Observações", Decimal(0)),
        ("cat-mao", "Horas", Decimal(5)),
        ("cat-mao", "Observações", Decimal(0)),
    ]
    assert [l.entry_index for l in lines] == [0, 0, 1, 1, 2, 2]


def test_non_repeatable_category_submitted_twice(full_schema):
    items = [
        {"category_id": "cat-materiais", "field_values": {"Cimento": 1}, "order": 0},
        {"category_id": "cat-materiais", "field_values": {"Cimento": 2}, "order": 1},
    ]
    with pytest.raises(ValidationError) as exc:
        normalize_items(full_schema, items)
    assert exc.value.errors == ['Categoria "Materiais" não permite múltiplos itens (2 enviados)']


def test_non_repeatable_twice_still_checks_fields(full_schema):
    items = [
        {"category_id": "cat-materiais", "field_values": {"Areia": 1}, "order": 0},
        {"category_id": "cat-materiais", "field_values": {"Areia": 2}, "order": 1},
    ]
    with pytest.raises(ValidationError) as exc:
        normalize_items(full_schema, items)
    assert exc.value.errors == [
        'Categoria "Materiais" não permite múltiplos itens (2 enviados)',
        'Campo obrigatório "Cimento" não preenchido na categoria "Materiais" (item 1)',
        'Campo obrigatório "Cimento" não preenchido na categoria "Materiais" (item 2)',
    ]


def test_repeated_entries_are_numbered_in_messages(full_schema):
    items = [
        {"category_id": "cat-mao", "field_values": {"Horas": 2}, "order": 0},
        {"category_id": "cat-mao", "field_values": {"Observações": "a"}, "order": 1},
        {"category_id": "cat-mao", "field_values": {}, "order": 2},
    ]
    with pytest.raises(ValidationError) as exc:
        normalize_items(full_schema, items)
    assert exc.value.errors == [
        'Campo obrigatório "Horas" não preenchido na categoria "Mão de Obra" (item 2)',
        'Campo obrigatório "Horas" não preenchido na categoria "Mão de Obra" (item 3)',
    ]


def test_negative_and_missing_reported_together(full_schema):
    items = [
        {"category_id": "cat-materiais", "field_values": {"Cimento": -3}, "order": 0},
        {"category_id": "cat-mao", "field_values": {"Observações": "x"}, "order": 1},
    ]
    with pytest.raises(ValidationError) as exc:
        normalize_items(full_schema, items)
    assert exc.value.errors == [
        'Valor negativo em quantidade do campo "Cimento" na categoria "Materiais"',
        'Campo obrigatório "Horas" não preenchido na categoria "Mão de Obra"',
    ]


def test_amount_above_limit_rejected(simple_schema):
    items = [{"category_id": "cat-materiais", "field_values": {"Cimento": {"value": "1e27", "unit_cost": 10}}}]
    with pytest.raises(ValidationError) as exc:
        normalize_items(simple_schema, items)
    assert exc.value.errors == ['Valor acima do limite em quantidade do campo "Cimento" na categoria "Materiais"']


def test_unknown_categories_numbered_by_position(simple_schema):
    items = [
        {"category_id": "cat-x", "field_values": {}, "order": 0},
        {"category_id": "cat-y", "field_values": {}, "order": 0},
    ]
    with pytest.raises(ValidationError) as exc:
        normalize_items(simple_schema, items)
    assert exc.value.errors == ["Categoria não encontrada para o item 1", "Categoria não encontrada para o item 2"]


def test_unknown_category_reported(simple_schema):
    items = [
        {"category_id": "cat-materiais", "field_values": {"Cimento": 1}, "order": 0},
        {"category_id": "cat-fantasma", "field_values": {}, "order": 1},
    ]
    with pytest.raises(ValidationError) as exc:
        normalize_items(simple_schema, items)
    assert exc.value.errors == ["Categoria não encontrada para o item 2"]


def test_unknown_field_keys_ignored(simple_schema):
    items = [{"category_id": "cat-materiais", "field_values": {"Cimento": 1, "Tijolo": 99}}]
    lines = normalize_items(simple_schema, items)
    assert [l.field_label for l in lines] == ["Cimento"]


def test_flat_shape_applies_to_every_category(full_schema):
    flat = {"Cimento": {"value": 2, "unit_cost": 30}, "Horas": {"value": 4}}
    lines = normalize_items(full_schema, flat)
    amounts = {(l.category_id, l.field_label): l.amount for l in lines}
    assert amounts[("cat-materiais", "Cimento")] == Decimal("60")
    assert amounts[("cat-mao", "Horas")] == Decimal("40")


def test_flat_shape_skips_unreferenced_categories(full_schema):
    lines = normalize_items(full_schema, {"Cimento": 1})
    assert {l.category_id for l in lines} == {"cat-materiais"}


def test_empty_submission_is_valid(full_schema):
    assert normalize_items(full_schema, []) == []
    assert normalize_items(full_schema, None) == []
