from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ...models import CompanySettings
from ...service import Calculation
from ...utils import money, percent

TEMPLATES_DIR = Path(__file__).parent / "templates"


def _env() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=select_autoescape(["html", "j2"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )


def _sections(calc: Calculation) -> List[Dict[str, Any]]:
    """Group breakdown lines per category, in template order, skipping empty lines."""
    data = calc.response.data
    sections: List[Dict[str, Any]] = []
    for cat in calc.schema.categories():
        entries = [i for i in data.items if i.category_id == cat.id]
        if not entries:
            continue
        rows = []
        for n, entry in enumerate(entries, start=1):
            for label, line in entry.field_values.items():
                if not line.amount and not line.quantity:
                    continue
                rows.append(
                    {
                        "label": label if len(entries) == 1 else f"{label} #{n}",
                        "quantity": line.quantity,
                        "unit_cost": line.unit_cost,
                        "amount": line.amount,
                    }
                )
        sections.append({"name": cat.name, "rows": rows, "subtotal": data.subtotals.get(cat.id, 0)})
    return sections


def render_budget_preview(calc: Calculation, company: CompanySettings, title: str = "") -> str:
    template = _env().get_template("budget_preview.html.j2")
    data = calc.response.data
    return template.render(
        title=title or calc.schema.name,
        template=calc.schema.template,
        sections=_sections(calc),
        data=data,
        company=company,
        format_money=lambda x: money(x, company.currency_symbol),
        format_percent=percent,
    )


def write_budget_preview(calc: Calculation, company: CompanySettings, out_path: Path, title: str = "") -> Path:
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(render_budget_preview(calc, company, title=title), encoding="utf-8")
    return out_path
