from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional, Tuple

import typer

from .config import Settings, load_company_settings, load_template_file, load_yaml, setup_logging
from .errors import ValidationError
from .models import CompanySettings
from .output.formatter import format_error
from .service import Calculation, run_calculation

app = typer.Typer(help="Budget Engine CLI", add_completion=False, no_args_is_help=True)


def _load_items(path: Path) -> Any:
    """Read a calculate request (or just its items) from JSON or YAML."""
    if path.suffix.lower() in (".yaml", ".yml"):
        data = load_yaml(path)
    else:
        data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict) and "items" in data:
        return data["items"]
    return data


def _run(template_file: str, items_file: str, settings_file: Optional[str]) -> Tuple[Calculation, CompanySettings]:
    defaults = Settings()
    setup_logging(defaults.log_level)
    company = load_company_settings(Path(settings_file) if settings_file else defaults.company_file)
    schema = load_template_file(Path(template_file))
    items = _load_items(Path(items_file))
    return run_calculation(schema, items, company), company


def _fail(error: Exception) -> None:
    if isinstance(error, ValidationError):
        typer.echo(format_error(error).model_dump_json(indent=2))
    typer.echo(f"Error: {error}", err=True)
    raise typer.Exit(code=1)


@app.command()
def calculate(
    template_file: str = typer.Argument(..., help="Template YAML file"),
    items_file: str = typer.Argument(..., help="Items (or full calculate request) as JSON/YAML"),
    settings: Optional[str] = typer.Option(None, "--settings", help="Company settings YAML (tax rate, profit margin)"),
):
    """Calculate a budget and print the JSON response."""
    try:
        calc, _ = _run(template_file, items_file, settings)
    except (ValueError, OSError) as e:
        _fail(e)
        return
    typer.echo(calc.response.model_dump_json(indent=2))


@app.command()
def preview(
    template_file: str = typer.Argument(..., help="Template YAML file"),
    items_file: str = typer.Argument(..., help="Items (or full calculate request) as JSON/YAML"),
    out: str = typer.Option("budget-preview.html", help="Output HTML path"),
    title: str = typer.Option("", help="Budget title"),
    settings: Optional[str] = typer.Option(None, "--settings", help="Company settings YAML"),
):
    """Render the budget breakdown as an HTML page."""
    from .output.exporters.html import write_budget_preview

    try:
        calc, company = _run(template_file, items_file, settings)
    except (ValueError, OSError) as e:
        _fail(e)
        return
    out_file = write_budget_preview(calc, company, Path(out), title=title)
    typer.echo(f"Wrote {out_file}")


@app.command("check-template")
def check_template(template_file: str = typer.Argument(..., help="Template YAML file")):
    """Validate a template file and list its categories and fields."""
    try:
        schema = load_template_file(Path(template_file))
    except (ValueError, OSError) as e:
        _fail(e)
        return
    typer.echo(f"{schema.name} ({schema.id}) strategy={schema.strategy}")
    for cat in schema.categories():
        repeat = " [repetível]" if cat.is_repeatable else ""
        typer.echo(f"  {cat.order}. {cat.name}{repeat}")
        for f in schema.fields(cat.id):
            req = "*" if f.required else ""
            typer.echo(f"     - {f.label}{req} ({f.type}, custo padrão {f.default_unit_cost})")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address"),
    port: int = typer.Option(8000, help="Port"),
    reload: bool = typer.Option(False, help="Reload on code changes"),
):
    """Run the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run("budget_engine.web.app:build_default_app", host=host, port=port, reload=reload, factory=True)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
