"""Budget calculation HTTP API.

GET  /health                       Liveness check.
GET  /api/templates/{template_id}  Template definition (company scoped).
POST /api/budgets/calculate        Calculate a budget from line items.
POST /api/budgets/preview          Same calculation rendered as HTML.
POST /api/companies/stats          Dashboard aggregates for the given budgets.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse

from ..catalog import TemplateCatalog
from ..config import Settings, load_company_settings, setup_logging
from ..errors import SchemaError, TemplateNotFoundError, ValidationError
from ..models import CalculateRequest, CalculationResponse, CompanySettings, CompanyStats, ErrorResponse, StatsRequest
from ..output.exporters.html import render_budget_preview
from ..output.formatter import format_error
from ..service import CalculationService
from ..stats import company_stats

logger = logging.getLogger(__name__)


def _error(status_code: int, body: ErrorResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def create_app(
    catalog: Optional[TemplateCatalog] = None,
    company: Optional[CompanySettings] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    settings = settings or Settings()
    if catalog is None:
        catalog = TemplateCatalog.from_dir(settings.templates_dir)
    if company is None:
        company = load_company_settings(settings.company_file)
    service = CalculationService(catalog, company)

    app = FastAPI(title="Budget Engine", version="0.1.0")
    app.state.service = service

    def _company_scope(x_company_id: Optional[str]) -> Optional[str]:
        return x_company_id or settings.default_company

    @app.exception_handler(ValidationError)
    async def _validation_error(request: Request, exc: ValidationError):
        return _error(400, format_error(exc))

    @app.exception_handler(TemplateNotFoundError)
    async def _template_not_found(request: Request, exc: TemplateNotFoundError):
        return _error(404, format_error(exc))

    @app.exception_handler(SchemaError)
    async def _schema_error(request: Request, exc: SchemaError):
        logger.error("Malformed template: %s", exc)
        return _error(400, format_error(exc))

    @app.exception_handler(RequestValidationError)
    async def _bad_request(request: Request, exc: RequestValidationError):
        errors = [
            f"{'.'.join(str(p) for p in e.get('loc', ()) if p != 'body')}: {e.get('msg')}"
            for e in exc.errors()
        ]
        return _error(400, ErrorResponse(message="Dados inválidos", errors=errors))

    @app.get("/health")
    def health():
        return {"status": "ok", "templates": len(catalog)}

    @app.get("/api/templates/{template_id}")
    def get_template(template_id: str, x_company_id: Optional[str] = Header(default=None)):
        schema = catalog.get(template_id, company_id=_company_scope(x_company_id))
        return {"success": True, "data": schema.template.model_dump(mode="json")}

    @app.post("/api/budgets/calculate", response_model=CalculationResponse)
    def calculate_budget(body: CalculateRequest, x_company_id: Optional[str] = Header(default=None)):
        return service.calculate(body, company_id=_company_scope(x_company_id))

    @app.post("/api/budgets/preview", response_class=HTMLResponse)
    def preview_budget(
        body: CalculateRequest,
        title: str = "",
        x_company_id: Optional[str] = Header(default=None),
    ):
        calc = service.run(body, company_id=_company_scope(x_company_id))
        return HTMLResponse(render_budget_preview(calc, service.company, title=title))

    @app.post("/api/companies/stats")
    def stats(body: StatsRequest, x_company_id: Optional[str] = Header(default=None)):
        templates = catalog.list(company_id=_company_scope(x_company_id))
        data: CompanyStats = company_stats(templates, body.budgets)
        return {"success": True, "data": data.model_dump(mode="json")}

    return app


def build_default_app() -> FastAPI:
    settings = Settings()
    setup_logging(settings.log_level)
    return create_app(settings=settings)
