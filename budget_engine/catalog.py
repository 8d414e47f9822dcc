from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .config import load_template_file
from .errors import SchemaError, TemplateNotFoundError
from .schema import TemplateSchema

logger = logging.getLogger(__name__)


class TemplateCatalog:
    """Read-only set of templates, looked up per company."""

    def __init__(self, templates: Iterable[TemplateSchema] = ()):
        self._templates: Dict[str, TemplateSchema] = {}
        for schema in templates:
            if schema.id in self._templates:
                raise SchemaError(f"Duplicate template id '{schema.id}'")
            self._templates[schema.id] = schema

    @classmethod
    def from_dir(cls, templates_dir: Path) -> "TemplateCatalog":
        templates_dir = Path(templates_dir)
        if not templates_dir.exists():
            logger.warning("Templates directory %s not found, catalog is empty", templates_dir)
            return cls()
        paths = sorted(list(templates_dir.glob("*.yaml")) + list(templates_dir.glob("*.yml")))
        catalog = cls(load_template_file(p) for p in paths)
        logger.info("Loaded %d templates from %s", len(catalog), templates_dir)
        return catalog

    def __len__(self) -> int:
        return len(self._templates)

    def get(self, template_id: str, company_id: Optional[str] = None) -> TemplateSchema:
        """Return the template, or raise TemplateNotFoundError.

        A template owned by another company is reported the same way as a
        missing one.
        """
        schema = self._templates.get(template_id)
        if schema is None:
            raise TemplateNotFoundError(template_id)
        if company_id and schema.company_id and schema.company_id != company_id:
            raise TemplateNotFoundError(template_id)
        return schema

    def list(self, company_id: Optional[str] = None) -> List[TemplateSchema]:
        return [
            s for s in self._templates.values()
            if not company_id or not s.company_id or s.company_id == company_id
        ]
