"""Runtime settings and YAML config loading.

Environment variables (optionally from a .env file):

- BUDGET_ENGINE_CONFIGS: configs directory holding company.yaml and templates/
- BUDGET_ENGINE_LOG_LEVEL: logging level name, default INFO
- BUDGET_ENGINE_DEFAULT_COMPANY: company id used when a request names none
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from .errors import SchemaError
from .models import CompanySettings
from .schema import TemplateSchema

load_dotenv()

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"


@dataclass(frozen=True)
class Settings:
    configs_dir: Path = field(default_factory=lambda: Path(os.getenv("BUDGET_ENGINE_CONFIGS", "configs")))
    log_level: str = field(default_factory=lambda: os.getenv("BUDGET_ENGINE_LOG_LEVEL", "INFO"))
    default_company: Optional[str] = field(default_factory=lambda: os.getenv("BUDGET_ENGINE_DEFAULT_COMPANY") or None)

    @property
    def templates_dir(self) -> Path:
        return self.configs_dir / "templates"

    @property
    def company_file(self) -> Path:
        return self.configs_dir / "company.yaml"


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )


def load_yaml(path: Path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_company_settings(path: Optional[Path]) -> CompanySettings:
    """Load company.yaml; a missing file means the default policy."""
    if path is None or not Path(path).exists():
        logger.info("No company settings at %s, using defaults", path)
        return CompanySettings()
    data = load_yaml(Path(path))
    # company.yaml may nest the values under a settings key
    if isinstance(data.get("settings"), dict):
        data = data["settings"]
    return CompanySettings(**data)


def load_template_file(path: Path) -> TemplateSchema:
    path = Path(path)
    try:
        data = load_yaml(path)
    except yaml.YAMLError as e:
        raise SchemaError(f"Could not parse template file {path.name}: {e}") from e
    return TemplateSchema.from_payload(data)
