# folio/config_loader.py
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

_DEFAULT_CONFIG_PATH = Path.home() / ".folio" / "config.yaml"


@dataclass
class FolioConfig:
    """
    Configuración de folio.
    Se carga desde ~/.folio/config.yaml; todos los campos tienen default.
    """
    db_path:         Optional[str] = None   # None → FOLIO_DB_PATH o ~/.folio/folio.db
    page_size:       int   = 3
    stride:          int   = 3
    search_radius:   int   = 30
    timeout_seconds: float = 5.0


def load_config(config_path: Optional[str] = None) -> FolioConfig:
    """
    Carga la configuración desde YAML.
    Sin archivo en la ruta por defecto → defaults.
    Con una ruta explícita (argumento o FOLIO_CONFIG_PATH) que no existe → FileNotFoundError.
    Resuelve variables de entorno en valores ${VAR}.
    """
    explicit = config_path or os.environ.get("FOLIO_CONFIG_PATH")
    path = Path(explicit or _DEFAULT_CONFIG_PATH)

    if not path.exists():
        if explicit:
            raise FileNotFoundError(
                f"Config no encontrada en {path}. "
                f"Copia config.example.yaml a ~/.folio/config.yaml"
            )
        return FolioConfig()

    with path.open(encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    config = FolioConfig(
        db_path         = _resolve_env(raw.get("db_path")),
        page_size       = int(raw.get("page_size", 3)),
        stride          = int(raw.get("stride", 3)),
        search_radius   = int(raw.get("search_radius", 30)),
        timeout_seconds = float(raw.get("timeout_seconds", 5.0)),
    )

    if config.page_size <= 0 or config.stride <= 0:
        raise ValueError(f"page_size y stride deben ser positivos ({path})")
    if config.search_radius < 0:
        raise ValueError(f"search_radius no puede ser negativo ({path})")

    return config


def _resolve_env(value: Optional[str]) -> Optional[str]:
    """Expande ${VAR_NAME} desde el entorno."""
    if not value or not str(value).startswith("${"):
        return value
    var_name = value.strip("${}").strip()
    return os.environ.get(var_name)
