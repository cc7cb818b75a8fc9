# folio/factory.py
from dataclasses import dataclass
from typing import Optional

from folio.config_loader import FolioConfig, load_config
from folio.pagination.pager import Pager
from folio.pagination.resolver import PositionResolver
from folio.processor.parsers.factory import ParserFactory
from folio.publisher import Publisher
from folio.storage.repository import Repository


@dataclass
class Services:
    """Todo lo que una unidad de trabajo necesita, sobre una misma conexión."""
    config:    FolioConfig
    repo:      Repository
    resolver:  PositionResolver
    publisher: Publisher
    pager:     Pager

    def close(self) -> None:
        self.repo.close()


def build_services(
    db_path:     Optional[str] = None,
    config_path: Optional[str] = None,
    config:      Optional[FolioConfig] = None,
) -> Services:
    """
    Ensambla Repository, PositionResolver, Publisher y Pager.
    Punto de entrada único para el CLI y los tests de integración.

    db_path explícito gana sobre el del config (útil con ":memory:").
    """
    config = config or load_config(config_path)
    repo = Repository(
        db_path = db_path or config.db_path,
        timeout = config.timeout_seconds,
    )
    resolver = PositionResolver(repo, search_radius=config.search_radius)

    return Services(
        config    = config,
        repo      = repo,
        resolver  = resolver,
        publisher = Publisher(repo, resolver, ParserFactory()),
        pager     = Pager(repo, resolver, page_size=config.page_size, stride=config.stride),
    )
