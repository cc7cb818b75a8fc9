from dataclasses import dataclass
from enum import Enum
from typing import Optional

from folio.storage.models import StoredBlock


class MatchTier(Enum):
    """Qué estrategia resolvió un remapeo. Se guarda como aviso para el lector."""
    PERFECT = "perfect"
    CLOSE   = "close"
    ROUGH   = "rough"


class Direction(Enum):
    FORWARD = 1
    BACK    = -1


_NOTICES: dict[MatchTier, str] = {
    MatchTier.PERFECT: (
        "El libro se actualizó. Sigues exactamente en el mismo párrafo."
    ),
    MatchTier.CLOSE: (
        "El libro se actualizó. Tu posición se ajustó a un párrafo cercano."
    ),
    MatchTier.ROUGH: (
        "El libro se actualizó bastante. Te ubicamos en el mismo "
        "porcentaje de avance del libro."
    ),
}


def describe_notice(tier: MatchTier) -> str:
    return _NOTICES[tier]


@dataclass(frozen=True)
class Position:
    revision_id: int
    block_id:    int
    sequence:    int


@dataclass(frozen=True)
class RemappedPosition(Position):
    tier: MatchTier = MatchTier.ROUGH


@dataclass
class PageResult:
    """
    Lo que consume la capa de render: una pantalla de bloques.
    at_edge: no hay más páginas en esa dirección (el puntero no se movió).
    notice:  tier del último remapeo si el lector todavía no lo había visto.
    """
    blocks:   list[StoredBlock]
    position: Position
    moved:    bool = False
    at_edge:  bool = False
    notice:   Optional[MatchTier] = None
