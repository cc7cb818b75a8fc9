# pagination/resolver.py
"""
Continuidad de lectura entre revisiones.

El puntero de un lector es un bloque de la revisión A. Cuando se publica
la revisión B hay que moverlo al "mejor" bloque de B. El sequence no sirve
entre revisiones (cualquier inserción antes del lector lo desplaza) y el
fingerprint tampoco es una identidad perfecta (dos bloques pueden tener el
mismo texto). Por eso solo se usan como anclas los fingerprints canónicos:
los que aparecen exactamente una vez en A y exactamente una vez en B.

Tres niveles, gana el primero que resuelve:
  1. PERFECT: el bloque del lector es canónico → su gemelo en B.
  2. CLOSE:   el canónico más cercano en A (radio acotado); se conserva
               la distancia con signo respecto de ese ancla en B.
  3. ROUGH:   mismo porcentaje de avance en B.
"""
import logging
import math
from collections import Counter
from typing import Optional

from folio.errors import EmptyRevision
from folio.pagination.models import MatchTier, Position, RemappedPosition
from folio.storage.models import ReaderPosition, StoredBlock
from folio.storage.repository import Repository

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_RADIUS = 30


class RemapPlan:
    """
    Índices precalculados para un par (revisión vieja, revisión nueva).
    Se construye una vez por evento de publicación y se reutiliza para
    todos los lectores. Puro: no toca la DB.
    """

    def __init__(
        self,
        old_revision_id: int,
        old_blocks:      list[StoredBlock],
        new_revision_id: int,
        new_blocks:      list[StoredBlock],
        search_radius:   int = DEFAULT_SEARCH_RADIUS,
    ):
        if not new_blocks:
            raise EmptyRevision(new_revision_id)

        self.old_revision_id = old_revision_id
        self.new_revision_id = new_revision_id
        self._search_radius  = search_radius

        self._old_by_seq = {b.sequence: b for b in old_blocks}
        self._new_by_seq = {b.sequence: b for b in new_blocks}
        self._old_total  = len(old_blocks)
        self._new_total  = len(new_blocks)

        old_counts = Counter(b.fingerprint for b in old_blocks)
        new_counts = Counter(b.fingerprint for b in new_blocks)
        self._canonical: dict[str, StoredBlock] = {
            b.fingerprint: b
            for b in new_blocks
            if new_counts[b.fingerprint] == 1 and old_counts[b.fingerprint] == 1
        }

    def is_canonical(self, fp: Optional[str]) -> bool:
        return fp is not None and fp in self._canonical

    def remap(self, old_sequence: int, old_fingerprint: Optional[str]) -> RemappedPosition:
        block = self._perfect_match(old_fingerprint)
        if block is not None:
            return self._resolved(block, MatchTier.PERFECT)

        block = self._close_match(old_sequence)
        if block is not None:
            return self._resolved(block, MatchTier.CLOSE)

        return self._resolved(self._rough_match(old_sequence), MatchTier.ROUGH)

    # ------------------------------------------------------------------
    # Niveles
    # ------------------------------------------------------------------

    def _perfect_match(self, old_fingerprint: Optional[str]) -> StoredBlock | None:
        if self.is_canonical(old_fingerprint):
            return self._canonical[old_fingerprint]  # type: ignore[index]
        return None

    def _close_match(self, old_sequence: int) -> StoredBlock | None:
        anchor = self._nearest_anchor(old_sequence)
        if anchor is None:
            return None

        new_anchor = self._canonical[anchor.fingerprint]
        target = new_anchor.sequence + (old_sequence - anchor.sequence)
        return self._new_by_seq.get(target)

    def _nearest_anchor(self, old_sequence: int) -> StoredBlock | None:
        """A igual distancia gana el ancla anterior al lector."""
        for distance in range(self._search_radius + 1):
            for seq in (old_sequence - distance, old_sequence + distance):
                block = self._old_by_seq.get(seq)
                if block is not None and self.is_canonical(block.fingerprint):
                    return block
        return None

    def _rough_match(self, old_sequence: int) -> StoredBlock:
        if self._old_total <= 1:
            ratio = 0.0
        else:
            ratio = min(max(old_sequence / (self._old_total - 1), 0.0), 1.0)
        # round half up; round() de Python redondea al par
        target = math.floor(ratio * (self._new_total - 1) + 0.5)
        return self._new_by_seq[target]

    def _resolved(self, block: StoredBlock, tier: MatchTier) -> RemappedPosition:
        return RemappedPosition(
            revision_id=self.new_revision_id,
            block_id=block.id,
            sequence=block.sequence,
            tier=tier,
        )


class PositionResolver:
    """
    Traduce posiciones de lectores a la revisión live.
    Cachea un RemapPlan por par de revisiones: las revisiones son
    inmutables, así que el plan nunca queda viejo.
    """

    def __init__(self, repo: Repository, search_radius: int = DEFAULT_SEARCH_RADIUS):
        self._repo          = repo
        self._search_radius = search_radius
        self._plans: dict[tuple[int, int], RemapPlan] = {}

    def initial_position(self, revision_id: int) -> Position:
        """Primer bloque (sequence 0) de la revisión."""
        block = self._repo.get_block_at(revision_id, 0)
        if block is None:
            raise EmptyRevision(revision_id)
        return Position(revision_id=revision_id, block_id=block.id, sequence=0)

    def plan(self, old_revision_id: int, new_revision_id: int) -> RemapPlan:
        key = (old_revision_id, new_revision_id)
        if key not in self._plans:
            self._plans[key] = RemapPlan(
                old_revision_id = old_revision_id,
                old_blocks      = self._repo.get_all_blocks(old_revision_id),
                new_revision_id = new_revision_id,
                new_blocks      = self._repo.get_all_blocks(new_revision_id),
                search_radius   = self._search_radius,
            )
        return self._plans[key]

    def remap(
        self,
        old_revision_id: int,
        old_sequence:    int,
        old_fingerprint: Optional[str],
        new_revision_id: int,
    ) -> RemappedPosition:
        """
        Mejor bloque de new_revision_id para alguien que estaba en
        old_sequence de old_revision_id. Siempre devuelve algo salvo que
        la revisión nueva esté vacía (EmptyRevision).
        """
        result = self.plan(old_revision_id, new_revision_id).remap(
            old_sequence, old_fingerprint
        )
        if result.tier is MatchTier.ROUGH:
            logger.warning(
                "Remapeo aproximado %d:%d → %d:%d (sin anclas canónicas cerca)",
                old_revision_id, old_sequence, new_revision_id, result.sequence,
            )
        else:
            logger.debug(
                "Remapeo %s %d:%d → %d:%d",
                result.tier.value, old_revision_id, old_sequence,
                new_revision_id, result.sequence,
            )
        return result

    def remap_reader(self, position: ReaderPosition, new_revision_id: int) -> RemappedPosition:
        """Remapea una posición guardada; el fingerprint sale de su bloque."""
        block = self._repo.get_block_by_id(position.block_id)
        old_fingerprint = block.fingerprint if block else None
        return self.remap(
            position.revision_id, position.sequence, old_fingerprint, new_revision_id
        )
