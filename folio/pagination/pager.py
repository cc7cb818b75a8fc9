# pagination/pager.py
import logging
from typing import Optional

from folio.errors import NoLiveRevision
from folio.pagination.models import Direction, MatchTier, PageResult, Position
from folio.pagination.resolver import PositionResolver
from folio.storage.models import ReaderPosition
from folio.storage.repository import Repository

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 3
DEFAULT_STRIDE    = 3


class Pager:
    """
    Navegación bloque a bloque sobre la revisión live.

    El puntero de cada lector vive en reader_positions. Una página es una
    ventana de page_size bloques que empieza en el puntero; nunca el libro
    entero. Si el lector todavía apunta a una revisión vieja (publicación
    interrumpida a mitad del lote) se remapea aquí mismo antes de servir.
    """

    def __init__(
        self,
        repo:      Repository,
        resolver:  PositionResolver,
        page_size: int = DEFAULT_PAGE_SIZE,
        stride:    int = DEFAULT_STRIDE,
    ):
        self._repo      = repo
        self._resolver  = resolver
        self._page_size = page_size
        self._stride    = stride

    def view(self, reader_id: int) -> PageResult:
        """Ventana actual del lector, sin mover el puntero."""
        position = self._current_position(reader_id)
        return self._page(position, notice=self._take_notice(position))

    def navigate(
        self,
        reader_id:         int,
        direction:         Direction,
        stride:            Optional[int] = None,
        expected_sequence: Optional[int] = None,
    ) -> PageResult:
        """
        Mueve el puntero stride posiciones en la dirección indicada.

        expected_sequence es opcional: si no coincide con el sequence
        guardado, la navegación ya se aplicó (doble click, reintento del
        cliente) y se devuelve la ventana actual sin moverse.
        En un borde devuelve at_edge=True y no toca la DB.
        """
        stride = self._stride if stride is None else stride
        if stride <= 0:
            raise ValueError(f"stride debe ser positivo, recibido {stride}")

        position = self._current_position(reader_id)
        notice = self._take_notice(position)

        if expected_sequence is not None and expected_sequence != position.sequence:
            logger.debug(
                "Lector %d: navegación duplicada (esperado %d, actual %d)",
                reader_id, expected_sequence, position.sequence,
            )
            return self._page(position, notice=notice)

        if direction is Direction.FORWARD:
            target = self._repo.find_block_at_or_after(
                position.revision_id, position.sequence + stride
            )
        elif position.sequence == 0:
            target = None
        else:
            target = self._repo.find_block_at_or_before(
                position.revision_id, max(position.sequence - stride, 0)
            )

        if target is None:
            logger.debug("Lector %d en el borde (%s)", reader_id, direction.name)
            return self._page(position, notice=notice, at_edge=True)

        moved = self._repo.move_position(
            reader_id         = reader_id,
            revision_id       = position.revision_id,
            block_id          = target.id,
            sequence          = target.sequence,
            expected_sequence = position.sequence,
        )
        if not moved:
            # Otro request movió o remapeó al lector entre la lectura y el update
            current = self._repo.get_position(reader_id)
            return self._page(current, notice=notice)  # type: ignore[arg-type]

        logger.debug(
            "Lector %d: %d → %d (revisión %d)",
            reader_id, position.sequence, target.sequence, position.revision_id,
        )
        return self._page(
            Position(position.revision_id, target.id, target.sequence),
            notice=notice,
            moved=True,
        )

    # ------------------------------------------------------------------
    # Helpers privados
    # ------------------------------------------------------------------

    def _current_position(self, reader_id: int) -> ReaderPosition:
        live = self._repo.get_live_revision_id()
        if live is None:
            raise NoLiveRevision("Todavía no hay una revisión publicada")

        position = self._repo.get_position(reader_id)

        if position is None:
            start = self._resolver.initial_position(live)
            position = ReaderPosition(
                reader_id   = reader_id,
                revision_id = start.revision_id,
                block_id    = start.block_id,
                sequence    = start.sequence,
            )
            self._repo.save_position(position)
            logger.info("Lector %d empieza en la revisión %d", reader_id, live)
            return position

        if position.revision_id != live:
            remapped = self._resolver.remap_reader(position, live)
            self._repo.save_remapped_position(
                ReaderPosition(
                    reader_id   = reader_id,
                    revision_id = remapped.revision_id,
                    block_id    = remapped.block_id,
                    sequence    = remapped.sequence,
                    notice      = remapped.tier.value,
                ),
                expected_revision_id=position.revision_id,
            )
            logger.warning(
                "Lector %d seguía en la revisión %d; remapeado a %d (%s)",
                reader_id, position.revision_id, live, remapped.tier.value,
            )
            position = self._repo.get_position(reader_id)

        return position  # type: ignore[return-value]

    def _take_notice(self, position: ReaderPosition) -> Optional[MatchTier]:
        """El aviso de remapeo se muestra una sola vez."""
        if position.notice is None:
            return None
        self._repo.clear_notice(position.reader_id)
        return MatchTier(position.notice)

    def _page(
        self,
        position: ReaderPosition | Position,
        notice:   Optional[MatchTier] = None,
        moved:    bool = False,
        at_edge:  bool = False,
    ) -> PageResult:
        blocks = self._repo.list_blocks(
            position.revision_id, position.sequence, self._page_size
        )
        return PageResult(
            blocks   = blocks,
            position = Position(position.revision_id, position.block_id, position.sequence),
            moved    = moved,
            at_edge  = at_edge,
            notice   = notice,
        )
