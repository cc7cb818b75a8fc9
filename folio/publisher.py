# folio/publisher.py
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Optional

from folio.errors import EmptyRevision
from folio.pagination.models import MatchTier
from folio.pagination.resolver import PositionResolver
from folio.processor.parsers.factory import ParserFactory
from folio.processor.parsers.txt_parser import parse_text
from folio.storage.models import ReaderPosition, StoredRevision
from folio.storage.repository import Repository

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Resultado de publicar, lo que el CLI consume
# ------------------------------------------------------------------

@dataclass
class PublishResult:
    revision_id:          int
    previous_revision_id: Optional[int]
    live_version:         int
    remapped:             int = 0
    skipped:              int = 0
    by_tier:              Counter = field(default_factory=Counter)


# ------------------------------------------------------------------
# Publisher
# ------------------------------------------------------------------

class Publisher:
    """
    Flujo del admin: importar texto → revisión nueva → publicarla.
    No tiene lógica de negocio propia, coordina módulos.

    Responsabilidades:
    - Parsear y persistir cada import como revisión nueva
    - Cambiar la revisión live
    - Remapear a todos los lectores que quedaron en otra revisión,
      un RemapPlan por revisión vieja, un upsert atómico por lector
    """

    def __init__(
        self,
        repo:           Repository,
        resolver:       PositionResolver,
        parser_factory: Optional[ParserFactory] = None,
    ):
        self._repo           = repo
        self._resolver       = resolver
        self._parser_factory = parser_factory or ParserFactory()

    def import_text(self, raw: str, publish: bool = False) -> StoredRevision:
        revision = self._repo.persist_book(parse_text(raw))
        if publish:
            self.publish(revision.id)
        return revision

    def import_file(self, file_path: str, publish: bool = False) -> StoredRevision:
        """
        Raises:
            FileNotFoundError / UnsupportedFormatError: desde el ParserFactory.
        """
        book = self._parser_factory.parse(file_path)
        revision = self._repo.persist_book(book)
        logger.info("Importado %s como revisión %d", file_path, revision.id)
        if publish:
            self.publish(revision.id)
        return revision

    def publish(self, revision_id: int) -> PublishResult:
        """
        Marca revision_id como live y remapea a los lectores.
        El swap es atómico; el lote de remapeos no lo es, pero cada lector
        sí (revisión + sequence en un solo upsert condicional). Un lector
        que falte por una caída a mitad de lote se remapea en su próxima
        visita (Pager.view).

        Raises:
            EmptyRevision: la revisión no existe o no tiene bloques.
            PersistenceFailure: error de SQLite, sin reintentos.
        """
        if self._repo.count_blocks(revision_id) == 0:
            raise EmptyRevision(revision_id)

        previous = self._repo.get_live_revision_id()
        live = self._repo.set_live(revision_id)

        result = PublishResult(
            revision_id          = revision_id,
            previous_revision_id = previous,
            live_version         = live.version,
        )

        for position in self._repo.get_positions_not_on(revision_id):
            remapped = self._resolver.remap_reader(position, revision_id)
            saved = self._repo.save_remapped_position(
                ReaderPosition(
                    reader_id   = position.reader_id,
                    revision_id = remapped.revision_id,
                    block_id    = remapped.block_id,
                    sequence    = remapped.sequence,
                    notice      = remapped.tier.value,
                ),
                expected_revision_id=position.revision_id,
            )
            if not saved:
                # El lector se movió de revisión entre la lectura y el upsert
                result.skipped += 1
                continue

            result.remapped += 1
            result.by_tier[remapped.tier] += 1
            logger.info(
                "Lector %d: revisión %d:%d → %d:%d (%s)",
                position.reader_id, position.revision_id, position.sequence,
                revision_id, remapped.sequence, remapped.tier.value,
            )

        logger.info(
            "Revisión %d publicada (versión %d): %d lectores remapeados, "
            "%d perfect, %d close, %d rough",
            revision_id, live.version, result.remapped,
            result.by_tier[MatchTier.PERFECT],
            result.by_tier[MatchTier.CLOSE],
            result.by_tier[MatchTier.ROUGH],
        )
        return result
