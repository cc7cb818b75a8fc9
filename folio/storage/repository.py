# storage/repository.py
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional

from folio.errors import PersistenceFailure
from folio.processor.fingerprint import fingerprint
from folio.processor.models import Book, BlockType
from folio.storage.db import SINGLETON_BOOK_ID, get_connection, init_schema
from folio.storage.models import (
    LiveRevision, ReaderPosition,
    StoredBlock, StoredComment, StoredReader, StoredRevision,
)

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Repository:
    """
    Única interfaz entre el resto de la aplicación y SQLite.
    Recibe un db_path para facilitar el testing con :memory:.

    Una instancia = una conexión. Cada unidad de trabajo (request,
    comando del CLI) abre la suya; WAL permite lectores concurrentes.
    Cualquier sqlite3.Error sale como PersistenceFailure.
    """

    def __init__(self, db_path: str | None = None, timeout: float = 5.0):
        try:
            self._conn = get_connection(db_path, timeout=timeout)
            init_schema(self._conn)
        except sqlite3.Error as e:
            raise PersistenceFailure(f"No se pudo abrir la base de datos: {e}") from e

    @contextmanager
    def _guard(self, action: str) -> Iterator[None]:
        try:
            yield
        except sqlite3.Error as e:
            raise PersistenceFailure(f"{action}: {e}") from e

    # ------------------------------------------------------------------
    # Revisiones
    # ------------------------------------------------------------------

    def persist_book(self, book: Book) -> StoredRevision:
        """
        Crea una revisión nueva con todos sus bloques en una sola transacción.
        sequence = posición en book.blocks (0..n-1).
        Atómico: o se ve la revisión completa o no se ve nada.
        Nunca toca revisiones existentes.
        """
        created_at = _now()
        with self._guard("No se pudo persistir la revisión"):
            with self._conn:
                self._conn.execute(
                    "UPDATE book SET title = ? WHERE id = ?",
                    (book.title, SINGLETON_BOOK_ID),
                )
                cursor = self._conn.execute(
                    "INSERT INTO revisions (book_id, title, created_at) VALUES (?, ?, ?)",
                    (SINGLETON_BOOK_ID, book.title, created_at),
                )
                revision_id = cursor.lastrowid
                self._conn.executemany(
                    """
                    INSERT INTO blocks
                        (revision_id, sequence, type_id, content, fingerprint)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    [
                        (revision_id, seq, block.type.code,
                         block.content, fingerprint(block.content))
                        for seq, block in enumerate(book.blocks)
                    ],
                )

        logger.info(
            "Revisión %d persistida: %d bloques, título %r",
            revision_id, len(book.blocks), book.title,
        )
        return StoredRevision(
            id=revision_id,  # type: ignore[arg-type]
            title=book.title,
            created_at=created_at,
            block_count=len(book.blocks),
        )

    def get_revision(self, revision_id: int) -> StoredRevision | None:
        with self._guard(f"No se pudo leer la revisión {revision_id}"):
            row = self._conn.execute(
                """
                SELECT r.*, COUNT(b.id) AS block_count
                FROM revisions r LEFT JOIN blocks b ON b.revision_id = r.id
                WHERE r.id = ?
                GROUP BY r.id
                """,
                (revision_id,),
            ).fetchone()
        return self._row_to_revision(row) if row else None

    def list_revisions(self) -> list[StoredRevision]:
        """Todas las revisiones, la más reciente primero."""
        with self._guard("No se pudo listar las revisiones"):
            rows = self._conn.execute(
                """
                SELECT r.*, COUNT(b.id) AS block_count
                FROM revisions r LEFT JOIN blocks b ON b.revision_id = r.id
                GROUP BY r.id
                ORDER BY r.id DESC
                """
            ).fetchall()
        return [self._row_to_revision(r) for r in rows]

    def get_book_title(self) -> str:
        with self._guard("No se pudo leer el título"):
            row = self._conn.execute(
                "SELECT title FROM book WHERE id = ?", (SINGLETON_BOOK_ID,)
            ).fetchone()
        return row["title"] if row else ""

    # ------------------------------------------------------------------
    # Revisión live
    # ------------------------------------------------------------------

    def set_live(self, revision_id: int) -> LiveRevision:
        """
        Swap atómico del puntero singleton (un único upsert).
        Una revisión inexistente viola la FK → PersistenceFailure.
        """
        updated_at = _now()
        with self._guard(f"No se pudo marcar la revisión {revision_id} como live"):
            with self._conn:
                self._conn.execute(
                    """
                    INSERT INTO live_revision (book_id, revision_id, version, updated_at)
                    VALUES (?, ?, 1, ?)
                    ON CONFLICT (book_id)
                    DO UPDATE SET revision_id = excluded.revision_id,
                                  version     = live_revision.version + 1,
                                  updated_at  = excluded.updated_at
                    """,
                    (SINGLETON_BOOK_ID, revision_id, updated_at),
                )
        live = self.get_live()
        logger.info("Revisión live → %d (versión %d)", revision_id, live.version)
        return live  # type: ignore[return-value]

    def get_live(self) -> LiveRevision | None:
        with self._guard("No se pudo leer la revisión live"):
            row = self._conn.execute(
                "SELECT * FROM live_revision WHERE book_id = ?",
                (SINGLETON_BOOK_ID,),
            ).fetchone()
        if not row:
            return None
        return LiveRevision(
            revision_id=row["revision_id"],
            version=row["version"],
            updated_at=row["updated_at"],
        )

    def get_live_revision_id(self) -> int | None:
        live = self.get_live()
        return live.revision_id if live else None

    # ------------------------------------------------------------------
    # Bloques
    # ------------------------------------------------------------------

    def list_blocks(
        self,
        revision_id:     int,
        anchor_sequence: int,
        window:          int,
    ) -> list[StoredBlock]:
        """Hasta `window` bloques desde anchor_sequence (incluido), en orden."""
        with self._guard(f"No se pudo listar bloques de la revisión {revision_id}"):
            rows = self._conn.execute(
                """
                SELECT * FROM blocks
                WHERE revision_id = ? AND sequence >= ?
                ORDER BY sequence ASC
                LIMIT ?
                """,
                (revision_id, anchor_sequence, window),
            ).fetchall()
        return [self._row_to_block(r) for r in rows]

    def get_all_blocks(self, revision_id: int) -> list[StoredBlock]:
        with self._guard(f"No se pudo leer la revisión {revision_id}"):
            rows = self._conn.execute(
                "SELECT * FROM blocks WHERE revision_id = ? ORDER BY sequence ASC",
                (revision_id,),
            ).fetchall()
        return [self._row_to_block(r) for r in rows]

    def count_blocks(self, revision_id: int) -> int:
        with self._guard(f"No se pudo contar bloques de la revisión {revision_id}"):
            row = self._conn.execute(
                "SELECT COUNT(*) AS n FROM blocks WHERE revision_id = ?",
                (revision_id,),
            ).fetchone()
        return row["n"]

    def get_block_by_id(self, block_id: int) -> StoredBlock | None:
        with self._guard(f"No se pudo leer el bloque {block_id}"):
            row = self._conn.execute(
                "SELECT * FROM blocks WHERE id = ?", (block_id,)
            ).fetchone()
        return self._row_to_block(row) if row else None

    def get_block_at(self, revision_id: int, sequence: int) -> StoredBlock | None:
        with self._guard(f"No se pudo leer el bloque {revision_id}:{sequence}"):
            row = self._conn.execute(
                "SELECT * FROM blocks WHERE revision_id = ? AND sequence = ?",
                (revision_id, sequence),
            ).fetchone()
        return self._row_to_block(row) if row else None

    def find_block_at_or_after(self, revision_id: int, sequence: int) -> StoredBlock | None:
        with self._guard(f"No se pudo buscar bloque en la revisión {revision_id}"):
            row = self._conn.execute(
                """
                SELECT * FROM blocks
                WHERE revision_id = ? AND sequence >= ?
                ORDER BY sequence ASC
                LIMIT 1
                """,
                (revision_id, sequence),
            ).fetchone()
        return self._row_to_block(row) if row else None

    def find_block_at_or_before(self, revision_id: int, sequence: int) -> StoredBlock | None:
        with self._guard(f"No se pudo buscar bloque en la revisión {revision_id}"):
            row = self._conn.execute(
                """
                SELECT * FROM blocks
                WHERE revision_id = ? AND sequence <= ?
                ORDER BY sequence DESC
                LIMIT 1
                """,
                (revision_id, sequence),
            ).fetchone()
        return self._row_to_block(row) if row else None

    # ------------------------------------------------------------------
    # Lectores
    # ------------------------------------------------------------------

    def create_reader(self, name: str) -> int:
        with self._guard("No se pudo crear el lector"):
            with self._conn:
                cursor = self._conn.execute(
                    "INSERT INTO readers (name, created_at) VALUES (?, ?)",
                    (name, _now()),
                )
        return cursor.lastrowid  # type: ignore[return-value]

    def get_reader(self, reader_id: int) -> StoredReader | None:
        with self._guard(f"No se pudo leer el lector {reader_id}"):
            row = self._conn.execute(
                "SELECT * FROM readers WHERE id = ?", (reader_id,)
            ).fetchone()
        return self._row_to_reader(row) if row else None

    def list_readers(self) -> list[StoredReader]:
        with self._guard("No se pudo listar los lectores"):
            rows = self._conn.execute(
                "SELECT * FROM readers ORDER BY id ASC"
            ).fetchall()
        return [self._row_to_reader(r) for r in rows]

    # ------------------------------------------------------------------
    # Posiciones
    # ------------------------------------------------------------------

    def get_position(self, reader_id: int) -> ReaderPosition | None:
        with self._guard(f"No se pudo leer la posición del lector {reader_id}"):
            row = self._conn.execute(
                "SELECT * FROM reader_positions WHERE reader_id = ?", (reader_id,)
            ).fetchone()
        return self._row_to_position(row) if row else None

    def get_positions_not_on(self, revision_id: int) -> list[ReaderPosition]:
        """Lectores que todavía apuntan a otra revisión (candidatos a remapeo)."""
        with self._guard("No se pudo listar posiciones"):
            rows = self._conn.execute(
                """
                SELECT * FROM reader_positions
                WHERE revision_id != ?
                ORDER BY revision_id ASC, reader_id ASC
                """,
                (revision_id,),
            ).fetchall()
        return [self._row_to_position(r) for r in rows]

    def save_position(self, position: ReaderPosition) -> None:
        """Upsert incondicional. Se usa para la posición inicial."""
        with self._guard(f"No se pudo guardar la posición del lector {position.reader_id}"):
            with self._conn:
                self._conn.execute(
                    """
                    INSERT INTO reader_positions
                        (reader_id, revision_id, block_id, sequence, notice, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    ON CONFLICT (reader_id)
                    DO UPDATE SET revision_id = excluded.revision_id,
                                  block_id    = excluded.block_id,
                                  sequence    = excluded.sequence,
                                  notice      = excluded.notice,
                                  updated_at  = excluded.updated_at
                    """,
                    (position.reader_id, position.revision_id, position.block_id,
                     position.sequence, position.notice, _now()),
                )

    def save_remapped_position(
        self,
        position:             ReaderPosition,
        expected_revision_id: int,
    ) -> bool:
        """
        Upsert condicional: solo pisa la fila si el lector sigue en
        expected_revision_id. revision + sequence + notice cambian juntos.
        Devuelve False si otro proceso ya lo movió.
        """
        with self._guard(f"No se pudo remapear al lector {position.reader_id}"):
            with self._conn:
                cursor = self._conn.execute(
                    """
                    INSERT INTO reader_positions
                        (reader_id, revision_id, block_id, sequence, notice, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    ON CONFLICT (reader_id)
                    DO UPDATE SET revision_id = excluded.revision_id,
                                  block_id    = excluded.block_id,
                                  sequence    = excluded.sequence,
                                  notice      = excluded.notice,
                                  updated_at  = excluded.updated_at
                    WHERE reader_positions.revision_id = ?
                    """,
                    (position.reader_id, position.revision_id, position.block_id,
                     position.sequence, position.notice, _now(), expected_revision_id),
                )
        return cursor.rowcount > 0

    def move_position(
        self,
        reader_id:         int,
        revision_id:       int,
        block_id:          int,
        sequence:          int,
        expected_sequence: int,
    ) -> bool:
        """
        Compare-and-set de la navegación: solo mueve si el lector sigue
        en (revision_id, expected_sequence).
        """
        with self._guard(f"No se pudo mover al lector {reader_id}"):
            with self._conn:
                cursor = self._conn.execute(
                    """
                    UPDATE reader_positions
                    SET block_id = ?, sequence = ?, updated_at = ?
                    WHERE reader_id = ? AND revision_id = ? AND sequence = ?
                    """,
                    (block_id, sequence, _now(), reader_id, revision_id, expected_sequence),
                )
        return cursor.rowcount > 0

    def clear_notice(self, reader_id: int) -> None:
        with self._guard(f"No se pudo limpiar el aviso del lector {reader_id}"):
            with self._conn:
                self._conn.execute(
                    "UPDATE reader_positions SET notice = NULL WHERE reader_id = ?",
                    (reader_id,),
                )

    # ------------------------------------------------------------------
    # Comentarios
    # ------------------------------------------------------------------

    def add_comment(self, reader_id: int, block_id: int, content: str) -> int:
        content = content.strip()
        if not content:
            raise ValueError("El comentario no puede estar vacío")
        with self._guard(f"No se pudo guardar el comentario del lector {reader_id}"):
            with self._conn:
                cursor = self._conn.execute(
                    """
                    INSERT INTO comments (reader_id, block_id, content, created_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    (reader_id, block_id, content, _now()),
                )
        return cursor.lastrowid  # type: ignore[return-value]

    def list_comments(self, block_id: int) -> list[StoredComment]:
        with self._guard(f"No se pudo listar comentarios del bloque {block_id}"):
            rows = self._conn.execute(
                "SELECT * FROM comments WHERE block_id = ? ORDER BY id ASC",
                (block_id,),
            ).fetchall()
        return [
            StoredComment(
                id=r["id"],
                reader_id=r["reader_id"],
                block_id=r["block_id"],
                content=r["content"],
                created_at=r["created_at"],
            )
            for r in rows
        ]

    # ------------------------------------------------------------------
    # Mapeo de rows a dataclasses
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_revision(row: sqlite3.Row) -> StoredRevision:
        return StoredRevision(
            id=row["id"],
            title=row["title"],
            created_at=row["created_at"],
            block_count=row["block_count"],
        )

    @staticmethod
    def _row_to_block(row: sqlite3.Row) -> StoredBlock:
        return StoredBlock(
            id=row["id"],
            revision_id=row["revision_id"],
            sequence=row["sequence"],
            type=BlockType.from_code(row["type_id"]),
            content=row["content"],
            fingerprint=row["fingerprint"],
        )

    @staticmethod
    def _row_to_reader(row: sqlite3.Row) -> StoredReader:
        return StoredReader(
            id=row["id"],
            name=row["name"],
            created_at=row["created_at"],
        )

    @staticmethod
    def _row_to_position(row: sqlite3.Row) -> ReaderPosition:
        return ReaderPosition(
            reader_id=row["reader_id"],
            revision_id=row["revision_id"],
            block_id=row["block_id"],
            sequence=row["sequence"],
            notice=row["notice"],
            updated_at=row["updated_at"],
        )

    # ------------------------------------------------------------------
    # Cleanup (para tests)
    # ------------------------------------------------------------------

    def close(self) -> None:
        self._conn.close()
