"""Excepciones propias de folio.

Todas heredan de FolioError para que el caller (CLI, web) pueda
capturarlas en un solo punto. El core no formatea mensajes para el
lector: solo adjunta contexto suficiente para el log.
"""


class FolioError(Exception):
    """Base de todos los errores de folio."""
    pass


class PersistenceFailure(FolioError):
    """
    SQLite no disponible, timeout o violación de constraint.
    Se propaga al caller; el core nunca reintenta.
    """
    pass


class EmptyRevision(FolioError):
    """Una revisión sin bloques donde se requiere al menos uno."""

    def __init__(self, revision_id: int):
        super().__init__(f"La revisión {revision_id} no tiene bloques")
        self.revision_id = revision_id


class InvalidBlockType(FolioError):
    """Código de tipo desconocido en la DB. Dato corrupto, no recuperable."""
    pass


class NoLiveRevision(FolioError):
    """Todavía no se publicó ninguna revisión."""
    pass
