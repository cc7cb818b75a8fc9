# storage/__init__.py
from folio.storage.repository import Repository
from folio.storage.models import (
    LiveRevision, ReaderPosition,
    StoredBlock, StoredComment, StoredReader, StoredRevision,
)

__all__ = [
    "Repository",
    "LiveRevision", "ReaderPosition",
    "StoredBlock", "StoredComment", "StoredReader", "StoredRevision",
]
