# storage/models.py
from dataclasses import dataclass
from typing import Optional

from folio.processor.models import Block, BlockType


@dataclass
class StoredRevision:
    id:          int
    title:       str
    created_at:  str
    block_count: int = 0


@dataclass
class StoredBlock:
    id:          int
    revision_id: int
    sequence:    int
    type:        BlockType
    content:     str
    fingerprint: str

    @property
    def block(self) -> Block:
        return Block(self.type, self.content)


@dataclass
class LiveRevision:
    """Puntero singleton a la revisión que ven los lectores. version sube en cada swap."""
    revision_id: int
    version:     int
    updated_at:  str


@dataclass
class StoredReader:
    id:         int
    name:       str
    created_at: str


@dataclass
class ReaderPosition:
    """
    Puntero persistido del lector. Una fila por lector.
    notice: tier del último remapeo que el lector todavía no vio.
    """
    reader_id:   int
    revision_id: int
    block_id:    int
    sequence:    int
    notice:      Optional[str] = None
    updated_at:  Optional[str] = None


@dataclass
class StoredComment:
    id:         int
    reader_id:  int
    block_id:   int
    content:    str
    created_at: str
