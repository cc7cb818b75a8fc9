from dataclasses import dataclass, field
from enum import Enum

from folio.errors import InvalidBlockType


class BlockType(Enum):
    """
    Tipo de bloque. El valor es el código entero que vive en SQLite.
    Los códigos no son contiguos (no hay 3): no renumerar, ya hay filas guardadas.
    """
    PARAGRAPH     = 1
    H1            = 2
    SECTION_TITLE = 4

    @classmethod
    def from_code(cls, code: int) -> "BlockType":
        try:
            return cls(code)
        except ValueError as e:
            raise InvalidBlockType(
                f"{code!r} no es un código válido de BlockType"
            ) from e

    @property
    def code(self) -> int:
        return self.value


@dataclass(frozen=True)
class Block:
    """Unidad tipada de contenido. Inmutable una vez creada."""
    type:    BlockType
    content: str


@dataclass
class Book:
    """Lo que sale del Parser: título + bloques en orden de documento, sin sequence."""
    title:  str = ""
    blocks: list[Block] = field(default_factory=list)
