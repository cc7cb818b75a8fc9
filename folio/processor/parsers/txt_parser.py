import os
from enum import Enum
from typing import NamedTuple

from folio.processor.models import Block, BlockType, Book
from .base import BaseParser

# Word exporta los saltos de página como form feed.
_PAGE_BREAK = "\u000c"

# Cualquier línea que contenga esto es decoración ("-----", "----- * -----").
_GARBAGE_MARKER = "-----"

_HEADING_LEVELS: dict[int, BlockType] = {
    1: BlockType.SECTION_TITLE,
    2: BlockType.H1,
}

_SUPPORTED_EXTENSIONS = {'.txt', '.md'}


class LineKind(Enum):
    BLANK   = "blank"
    HEADING = "heading"
    TITLE   = "title"
    GARBAGE = "garbage"
    CONTENT = "content"


class ParserState(Enum):
    IDLE         = "idle"
    ACCUMULATING = "accumulating"


class ClassifiedLine(NamedTuple):
    kind:  LineKind
    text:  str = ""
    level: int = 0


def classify_line(line: str) -> ClassifiedLine:
    """
    Clasifica una línea cruda. Nunca falla: lo que no se reconoce
    es contenido de párrafo.
    """
    trimmed = line.replace(_PAGE_BREAK, "").strip()

    if not trimmed:
        return ClassifiedLine(LineKind.BLANK)

    if trimmed.startswith("#"):
        level = len(trimmed) - len(trimmed.lstrip("#"))
        return ClassifiedLine(LineKind.HEADING, trimmed.lstrip("#").strip(), level)

    if trimmed.startswith("%"):
        return ClassifiedLine(LineKind.TITLE, trimmed.lstrip("%").strip())

    if _GARBAGE_MARKER in trimmed:
        return ClassifiedLine(LineKind.GARBAGE)

    return ClassifiedLine(LineKind.CONTENT, trimmed)


def parse_text(raw: str) -> Book:
    """
    Convierte texto plano en un Book.

    Una sola pasada por líneas con un acumulador de párrafo:
      - línea en blanco  → cierra el párrafo pendiente (si lo hay)
      - '#' / '##'       → SECTION_TITLE / H1; otros niveles o sin texto se descartan
      - '%'              → título del libro (gana el último)
      - '-----'          → basura decorativa, se ignora
      - resto            → se acumula; las líneas se unen con un espacio
                           (así se recomponen los párrafos con hard-wrap)
    Determinista y total: el input malformado se omite, nunca lanza.
    """
    title = ""
    blocks: list[Block] = []
    pending: list[str] = []
    state = ParserState.IDLE

    def flush() -> None:
        blocks.append(Block(BlockType.PARAGRAPH, " ".join(pending)))
        pending.clear()

    for raw_line in raw.split("\n"):
        line = classify_line(raw_line)

        if line.kind is LineKind.BLANK:
            if state is ParserState.ACCUMULATING:
                flush()
                state = ParserState.IDLE
            continue

        if line.kind is LineKind.HEADING:
            block_type = _HEADING_LEVELS.get(line.level)
            if block_type is not None and line.text:
                blocks.append(Block(block_type, line.text))
            continue

        if line.kind is LineKind.TITLE:
            title = line.text
            continue

        if line.kind is LineKind.GARBAGE:
            continue

        pending.append(line.text)
        state = ParserState.ACCUMULATING

    if state is ParserState.ACCUMULATING:
        flush()

    return Book(title=title, blocks=blocks)


class TxtParser(BaseParser):
    """
    Parser para el formato de importación en texto plano (.txt, .md).
    Toda la gramática vive en parse_text; esta clase solo lee el archivo.
    """

    def can_handle(self, file_path: str) -> bool:
        _, ext = os.path.splitext(file_path)
        return ext.lower() in _SUPPORTED_EXTENSIONS

    def parse(self, file_path: str) -> Book:
        return parse_text(self._read_file(file_path))

    def parse_text(self, raw: str) -> Book:
        return parse_text(raw)

    # ------------------------------------------------------------------ #
    #  Helpers privados                                                    #
    # ------------------------------------------------------------------ #

    def _read_file(self, file_path: str) -> str:
        """Lee el archivo intentando UTF-8 primero, latin-1 como fallback."""
        try:
            with open(file_path, 'r', encoding='utf-8', newline='') as f:
                return f.read()
        except UnicodeDecodeError:
            with open(file_path, 'r', encoding='latin-1', newline='') as f:
                return f.read()
