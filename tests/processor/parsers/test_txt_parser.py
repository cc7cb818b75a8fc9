"""
Tests del parser de texto plano.

Ejecutar:
    pytest tests/processor/parsers/ -v
"""

import pytest
from folio.processor.models import Block, BlockType, Book
from folio.processor.parsers.txt_parser import (
    LineKind, TxtParser, classify_line, parse_text,
)


# ═══════════════════════════════════════════════════════════════════════════ #
#  parse_text                                                                  #
# ═══════════════════════════════════════════════════════════════════════════ #

class TestParseText:

    def test_titulo_headings_y_parrafo(self):
        book = parse_text("% Title\n\n# Cool book!\n\n## Great\n\nBook.")
        assert book.title == "Title"
        assert book.blocks == [
            Block(BlockType.SECTION_TITLE, "Cool book!"),
            Block(BlockType.H1, "Great"),
            Block(BlockType.PARAGRAPH, "Book."),
        ]

    def test_hard_wrap_se_une_con_espacios(self):
        book = parse_text(
            "this\n"
            "is\n"
            "a\n"
            "hard-wrapped\n"
            "paragraph which may have multiple\n"
            "words per line.\n"
            "\n"
            "But this is definitely\n"
            "a\n"
            "new\n"
            "paragraph."
        )
        assert book.blocks == [
            Block(
                BlockType.PARAGRAPH,
                "this is a hard-wrapped paragraph which may have multiple words per line.",
            ),
            Block(BlockType.PARAGRAPH, "But this is definitely a new paragraph."),
        ]

    def test_basura_y_headings_vacios_se_ignoran(self):
        book = parse_text(
            "this\nis good content\n\n----- \n\n-----  \n\n#\n\n## \n\n\nmore good content\n"
        )
        assert [b.content for b in book.blocks] == ["this is good content", "more good content"]
        assert all(b.type is BlockType.PARAGRAPH for b in book.blocks)

    def test_espacios_iniciales(self):
        book = parse_text(
            "     Has leading spaces\n\n# Another Cool Book\n\n   Content with leading spaces."
        )
        assert book.blocks == [
            Block(BlockType.PARAGRAPH, "Has leading spaces"),
            Block(BlockType.SECTION_TITLE, "Another Cool Book"),
            Block(BlockType.PARAGRAPH, "Content with leading spaces."),
        ]

    def test_varias_lineas_en_blanco_no_crean_bloques(self):
        book = parse_text("This\n\nis\n\n\njust\n\nsome\n\n\ncontent.\n\n")
        assert [b.content for b in book.blocks] == ["This", "is", "just", "some", "content."]

    def test_demasiados_numerales_se_descartan(self):
        assert parse_text("##### woah").blocks == []

    def test_tres_numerales_se_descartan(self):
        assert parse_text("### Casi heading").blocks == []

    def test_ultimo_titulo_gana(self):
        book = parse_text("% Primero\n\nTexto.\n\n%   Segundo  \n")
        assert book.title == "Segundo"
        assert book.blocks == [Block(BlockType.PARAGRAPH, "Texto.")]

    def test_sin_titulo_queda_vacio(self):
        assert parse_text("Solo texto.").title == ""

    def test_form_feed_se_elimina(self):
        book = parse_text("Antes del\x0c salto\n\x0c\nDespués.")
        assert book.blocks == [
            Block(BlockType.PARAGRAPH, "Antes del salto"),
            Block(BlockType.PARAGRAPH, "Después."),
        ]
        assert all("\x0c" not in b.content for b in book.blocks)

    def test_heading_no_entra_en_el_parrafo(self):
        """Un heading en medio de líneas de párrafo no corta el acumulador."""
        book = parse_text("línea uno\n# Sección\nlínea dos")
        assert book.blocks == [
            Block(BlockType.SECTION_TITLE, "Sección"),
            Block(BlockType.PARAGRAPH, "línea uno línea dos"),
        ]

    def test_linea_con_guiones_en_medio_de_parrafo(self):
        book = parse_text("uno\n--- ----- ---\ndos")
        assert book.blocks == [Block(BlockType.PARAGRAPH, "uno dos")]

    def test_cuatro_guiones_son_contenido(self):
        assert parse_text("----").blocks == [Block(BlockType.PARAGRAPH, "----")]

    def test_crlf(self):
        book = parse_text("% T\r\n\r\nuno\r\ndos\r\n\r\ntres\r\n")
        assert book.title == "T"
        assert [b.content for b in book.blocks] == ["uno dos", "tres"]

    def test_input_vacio(self):
        assert parse_text("") == Book(title="", blocks=[])

    def test_parse_es_idempotente(self):
        raw = "% Libro\n\n# Uno\n\nTexto\npartido.\n\n## Dos\n\nMás texto."
        assert parse_text(raw) == parse_text(raw)


# ═══════════════════════════════════════════════════════════════════════════ #
#  classify_line                                                               #
# ═══════════════════════════════════════════════════════════════════════════ #

class TestClassifyLine:

    @pytest.mark.parametrize("line,kind", [
        ("", LineKind.BLANK),
        ("   \t ", LineKind.BLANK),
        ("\x0c", LineKind.BLANK),
        ("# Uno", LineKind.HEADING),
        ("%Título", LineKind.TITLE),
        ("*** ----- ***", LineKind.GARBAGE),
        ("Texto normal", LineKind.CONTENT),
    ])
    def test_tipos(self, line, kind):
        assert classify_line(line).kind is kind

    def test_nivel_de_heading(self):
        line = classify_line("  ## Subtítulo  ")
        assert line.level == 2
        assert line.text == "Subtítulo"


# ═══════════════════════════════════════════════════════════════════════════ #
#  TxtParser (archivos)                                                        #
# ═══════════════════════════════════════════════════════════════════════════ #

class TestTxtParser:

    @pytest.fixture
    def parser(self):
        return TxtParser()

    def test_handles_txt(self, parser):
        assert parser.can_handle("libro.txt") is True

    def test_handles_md(self, parser):
        assert parser.can_handle("notas.md") is True

    def test_rejects_epub(self, parser):
        assert parser.can_handle("libro.epub") is False

    def test_case_insensitive_extension(self, parser):
        assert parser.can_handle("LIBRO.TXT") is True

    def test_parse_archivo_utf8(self, parser, tmp_path):
        f = tmp_path / "libro.txt"
        f.write_text("% Año nuevo\n\nCañón.", encoding="utf-8")
        book = parser.parse(str(f))
        assert book.title == "Año nuevo"
        assert book.blocks == [Block(BlockType.PARAGRAPH, "Cañón.")]

    def test_parse_archivo_latin1_fallback(self, parser, tmp_path):
        f = tmp_path / "libro.txt"
        f.write_bytes("Cañón.".encode("latin-1"))
        book = parser.parse(str(f))
        assert book.blocks == [Block(BlockType.PARAGRAPH, "Cañón.")]
