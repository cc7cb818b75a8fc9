import pytest
from folio.processor.models import BlockType
from folio.processor.parsers.factory import ParserFactory, UnsupportedFormatError


class TestParserFactory:

    def test_parse_txt(self, tmp_path):
        f = tmp_path / "libro.txt"
        f.write_text("% Libro\n\n# Parte uno\n\nHola.", encoding="utf-8")
        book = ParserFactory.parse_file(str(f))
        assert book.title == "Libro"
        assert [b.type for b in book.blocks] == [BlockType.SECTION_TITLE, BlockType.PARAGRAPH]

    def test_archivo_inexistente(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ParserFactory().parse(str(tmp_path / "no_existe.txt"))

    def test_formato_no_soportado(self, tmp_path):
        f = tmp_path / "libro.epub"
        f.write_bytes(b"PK")
        with pytest.raises(UnsupportedFormatError, match=".epub"):
            ParserFactory().parse(str(f))

    def test_register_tiene_prioridad(self, tmp_path):
        from unittest.mock import MagicMock
        custom = MagicMock()
        custom.can_handle.return_value = True
        custom.parse.return_value = "custom"

        f = tmp_path / "libro.txt"
        f.write_text("x")
        factory = ParserFactory()
        factory.register(custom)
        assert factory.parse(str(f)) == "custom"
