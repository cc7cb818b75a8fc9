import pytest
from folio.errors import FolioError, InvalidBlockType
from folio.processor.fingerprint import fingerprint
from folio.processor.models import Block, BlockType


class TestBlockType:

    @pytest.mark.parametrize("block_type,code", [
        (BlockType.PARAGRAPH, 1),
        (BlockType.H1, 2),
        (BlockType.SECTION_TITLE, 4),
    ])
    def test_codigos(self, block_type, code):
        assert block_type.code == code
        assert BlockType.from_code(code) is block_type

    @pytest.mark.parametrize("code", [0, 3, 5, -1])
    def test_codigo_desconocido_es_error_de_integridad(self, code):
        with pytest.raises(InvalidBlockType):
            BlockType.from_code(code)

    def test_invalid_block_type_es_folio_error(self):
        assert issubclass(InvalidBlockType, FolioError)


class TestBlock:

    def test_es_inmutable(self):
        block = Block(BlockType.PARAGRAPH, "Hola")
        with pytest.raises(AttributeError):
            block.content = "Chau"


class TestFingerprint:

    def test_deterministico(self):
        assert fingerprint("Un párrafo.") == fingerprint("Un párrafo.")

    def test_sensible_a_espacios(self):
        assert fingerprint("Un párrafo.") != fingerprint("Un  párrafo.")
        assert fingerprint("Un párrafo.") != fingerprint("Un párrafo. ")

    def test_hex_sha256(self):
        fp = fingerprint("x")
        assert len(fp) == 64
        int(fp, 16)
