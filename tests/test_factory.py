# tests/test_factory.py
from folio.config_loader import FolioConfig
from folio.factory import build_services
from folio.pagination.models import Direction


class TestBuildServices:

    def test_ensambla_sobre_una_misma_conexion(self):
        services = build_services(db_path=":memory:", config=FolioConfig(page_size=2, stride=1))
        try:
            services.publisher.import_text("Uno.\n\nDos.\n\nTres.", publish=True)
            reader_id = services.repo.create_reader("Ana")

            page = services.pager.view(reader_id)
            assert [b.content for b in page.blocks] == ["Uno.", "Dos."]

            page = services.pager.navigate(reader_id, Direction.FORWARD)
            assert page.position.sequence == 1
        finally:
            services.close()

    def test_db_path_explicito_gana_al_config(self, tmp_path):
        config = FolioConfig(db_path=str(tmp_path / "config.db"))
        services = build_services(db_path=str(tmp_path / "explicito.db"), config=config)
        services.close()
        assert (tmp_path / "explicito.db").exists()
        assert not (tmp_path / "config.db").exists()
