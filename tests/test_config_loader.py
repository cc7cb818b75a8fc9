# tests/test_config_loader.py
import pytest
import folio.config_loader as config_loader
from folio.config_loader import FolioConfig, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    monkeypatch.delenv("FOLIO_CONFIG_PATH", raising=False)
    monkeypatch.setattr(config_loader, "_DEFAULT_CONFIG_PATH", tmp_path / "no_existe.yaml")


class TestLoadConfig:

    def test_sin_archivo_usa_defaults(self):
        assert load_config() == FolioConfig()

    def test_defaults(self):
        config = FolioConfig()
        assert (config.page_size, config.stride, config.search_radius) == (3, 3, 30)

    def test_ruta_explicita_inexistente(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "falta.yaml"))

    def test_ruta_desde_env(self, monkeypatch, tmp_path):
        f = tmp_path / "config.yaml"
        f.write_text("page_size: 5\n")
        monkeypatch.setenv("FOLIO_CONFIG_PATH", str(f))
        assert load_config().page_size == 5

    def test_lee_yaml(self, tmp_path):
        f = tmp_path / "config.yaml"
        f.write_text(
            "db_path: /tmp/folio.db\n"
            "page_size: 4\n"
            "stride: 2\n"
            "search_radius: 10\n"
            "timeout_seconds: 1.5\n"
        )
        config = load_config(str(f))
        assert config == FolioConfig(
            db_path="/tmp/folio.db", page_size=4, stride=2,
            search_radius=10, timeout_seconds=1.5,
        )

    def test_archivo_vacio(self, tmp_path):
        f = tmp_path / "config.yaml"
        f.write_text("")
        assert load_config(str(f)) == FolioConfig()

    def test_expande_variables_de_entorno(self, monkeypatch, tmp_path):
        monkeypatch.setenv("MI_DB", "/data/libro.db")
        f = tmp_path / "config.yaml"
        f.write_text("db_path: ${MI_DB}\n")
        assert load_config(str(f)).db_path == "/data/libro.db"

    def test_valores_invalidos(self, tmp_path):
        f = tmp_path / "config.yaml"
        f.write_text("page_size: 0\n")
        with pytest.raises(ValueError):
            load_config(str(f))
