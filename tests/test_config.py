# test_config.py
#
#
# Imports
import sys
from pathlib import Path
#
# Third-Party Imports
import pytest
import toml
from loguru import logger
#
# Local Imports
from media_catalog import config
from media_catalog.config import CacheShellSettings, get_setting, load_config
from media_catalog.core.DB_Management.DB_Deps import get_catalog_db, reset_catalog_db
from media_catalog.core.DB_Management.Storage_Backends import InMemoryStorage, SQLiteStorage
from media_catalog.logging_config import configure_logging, configure_logging_from_config
#
#######################################################################################################################
#
# Functions:


@pytest.fixture
def fresh_catalog_db():
    reset_catalog_db()
    yield
    reset_catalog_db()


@pytest.fixture
def restore_logger():
    yield
    logger.remove()
    logger.add(sys.stderr)


class TestLoadConfig:
    def test_missing_file_writes_defaults(self, clean_config):
        loaded = load_config()
        assert clean_config.exists()
        assert toml.load(clean_config)["storage"]["backend"] == "json"
        assert loaded["cache_shell"]["cache_prefix"] == "media-catalog-v3-"

    def test_missing_file_without_create(self, clean_config):
        load_config(create_default=False)
        assert not clean_config.exists()

    def test_user_values_merge_over_defaults(self, clean_config):
        clean_config.write_text(
            '[storage]\nbackend = "sqlite"\n\n[cache_shell]\nscope = "https://catalog.example/"\n',
            encoding="utf-8",
        )
        loaded = load_config()
        assert loaded["storage"]["backend"] == "sqlite"
        assert loaded["storage"]["storage_key"] == "media_catalog_v2"
        assert loaded["cache_shell"]["scope"] == "https://catalog.example/"
        assert loaded["cache_shell"]["entry_page"] == "./index.html"

    def test_invalid_toml_falls_back_to_defaults(self, clean_config):
        clean_config.write_text("[storage\nbackend = ", encoding="utf-8")
        assert load_config()["storage"] == config.DEFAULT_CONFIG["storage"]

    def test_result_is_cached_until_reset(self, clean_config):
        first = load_config()
        clean_config.write_text('[general]\nlog_level = "DEBUG"\n', encoding="utf-8")
        assert load_config() is first
        config.reset_config()
        assert load_config()["general"]["log_level"] == "DEBUG"

    def test_defaults_not_mutated(self, clean_config):
        load_config()["cache_shell"]["extra_assets"].append("./extra.js")
        config.reset_config()
        assert load_config()["cache_shell"]["extra_assets"] == []

    def test_get_setting(self, clean_config):
        assert get_setting("storage", "sync_queue_key") == "media_sync_queue"
        assert get_setting("storage", "nope", "fallback") == "fallback"
        assert get_setting("missing_section", "x") is None


class TestCacheShellSettings:
    def test_from_defaults(self, clean_config):
        settings = CacheShellSettings.from_config()
        assert settings.scope == "http://localhost:8000/"
        assert settings.cache_dir is None
        assert settings.denylisted_schemes == ["chrome-extension"]

    def test_from_explicit_config(self, tmp_path):
        settings = CacheShellSettings.from_config({
            "cache_shell": {
                "cache_dir": str(tmp_path / "caches"),
                "install_workers": 0,
                "request_timeout": "12",
                "extra_assets": ["./offline.html"],
            }
        })
        assert settings.cache_dir == Path(tmp_path / "caches")
        assert settings.install_workers == 1
        assert settings.request_timeout == 12.0
        assert settings.extra_assets == ["./offline.html"]


class TestCatalogDeps:
    def test_memory_backend_from_config(self, clean_config, fresh_catalog_db):
        clean_config.write_text('[storage]\nbackend = "memory"\n', encoding="utf-8")
        db = get_catalog_db()
        assert isinstance(db.storage, InMemoryStorage)
        assert get_catalog_db() is db

    def test_sqlite_backend_from_config(self, clean_config, fresh_catalog_db, tmp_path):
        db_file = tmp_path / "store" / "catalog.sqlite"
        clean_config.write_text(
            f'[storage]\nbackend = "sqlite"\npath = "{db_file.as_posix()}"\nstorage_key = "items"\n',
            encoding="utf-8",
        )
        db = get_catalog_db()
        assert isinstance(db.storage, SQLiteStorage)
        assert db.storage_key == "items"
        db.add_media({"type": "movie", "title": "Dune"})
        assert db_file.exists()
        db.storage.close_connection()


class TestLogging:
    def test_file_sink_receives_messages(self, tmp_path, restore_logger):
        log_file = tmp_path / "logs" / "catalog.log"
        configure_logging(level="WARNING", log_file=log_file, file_level="DEBUG")
        logger.debug("debug line for the file")
        logger.remove()  # closes the file sink
        assert "debug line for the file" in log_file.read_text(encoding="utf-8")

    def test_configure_from_config_logs_next_to_storage(self, clean_config, tmp_path, restore_logger):
        storage_file = tmp_path / "data" / "catalog_storage.json"
        clean_config.write_text(
            f'[storage]\npath = "{storage_file.as_posix()}"\n\n[logging]\nlog_filename = "app.log"\n',
            encoding="utf-8",
        )
        configure_logging_from_config()
        logger.info("configured from file")
        logger.remove()
        assert "configured from file" in (storage_file.parent / "app.log").read_text(encoding="utf-8")

#
# End of test_config.py
#######################################################################################################################
