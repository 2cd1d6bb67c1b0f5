# conftest.py
# Shared fixtures for the media_catalog test suite.
#
# Imports
from datetime import datetime, timedelta, timezone
#
# Third-Party Imports
import pytest
#
# Local Imports
from media_catalog.config import reset_config
from media_catalog.core.DB_Management.Catalog_DB import MediaCatalogDB
from media_catalog.core.DB_Management.Storage_Backends import InMemoryStorage
#
#######################################################################################################################
#
# Fixtures:


class FakeClock:
    """Settable clock; every call returns the current fixed instant."""

    def __init__(self, start=None):
        self.now = start or datetime(2026, 3, 14, 9, 30, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def catalog(storage, clock):
    """A catalog store over in-memory storage with a fixed clock."""
    return MediaCatalogDB(storage, clock=clock)


@pytest.fixture
def clean_config(monkeypatch, tmp_path):
    """Points configuration at a temp file and drops any cached config around the test."""
    config_path = tmp_path / "config.toml"
    monkeypatch.setenv("MEDIA_CATALOG_CONFIG_PATH", str(config_path))
    reset_config()
    yield config_path
    reset_config()
