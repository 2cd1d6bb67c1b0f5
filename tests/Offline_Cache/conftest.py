# conftest.py
# Fixtures for the offline cache shell tests.
#
# Imports
#
# Third-Party Imports
import pytest
#
# Local Imports
from media_catalog.core.Offline_Cache.cache_shell import OfflineCacheShell
from media_catalog.core.Offline_Cache.cache_storage import MemoryCacheStorage
from tests.Offline_Cache.fake_network import SCOPE, FakeFetcher, serve_manifest
#
#######################################################################################################################
#
# Fixtures:


@pytest.fixture
def fetcher():
    fake = FakeFetcher()
    serve_manifest(fake)
    return fake


@pytest.fixture
def cache_storage():
    return MemoryCacheStorage()


@pytest.fixture
def make_shell(cache_storage, fetcher, clock):
    def _make(**kwargs):
        kwargs.setdefault("clock", clock)
        return OfflineCacheShell(cache_storage, fetcher, SCOPE, **kwargs)
    return _make


@pytest.fixture
def active_shell(make_shell):
    shell = make_shell()
    assert shell.install().success
    shell.activate()
    return shell
