# test_storage_backends.py
#
#
# Imports
import json
#
# Third-Party Imports
import pytest
#
# Local Imports
from media_catalog.core.DB_Management.Catalog_DB import MediaCatalogDB
from media_catalog.core.DB_Management.Storage_Backends import (
    InMemoryStorage,
    JsonFileStorage,
    SQLiteStorage,
    create_storage_backend,
)
from media_catalog.core.DB_Management.exceptions import StorageError
#
#######################################################################################################################
#
# Functions:

# --- Fixtures ---

@pytest.fixture
def json_path(tmp_path):
    return tmp_path / "data" / "catalog_storage.json"


@pytest.fixture
def sqlite_storage(tmp_path):
    storage = SQLiteStorage(tmp_path / "catalog.sqlite")
    yield storage
    storage.close_connection()


@pytest.fixture(params=["memory", "json", "sqlite"])
def any_storage(request, tmp_path):
    if request.param == "memory":
        yield InMemoryStorage()
    elif request.param == "json":
        yield JsonFileStorage(tmp_path / "store.json")
    else:
        storage = SQLiteStorage(":memory:")
        yield storage
        storage.close_connection()


class FailingStorage(InMemoryStorage):
    """Accepts the initial writes, then fails every write."""

    def __init__(self):
        super().__init__()
        self.fail_writes = False

    def set_item(self, key, value):
        if self.fail_writes:
            raise StorageError("disk full", key=key)
        super().set_item(key, value)


# --- Test Classes ---

class TestBackendContract:
    def test_get_missing_is_none(self, any_storage):
        assert any_storage.get_item("nope") is None

    def test_set_get_overwrite(self, any_storage):
        any_storage.set_item("k", "v1")
        any_storage.set_item("k", "v2")
        assert any_storage.get_item("k") == "v2"

    def test_remove_and_clear(self, any_storage):
        any_storage.set_item("a", "1")
        any_storage.set_item("b", "2")
        any_storage.remove_item("a")
        any_storage.remove_item("missing")
        assert any_storage.get_item("a") is None
        assert any_storage.get_item("b") == "2"
        any_storage.clear()
        assert any_storage.get_item("b") is None

    def test_catalog_works_on_backend(self, any_storage):
        db = MediaCatalogDB(any_storage)
        record = db.add_media({"type": "movie", "title": "Dune", "rating": 5})
        assert db.get_by_id(record.id).title == "Dune"


class TestJsonFileStorage:
    def test_creates_parent_directory(self, json_path):
        JsonFileStorage(json_path).set_item("k", "v")
        assert json_path.exists()
        assert json.loads(json_path.read_text(encoding="utf-8")) == {"k": "v"}

    def test_persists_across_instances(self, json_path):
        db = MediaCatalogDB(JsonFileStorage(json_path))
        record = db.add_media({"type": "novel", "title": "Emma"})
        reopened = MediaCatalogDB(JsonFileStorage(json_path))
        assert reopened.get_by_id(record.id).title == "Emma"

    def test_sees_writes_from_other_instance(self, json_path):
        first = JsonFileStorage(json_path)
        second = JsonFileStorage(json_path)
        first.set_item("k", "from first")
        assert second.get_item("k") == "from first"

    def test_corrupt_file_raises(self, json_path):
        json_path.parent.mkdir(parents=True)
        json_path.write_text("{not json", encoding="utf-8")
        with pytest.raises(StorageError):
            JsonFileStorage(json_path).get_item("k")

    def test_non_object_document_raises(self, json_path):
        json_path.parent.mkdir(parents=True)
        json_path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(StorageError):
            JsonFileStorage(json_path).get_item("k")


class TestSQLiteStorage:
    def test_persists_across_connections(self, tmp_path):
        path = tmp_path / "catalog.sqlite"
        storage = SQLiteStorage(path)
        storage.set_item("k", "v")
        storage.close_connection()
        reopened = SQLiteStorage(path)
        assert reopened.get_item("k") == "v"
        reopened.close_connection()

    def test_closed_connection_raises_storage_error(self, tmp_path):
        storage = SQLiteStorage(tmp_path / "closed.sqlite")
        storage.close_connection()
        with pytest.raises(StorageError):
            storage.get_item("k")


class TestCorruptCollection:
    def test_corrupt_collection_propagates(self):
        storage = InMemoryStorage({"media_catalog_v2": "{{{", "media_sync_queue": "[]"})
        db = MediaCatalogDB(storage)
        with pytest.raises(StorageError) as exc_info:
            db.get_all()
        assert "media_catalog_v2" in str(exc_info.value)

    def test_non_list_collection_propagates(self):
        storage = InMemoryStorage({"media_catalog_v2": '{"id": 1}'})
        with pytest.raises(StorageError):
            MediaCatalogDB(storage).get_counts()

    def test_corrupt_sync_queue_propagates_on_write(self):
        storage = InMemoryStorage({"media_catalog_v2": "[]", "media_sync_queue": "oops"})
        with pytest.raises(StorageError):
            MediaCatalogDB(storage).add_media({"type": "movie", "title": "Dune"})

    def test_write_failure_propagates(self):
        storage = FailingStorage()
        db = MediaCatalogDB(storage)
        storage.fail_writes = True
        with pytest.raises(StorageError):
            db.add_media({"type": "movie", "title": "Dune"})
        assert db.get_all() == []


class TestCreateStorageBackend:
    def test_memory(self):
        assert isinstance(create_storage_backend({"backend": "memory"}), InMemoryStorage)

    def test_json(self, tmp_path):
        backend = create_storage_backend({"backend": "json", "path": str(tmp_path / "s.json")})
        assert isinstance(backend, JsonFileStorage)

    def test_sqlite(self, tmp_path):
        backend = create_storage_backend({"backend": "SQLite", "path": str(tmp_path / "s.sqlite")})
        assert isinstance(backend, SQLiteStorage)
        backend.close_connection()

    def test_missing_path(self):
        with pytest.raises(ValueError):
            create_storage_backend({"backend": "json"})

    def test_unknown_backend(self, tmp_path):
        with pytest.raises(ValueError):
            create_storage_backend({"backend": "redis", "path": str(tmp_path / "x")})

#
# End of test_storage_backends.py
#######################################################################################################################
