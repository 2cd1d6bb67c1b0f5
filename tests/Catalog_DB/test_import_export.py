# test_import_export.py
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
from media_catalog.core.DB_Management.Storage_Backends import InMemoryStorage
from media_catalog.core.DB_Management.exceptions import StorageError
#
#######################################################################################################################
#
# Functions:

# --- Fixtures ---

@pytest.fixture
def populated(catalog, clock):
    catalog.add_media({"type": "movie", "title": "Dune", "rating": 5, "genre": "Sci-Fi"})
    clock.advance(seconds=1)
    catalog.add_media({"type": "music", "title": "OK Computer", "rating": 4, "genre": "Rock"})
    clock.advance(seconds=1)
    catalog.add_media({"type": "novel", "title": "Emma", "rating": 0, "notes": "to read"})
    return catalog


@pytest.fixture
def fresh_catalog(clock):
    return MediaCatalogDB(InMemoryStorage(), clock=clock)


# --- Test Classes ---

class TestExport:
    def test_export_is_indented_json_newest_first(self, populated):
        exported = populated.export_data()
        assert "\n  " in exported
        data = json.loads(exported)
        assert [item["title"] for item in data] == ["Emma", "OK Computer", "Dune"]
        assert "dateAdded" in data[0] and "createdAt" in data[0] and "updatedAt" in data[0]

    def test_export_empty(self, catalog):
        assert json.loads(catalog.export_data()) == []

    def test_export_to_file_uses_dated_filename(self, populated, tmp_path):
        path = populated.export_to_file(tmp_path / "backups")
        assert path.name == "media-catalog-backup-2026-03-14.json"
        assert json.loads(path.read_text(encoding="utf-8")) == json.loads(populated.export_data())

    def test_export_to_file_failure_raises_storage_error(self, populated, tmp_path):
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("x")
        with pytest.raises(StorageError):
            populated.export_to_file(blocker)


class TestImport:
    def test_round_trip_into_empty_store(self, populated, fresh_catalog):
        result = fresh_catalog.import_data(populated.export_data())
        assert result == {"success": True, "imported": 3}
        assert fresh_catalog.get_all() == populated.get_all()

    def test_second_import_is_a_no_op(self, populated, fresh_catalog):
        snapshot = populated.export_data()
        fresh_catalog.import_data(snapshot)
        before = fresh_catalog.get_all()
        assert fresh_catalog.import_data(snapshot) == {"success": True, "imported": 0}
        assert fresh_catalog.get_all() == before

    def test_existing_records_win(self, populated):
        snapshot = json.loads(populated.export_data())
        snapshot[0]["title"] = "Changed"
        assert populated.import_data(json.dumps(snapshot)) == {"success": True, "imported": 0}
        assert populated.get_by_id(snapshot[0]["id"]).title == "Emma"

    def test_imported_records_sorted_with_existing(self, populated):
        snapshot = [
            {"id": 1, "type": "movie", "title": "Metropolis", "rating": 5},
            {"id": 9999999999999, "type": "novel", "title": "Far Future", "rating": 2},
        ]
        assert populated.import_data(snapshot)["imported"] == 2
        ids = [r.id for r in populated.get_all()]
        assert ids == sorted(ids, reverse=True)
        assert ids[0] == 9999999999999
        assert ids[-1] == 1

    def test_duplicates_within_snapshot_first_wins(self, fresh_catalog):
        snapshot = [
            {"id": 5, "type": "movie", "title": "First"},
            {"id": 5, "type": "movie", "title": "Second"},
        ]
        assert fresh_catalog.import_data(snapshot) == {"success": True, "imported": 1}
        assert fresh_catalog.get_by_id(5).title == "First"

    def test_accepts_bytes(self, populated, fresh_catalog):
        result = fresh_catalog.import_data(populated.export_data().encode("utf-8"))
        assert result["success"] is True

    def test_import_does_not_touch_sync_queue(self, populated, fresh_catalog):
        fresh_catalog.import_data(populated.export_data())
        assert json.loads(fresh_catalog.storage.get_item("media_sync_queue")) == []

    def test_import_notifies_listeners(self, populated, fresh_catalog):
        calls = []
        fresh_catalog.on_change(lambda: calls.append(True))
        fresh_catalog.import_data(populated.export_data())
        assert calls == [True]

    @pytest.mark.parametrize("payload", [
        "not json at all",
        '{"id": 1, "title": "object, not list"}',
        "[1, 2, 3]",
        '[{"title": "no id"}]',
        b"\xff\xfe\x00",
        "42",
    ])
    def test_invalid_payload_returns_error(self, populated, payload):
        before = populated.storage.get_item("media_catalog_v2")
        calls = []
        populated.on_change(lambda: calls.append(True))

        result = populated.import_data(payload)

        assert result["success"] is False
        assert isinstance(result["error"], str) and result["error"]
        assert populated.storage.get_item("media_catalog_v2") == before
        assert calls == []

    def test_non_list_reports_invalid_format(self, catalog):
        assert catalog.import_data('{"a": 1}') == {"success": False, "error": "Invalid data format"}


class TestImportFromFile:
    def test_import_from_exported_file(self, populated, fresh_catalog, tmp_path):
        path = populated.export_to_file(tmp_path)
        assert fresh_catalog.import_from_file(path) == {"success": True, "imported": 3}

    def test_missing_file(self, catalog, tmp_path):
        result = catalog.import_from_file(tmp_path / "missing.json")
        assert result["success"] is False
        assert "Could not read import file" in result["error"]

#
# End of test_import_export.py
#######################################################################################################################
