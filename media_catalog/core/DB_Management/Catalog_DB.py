# Catalog_DB.py
# Description: The media catalog store. Owns the persisted collection of movie/music/novel
# records and provides CRUD, statistics, search and export/import over it.
#
# Imports
import json
from decimal import Decimal, ROUND_HALF_UP
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Union
#
# 3rd-party Libraries
from loguru import logger
from pydantic import BaseModel, TypeAdapter, ValidationError
#
# Local Imports
from media_catalog.core.DB_Management.Storage_Backends import StorageBackend
from media_catalog.core.DB_Management.exceptions import ImportFormatError, InputError, StorageError
from media_catalog.core.Sync.models import DEFAULT_SYNC_QUEUE_KEY, SyncAction, SyncQueue, SyncQueueEntry
from media_catalog.core.Utils.Utils import (
    Clock, MonotonicIdSource, coerce_rating, to_iso_date, to_iso_timestamp, utc_now
)
from media_catalog.schemas.media_models import FIELD_ALIASES, IMMUTABLE_KEYS, MediaRecord
#
#######################################################################################################################
#
# Classes:

DEFAULT_STORAGE_KEY = "media_catalog_v2"
EXPORT_FILENAME_TEMPLATE = "media-catalog-backup-{date}.json"

_RECORD_LIST_ADAPTER = TypeAdapter(List[MediaRecord])

ChangeListener = Callable[[], None]

_TEXT_FIELDS = frozenset({"type", "title", "genre", "notes"})


def _text(value: Any) -> str:
    return str(value) if value else ""


class MediaCatalogDB:
    """
    Catalog store over a key/value storage backend.

    The collection lives under one key as a JSON array of records; every
    mutation is a read-modify-write of that array, followed by an entry in the
    sync queue and a change notification. Not-found results are reported as
    False/None rather than raised. Storage failures propagate as StorageError.
    """

    def __init__(
        self,
        storage: StorageBackend,
        *,
        clock: Optional[Clock] = None,
        id_source: Optional[Callable[[], int]] = None,
        storage_key: str = DEFAULT_STORAGE_KEY,
        sync_queue_key: str = DEFAULT_SYNC_QUEUE_KEY,
    ):
        if not isinstance(storage, StorageBackend):
            raise TypeError("storage must be a StorageBackend instance.")
        self.storage = storage
        self.storage_key = storage_key
        self._clock = clock or utc_now
        self._id_source = id_source or MonotonicIdSource(self._clock)
        self.sync_queue = SyncQueue(storage, sync_queue_key)
        self._listeners: List[ChangeListener] = []
        self._last_issued_id = 0
        self._init_database()

    def _init_database(self) -> None:
        if self.storage.get_item(self.storage_key) is None:
            self.storage.set_item(self.storage_key, "[]")
            logger.info(f"Catalog initialized with empty collection under '{self.storage_key}'")
        self.sync_queue.ensure_initialized()

    # --- Persistence helpers ---

    def _load_items(self) -> List[Dict[str, Any]]:
        raw = self.storage.get_item(self.storage_key)
        if not raw:
            return []
        try:
            items = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Stored collection under '{self.storage_key}' is not valid JSON: {e}")
            raise StorageError(f"Stored collection is not valid JSON: {e}", key=self.storage_key) from e
        if not isinstance(items, list):
            raise StorageError("Stored collection is not a list.", key=self.storage_key)
        return items

    def _save_all(self, items: List[Dict[str, Any]]) -> None:
        self.storage.set_item(self.storage_key, json.dumps(items, ensure_ascii=False, default=str))

    def _sorted_items(self) -> List[Dict[str, Any]]:
        # Newest first
        return sorted(self._load_items(), key=lambda item: item["id"], reverse=True)

    def _next_id(self, items: List[Dict[str, Any]]) -> int:
        candidate = self._id_source()
        # Ids are never reused, including ids of records deleted earlier in this process
        floor = max([item["id"] for item in items] + [self._last_issued_id])
        if candidate <= floor:
            logger.debug(f"Id source returned {candidate}, not above {floor}; using {floor + 1}")
            candidate = floor + 1
        self._last_issued_id = candidate
        return candidate

    # --- CRUD Operations ---

    def get_all(self) -> List[MediaRecord]:
        return [MediaRecord.model_validate(item) for item in self._sorted_items()]

    def get_by_type(self, media_type: str) -> List[MediaRecord]:
        """Records of one type. 'music' matches any type containing it ('music album')."""
        return [
            MediaRecord.model_validate(item)
            for item in self._sorted_items()
            if self._matches_type(item, media_type)
        ]

    def get_by_id(self, media_id: int) -> Optional[MediaRecord]:
        for item in self._load_items():
            if item.get("id") == media_id:
                return MediaRecord.model_validate(item)
        return None

    def add_media(self, fields: Union[Mapping[str, Any], BaseModel]) -> MediaRecord:
        """
        Creates a record from caller-validated fields and returns it.

        Only type/title/rating/genre/notes are taken from *fields*; the id and
        the three timestamps are generated here.
        """
        if isinstance(fields, BaseModel):
            fields = fields.model_dump()
        now = self._clock()
        timestamp = to_iso_timestamp(now)

        items = self._load_items()
        record = MediaRecord(
            id=self._next_id(items),
            type=_text(fields.get("type")),
            title=_text(fields.get("title")),
            rating=coerce_rating(fields.get("rating")),
            genre=_text(fields.get("genre")),
            notes=_text(fields.get("notes")),
            date_added=to_iso_date(now),
            created_at=timestamp,
            updated_at=timestamp,
        )

        items.insert(0, record.to_storage_dict())
        self._save_all(items)
        self._add_to_sync_queue(SyncAction.CREATE, record.to_storage_dict(), now)
        self._broadcast_update()

        logger.info(f"Added media id={record.id} type='{record.type}' title='{record.title}'")
        return record

    def _normalize_updates(self, updates: Union[Mapping[str, Any], BaseModel]) -> Dict[str, Any]:
        if isinstance(updates, BaseModel):
            updates = updates.model_dump(exclude_unset=True, by_alias=True)
        if not isinstance(updates, Mapping):
            raise InputError(f"Updates must be a mapping of field names to values, got {type(updates).__name__}.")
        normalized = {}
        for key, value in updates.items():
            key = FIELD_ALIASES.get(key, key)
            if key in IMMUTABLE_KEYS or key == "updatedAt":
                logger.warning(f"Ignoring update of read-only field '{key}'")
                continue
            # Known fields keep their stored types; anything else is merged as given
            if key == "rating":
                value = coerce_rating(value)
            elif key in _TEXT_FIELDS:
                value = "" if value is None else str(value)
            normalized[key] = value
        return normalized

    def update_media(self, media_id: int, updates: Union[Mapping[str, Any], BaseModel]) -> bool:
        """
        Shallow-merges *updates* over the record with *media_id*.

        Returns False when no such record exists. Values are neither range-checked
        nor rejected: a rating is parsed like on create ("4.5" -> 4) and the text
        fields are stringified.

        Raises:
            InputError: *updates* is not a mapping of field names to values.
        """
        normalized = self._normalize_updates(updates)
        items = self._load_items()
        index = next((i for i, item in enumerate(items) if item.get("id") == media_id), None)
        if index is None:
            logger.warning(f"Update skipped: no media with id={media_id}")
            return False

        now = self._clock()
        items[index] = {**items[index], **normalized, "updatedAt": to_iso_timestamp(now)}
        self._save_all(items)
        self._add_to_sync_queue(SyncAction.UPDATE, items[index], now)
        self._broadcast_update()

        logger.info(f"Updated media id={media_id}")
        return True

    def delete_media(self, media_id: int) -> bool:
        items = self._load_items()
        item_to_delete = next((item for item in items if item.get("id") == media_id), None)
        remaining = [item for item in items if item.get("id") != media_id]

        if len(remaining) == len(items):
            logger.debug(f"Delete skipped: no media with id={media_id}")
            return False

        self._save_all(remaining)
        self._add_to_sync_queue(SyncAction.DELETE, {"id": media_id, **(item_to_delete or {})}, self._clock())
        self._broadcast_update()

        logger.info(f"Deleted media id={media_id}")
        return True

    # --- Statistics ---

    @staticmethod
    def _matches_type(item: Mapping[str, Any], media_type: Optional[str]) -> bool:
        item_type = str(item.get("type") or "").lower()
        search_type = (media_type or "").lower()
        if search_type == "music":
            return "music" in item_type
        return item_type == search_type

    def get_counts(self) -> Dict[str, int]:
        items = self._load_items()
        return {
            "movies": sum(1 for item in items if self._matches_type(item, "movie")),
            "music": sum(1 for item in items if self._matches_type(item, "music")),
            "novels": sum(1 for item in items if self._matches_type(item, "novel")),
            "total": len(items),
        }

    @staticmethod
    def _average_rating(items: List[Mapping[str, Any]]) -> float:
        """
        Mean over rated items only (rating > 0); 0 if none are rated.

        The binary float mean is rounded half-up to one decimal, so 29/20
        (stored as 1.4499...) gives 1.4.
        """
        rated = [item["rating"] for item in items if item.get("rating", 0) > 0]
        if not rated:
            return 0.0
        average = Decimal(sum(rated) / len(rated))
        return float(average.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))

    def get_stats(self) -> Dict[str, Any]:
        items = self._sorted_items()
        return {
            "counts": self.get_counts(),
            "avg_movie_rating": self._average_rating([i for i in items if self._matches_type(i, "movie")]),
            "avg_music_rating": self._average_rating([i for i in items if self._matches_type(i, "music")]),
            "avg_novel_rating": self._average_rating([i for i in items if self._matches_type(i, "novel")]),
            "last_updated": items[0].get("createdAt") if items else None,
        }

    # --- Search ---

    def search(self, query: Optional[str]) -> List[MediaRecord]:
        """Case-insensitive substring search over title, genre and notes."""
        search_term = (query or "").strip().lower()
        if not search_term:
            return self.get_all()

        def _hit(item: Mapping[str, Any]) -> bool:
            return any(
                search_term in str(item.get(field_name) or "").lower()
                for field_name in ("title", "genre", "notes")
            )

        results = [MediaRecord.model_validate(item) for item in self._sorted_items() if _hit(item)]
        logger.debug(f"Search '{search_term}' matched {len(results)} item(s)")
        return results

    # --- Export/Import ---

    def export_data(self) -> str:
        """The full collection, newest first, as an indented JSON document."""
        return json.dumps([record.to_storage_dict() for record in self.get_all()], ensure_ascii=False, indent=2)

    def export_to_file(self, directory: Union[str, Path]) -> Path:
        """Writes the export document as media-catalog-backup-<date>.json inside *directory*."""
        export_path = Path(directory) / EXPORT_FILENAME_TEMPLATE.format(date=to_iso_date(self._clock()))
        try:
            export_path.parent.mkdir(parents=True, exist_ok=True)
            export_path.write_text(self.export_data(), encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to write export file {export_path}: {e}")
            raise StorageError(f"Failed to write export file: {e}") from e
        logger.info(f"Exported catalog to {export_path}")
        return export_path

    @staticmethod
    def _parse_snapshot(snapshot: Union[str, bytes, List[Any]]) -> List[MediaRecord]:
        data = snapshot
        if isinstance(data, bytes):
            try:
                data = data.decode("utf-8")
            except UnicodeDecodeError as e:
                raise ImportFormatError(f"Import data is not UTF-8 text: {e}") from e
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except json.JSONDecodeError as e:
                raise ImportFormatError(str(e)) from e
        if not isinstance(data, list):
            raise ImportFormatError("Invalid data format")
        try:
            return _RECORD_LIST_ADAPTER.validate_python(data)
        except ValidationError as e:
            raise ImportFormatError(f"Invalid record in import data: {e}") from e

    def import_data(self, snapshot: Union[str, bytes, List[Any]]) -> Dict[str, Any]:
        """
        Merges a previously exported snapshot into the collection.

        Records whose id already exists are skipped (existing records win).
        Returns {"success": True, "imported": n} or {"success": False, "error": msg}.
        """
        try:
            records = self._parse_snapshot(snapshot)
        except ImportFormatError as e:
            logger.warning(f"Import rejected: {e}")
            return {"success": False, "error": str(e)}

        existing = self._load_items()
        known_ids = {item.get("id") for item in existing}
        new_items = []
        for record in records:
            if record.id in known_ids:
                continue
            known_ids.add(record.id)
            new_items.append(record.to_storage_dict())

        self._save_all(new_items + existing)
        self._broadcast_update()

        logger.info(f"Imported {len(new_items)} new item(s), skipped {len(records) - len(new_items)}")
        return {"success": True, "imported": len(new_items)}

    def import_from_file(self, path: Union[str, Path]) -> Dict[str, Any]:
        try:
            payload = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not read import file {path}: {e}")
            return {"success": False, "error": f"Could not read import file: {e}"}
        return self.import_data(payload)

    def clear_all_data(self) -> None:
        """Empties the collection and the sync queue."""
        self._save_all([])
        self.sync_queue.clear()
        self._broadcast_update()
        logger.warning("All catalog data cleared")

    # --- Sync queue (written only, reserved for remote sync) ---

    def _add_to_sync_queue(self, action: SyncAction, item: Dict[str, Any], timestamp) -> None:
        self.sync_queue.append(SyncQueueEntry(action=action, item=dict(item), timestamp=timestamp))

    def clear_sync_queue(self) -> None:
        self.sync_queue.clear()

    # --- Change notification ---

    def on_change(self, listener: ChangeListener) -> Callable[[], None]:
        """Registers *listener* to be called after every persisted change. Returns an unsubscribe callable."""
        if not callable(listener):
            raise TypeError("listener must be callable.")
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _broadcast_update(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as e:
                logger.opt(exception=True).error(f"Change listener {listener!r} failed: {e}")

#
# End of Catalog_DB.py
#######################################################################################################################
