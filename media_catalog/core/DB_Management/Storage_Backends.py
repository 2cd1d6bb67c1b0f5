# Storage_Backends.py
# Description: Key/value text storage used by the catalog store (get/set of raw text by key).
#
# Imports
import json
import os
import sqlite3
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union
#
# 3rd-party Libraries
from loguru import logger
#
# Local Imports
from media_catalog.core.DB_Management.exceptions import StorageError
#
#######################################################################################################################
#
# Classes:


class StorageBackend(ABC):
    """Abstract base class for the text-by-key persistence medium."""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """Returns the stored text for *key*, or None when absent."""
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Stores *value* under *key*, replacing any previous value."""
        pass

    @abstractmethod
    def remove_item(self, key: str) -> None:
        pass

    @abstractmethod
    def clear(self) -> None:
        pass


class InMemoryStorage(StorageBackend):
    """Process-local storage, mainly for tests."""

    def __init__(self, initial: Optional[Mapping[str, str]] = None):
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)


class JsonFileStorage(StorageBackend):
    """
    All keys in one JSON document on disk. The file is re-read on every access,
    so separate processes see each other's last write (last write wins).
    """

    def __init__(self, file_path: Union[str, Path]):
        self.file_path = Path(file_path).expanduser()
        self._lock = threading.Lock()
        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Could not create storage directory {self.file_path.parent}: {e}")
            raise StorageError(f"Could not create storage directory: {e}") from e
        logger.info(f"JSON file storage initialized at {self.file_path}")

    def _load(self) -> Dict[str, str]:
        if not self.file_path.exists():
            return {}
        try:
            with open(self.file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Storage file {self.file_path} is corrupt: {e}")
            raise StorageError(f"Storage file is not valid JSON: {e}") from e
        except OSError as e:
            logger.error(f"Error reading storage file {self.file_path}: {e}")
            raise StorageError(f"Failed to read storage file: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"Storage file {self.file_path} does not hold a key/value document.")
        return data

    def _save(self, data: Dict[str, str]) -> None:
        tmp_path = self.file_path.with_suffix(self.file_path.suffix + ".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
                f.flush()
                os.fsync(f.fileno())
            tmp_path.replace(self.file_path)
        except OSError as e:
            logger.error(f"Error writing storage file {self.file_path}: {e}")
            raise StorageError(f"Failed to write storage file: {e}") from e

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            self._save(data)

    def remove_item(self, key: str) -> None:
        with self._lock:
            data = self._load()
            if key in data:
                del data[key]
                self._save(data)

    def clear(self) -> None:
        with self._lock:
            self._save({})


class SQLiteStorage(StorageBackend):
    """Key/value table in a SQLite database file (or ':memory:')."""

    _SCHEMA_SQL = """
    CREATE TABLE IF NOT EXISTS kv_store(
      key   TEXT PRIMARY KEY NOT NULL,
      value TEXT NOT NULL
    );
    """

    def __init__(self, db_path: Union[str, Path]):
        self.is_memory_db = str(db_path) == ":memory:"
        self.db_path_str = str(db_path) if self.is_memory_db else str(Path(db_path).expanduser())
        self._lock = threading.Lock()
        try:
            if not self.is_memory_db:
                Path(self.db_path_str).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.db_path_str, check_same_thread=False)
            self._conn.execute(self._SCHEMA_SQL)
            self._conn.commit()
        except (sqlite3.Error, OSError) as e:
            logger.error(f"Failed to open SQLite storage at {self.db_path_str}: {e}")
            raise StorageError(f"Failed to open SQLite storage: {e}") from e
        logger.info(f"SQLite storage initialized at {self.db_path_str}")

    def _execute(self, query: str, params: tuple = (), key: Optional[str] = None) -> sqlite3.Cursor:
        with self._lock:
            try:
                cursor = self._conn.execute(query, params)
                self._conn.commit()
                return cursor
            except sqlite3.Error as e:
                logger.error(f"SQLite storage query failed: {e}")
                raise StorageError(f"Query execution failed: {e}", key=key) from e

    def get_item(self, key: str) -> Optional[str]:
        row = self._execute("SELECT value FROM kv_store WHERE key = ?", (key,), key=key).fetchone()
        return row[0] if row else None

    def set_item(self, key: str, value: str) -> None:
        self._execute(
            "INSERT INTO kv_store(key, value) VALUES(?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (key, value),
            key=key,
        )

    def remove_item(self, key: str) -> None:
        self._execute("DELETE FROM kv_store WHERE key = ?", (key,), key=key)

    def clear(self) -> None:
        self._execute("DELETE FROM kv_store")

    def close_connection(self) -> None:
        with self._lock:
            self._conn.close()


def create_storage_backend(storage_config: Mapping[str, Any]) -> StorageBackend:
    """Builds the backend named by the `storage` config section (memory | json | sqlite)."""
    backend = str(storage_config.get("backend", "json")).strip().lower()
    path = storage_config.get("path")

    if backend in {"memory", "in-memory", "in_memory"}:
        return InMemoryStorage()
    if not path:
        raise ValueError(f"Storage backend '{backend}' requires a 'path' setting.")
    if backend == "json":
        return JsonFileStorage(path)
    if backend == "sqlite":
        return SQLiteStorage(path)

    raise ValueError(f"Unsupported storage backend='{backend}' (expected memory|json|sqlite)")

#
# End of Storage_Backends.py
#######################################################################################################################
