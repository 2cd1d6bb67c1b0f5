# Offline_Cache/cache_storage.py
# Description: Named, versioned asset caches (in-memory and on-disk) used by the cache shell.
#
# Imports
import base64
import hashlib
import json
import re
import shutil
import threading
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from pathlib import Path
from typing import Dict, List, Optional, Union
#
# 3rd-party Libraries
from loguru import logger
#
# Local Imports
from media_catalog.core.Offline_Cache.exceptions import CacheShellError
from media_catalog.core.Offline_Cache.models import Request, Response
#
#######################################################################################################################
#
# Classes:


def _require_get(request: Request) -> None:
    if request.method != "GET":
        raise ValueError(f"Only GET requests can be cached (got {request.method}).")


class AssetCache(ABC):
    """One named cache: request URL -> stored response."""

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    def match(self, request: Request) -> Optional[Response]:
        pass

    @abstractmethod
    def put(self, request: Request, response: Response) -> None:
        pass

    @abstractmethod
    def delete(self, request: Request) -> bool:
        pass

    @abstractmethod
    def keys(self) -> List[str]:
        pass


class CacheStorage(ABC):
    """The set of named caches shared by every shell version of one origin."""

    @abstractmethod
    def open(self, name: str) -> AssetCache:
        """Returns the cache called *name*, creating it if needed."""
        pass

    @abstractmethod
    def has(self, name: str) -> bool:
        pass

    @abstractmethod
    def delete(self, name: str) -> bool:
        pass

    @abstractmethod
    def keys(self) -> List[str]:
        """Cache names in creation order."""
        pass

    def match(self, request: Request) -> Optional[Response]:
        """First match across all caches, oldest cache first."""
        for name in self.keys():
            response = self.open(name).match(request)
            if response is not None:
                return response
        return None

# --- In-memory implementation ---

class MemoryAssetCache(AssetCache):
    def __init__(self, name: str):
        super().__init__(name)
        self._entries: Dict[str, Response] = {}
        self._lock = threading.RLock()

    def match(self, request: Request) -> Optional[Response]:
        with self._lock:
            response = self._entries.get(request.cache_key)
            return response.clone() if response is not None else None

    def put(self, request: Request, response: Response) -> None:
        _require_get(request)
        with self._lock:
            self._entries[request.cache_key] = response.clone()

    def delete(self, request: Request) -> bool:
        with self._lock:
            return self._entries.pop(request.cache_key, None) is not None

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._entries.keys())


class MemoryCacheStorage(CacheStorage):
    def __init__(self):
        self._caches: "OrderedDict[str, MemoryAssetCache]" = OrderedDict()
        self._lock = threading.RLock()

    def open(self, name: str) -> AssetCache:
        with self._lock:
            if name not in self._caches:
                self._caches[name] = MemoryAssetCache(name)
                logger.debug(f"Created cache '{name}'")
            return self._caches[name]

    def has(self, name: str) -> bool:
        with self._lock:
            return name in self._caches

    def delete(self, name: str) -> bool:
        with self._lock:
            return self._caches.pop(name, None) is not None

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._caches.keys())

# --- On-disk implementation ---

class FileSystemAssetCache(AssetCache):
    """
    A cache directory holding `index.json` (key -> metadata) and one `.body`
    file per entry, named by the SHA-256 of the key.
    """

    INDEX_FILE = "index.json"

    def __init__(self, name: str, directory: Path):
        super().__init__(name)
        self.directory = directory
        self._lock = threading.RLock()

    def _index_path(self) -> Path:
        return self.directory / self.INDEX_FILE

    def _load_index(self) -> Dict[str, Dict]:
        path = self._index_path()
        if not path.exists():
            return {}
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error loading cache index {path}: {e}")
            raise CacheShellError(f"Failed to load cache index for '{self.name}': {e}") from e

    def _save_index(self, index: Dict[str, Dict]) -> None:
        path = self._index_path()
        try:
            with open(path, "w", encoding="utf-8") as f:
                json.dump(index, f, indent=2)
        except OSError as e:
            logger.error(f"Error saving cache index {path}: {e}")
            raise CacheShellError(f"Failed to save cache index for '{self.name}': {e}") from e

    @staticmethod
    def _body_filename(key: str) -> str:
        return hashlib.sha256(key.encode("utf-8")).hexdigest() + ".body"

    def match(self, request: Request) -> Optional[Response]:
        with self._lock:
            meta = self._load_index().get(request.cache_key)
            if meta is None:
                return None
            try:
                body = (self.directory / meta["body_file"]).read_bytes()
            except OSError as e:
                logger.warning(f"Cache body missing for {request.cache_key} in '{self.name}': {e}")
                return None
            return Response(
                url=meta["url"],
                status=meta["status"],
                headers=meta["headers"],
                body=body,
                type=meta["type"],
            )

    def put(self, request: Request, response: Response) -> None:
        _require_get(request)
        key = request.cache_key
        body_file = self._body_filename(key)
        with self._lock:
            try:
                self.directory.mkdir(parents=True, exist_ok=True)
                (self.directory / body_file).write_bytes(response.body)
            except OSError as e:
                raise CacheShellError(f"Failed to store cached body for {key}: {e}") from e
            index = self._load_index()
            index[key] = {
                "url": response.url,
                "status": response.status,
                "headers": dict(response.headers),
                "type": response.type,
                "body_file": body_file,
            }
            self._save_index(index)

    def delete(self, request: Request) -> bool:
        with self._lock:
            index = self._load_index()
            meta = index.pop(request.cache_key, None)
            if meta is None:
                return False
            (self.directory / meta["body_file"]).unlink(missing_ok=True)
            self._save_index(index)
            return True

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._load_index().keys())


class FileSystemCacheStorage(CacheStorage):
    """Caches persisted under *root*, one sub-directory per cache name."""

    META_FILE = "cache_meta.json"
    _UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root).expanduser()
        self._lock = threading.RLock()
        self._open_caches: Dict[str, FileSystemAssetCache] = {}
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheShellError(f"Could not create cache directory {self.root}: {e}") from e
        logger.info(f"File system cache storage at {self.root}")

    def _dir_for(self, name: str) -> Path:
        safe = self._UNSAFE_CHARS.sub("_", name)
        if safe != name:
            # Keep distinct names distinct after sanitising
            safe += "-" + base64.urlsafe_b64encode(hashlib.sha1(name.encode("utf-8")).digest()[:6]).decode("ascii")
        return self.root / safe

    def _read_meta(self, directory: Path) -> Optional[Dict]:
        try:
            with open(directory / self.META_FILE, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError):
            return None

    def _all_meta(self) -> List[Dict]:
        metas = (self._read_meta(d) for d in self.root.iterdir() if d.is_dir())
        return [meta for meta in metas if meta is not None]

    def open(self, name: str) -> AssetCache:
        with self._lock:
            directory = self._dir_for(name)
            if self._read_meta(directory) is None:
                # Creation stamps are strictly increasing so keys() order is stable
                created = max([time.time_ns()] + [meta["created"] + 1 for meta in self._all_meta()])
                try:
                    directory.mkdir(parents=True, exist_ok=True)
                    with open(directory / self.META_FILE, "w", encoding="utf-8") as f:
                        json.dump({"name": name, "created": created}, f)
                except OSError as e:
                    raise CacheShellError(f"Could not create cache '{name}': {e}") from e
                logger.debug(f"Created cache '{name}' in {directory}")
            if name not in self._open_caches:
                self._open_caches[name] = FileSystemAssetCache(name, directory)
            return self._open_caches[name]

    def has(self, name: str) -> bool:
        with self._lock:
            return self._read_meta(self._dir_for(name)) is not None

    def delete(self, name: str) -> bool:
        with self._lock:
            directory = self._dir_for(name)
            if self._read_meta(directory) is None:
                return False
            self._open_caches.pop(name, None)
            shutil.rmtree(directory, ignore_errors=True)
            return True

    def keys(self) -> List[str]:
        with self._lock:
            return [meta["name"] for meta in sorted(self._all_meta(), key=lambda m: m["created"])]

#
# End of Offline_Cache/cache_storage.py
#######################################################################################################################
