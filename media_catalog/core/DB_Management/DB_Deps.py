# DB_Deps.py
# Description: Builds and caches the process-wide catalog store from configuration.
#
# Imports
import threading
from typing import Any, Dict, Optional
#
# 3rd-party Libraries
from loguru import logger
#
# Local Imports
from media_catalog.config import DEFAULT_CONFIG, get_storage_path, load_config
from media_catalog.core.DB_Management.Catalog_DB import MediaCatalogDB
from media_catalog.core.DB_Management.Storage_Backends import create_storage_backend
#
#######################################################################################################################

_catalog_db: Optional[MediaCatalogDB] = None
_catalog_db_lock = threading.Lock()


def _storage_config(config: Dict[str, Any]) -> Dict[str, Any]:
    storage_config = dict(DEFAULT_CONFIG["storage"])
    storage_config.update(config.get("storage", {}))
    if storage_config.get("backend", "json") != "memory":
        storage_config["path"] = str(get_storage_path())
    return storage_config


def get_catalog_db() -> MediaCatalogDB:
    """Returns the shared catalog store, creating it from the loaded config on first use."""
    global _catalog_db
    with _catalog_db_lock:
        if _catalog_db is None:
            storage_config = _storage_config(load_config())
            storage = create_storage_backend(storage_config)
            _catalog_db = MediaCatalogDB(
                storage,
                storage_key=storage_config["storage_key"],
                sync_queue_key=storage_config["sync_queue_key"],
            )
            logger.info(f"Catalog store created (backend={storage_config['backend']})")
        return _catalog_db


def reset_catalog_db() -> None:
    global _catalog_db
    with _catalog_db_lock:
        _catalog_db = None

#
# End of DB_Deps.py
#######################################################################################################################
