# Sync/models.py
# Description: Append-only audit log of catalog mutations, kept for a future remote sync.
#
# Imports
import json
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List
#
# 3rd-party Libraries
from loguru import logger
#
# Local Imports
from media_catalog.core.DB_Management.Storage_Backends import StorageBackend
from media_catalog.core.DB_Management.exceptions import StorageError
from media_catalog.core.Utils.Utils import to_iso_timestamp
#
#######################################################################################################################
#
# Classes:

DEFAULT_SYNC_QUEUE_KEY = "media_sync_queue"


class SyncAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass
class SyncQueueEntry:
    action: SyncAction
    item: Dict[str, Any]
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        """Serializes the entry the way it is persisted."""
        return {
            "action": self.action.value,
            "item": self.item,
            "timestamp": to_iso_timestamp(self.timestamp),
        }


class SyncQueue:
    """
    Writes SyncQueueEntry records under a fixed storage key. Nothing in this
    package reads the queue back; it is reserved for a remote sync feature.
    """

    def __init__(self, storage: StorageBackend, key: str = DEFAULT_SYNC_QUEUE_KEY):
        self.storage = storage
        self.key = key

    def ensure_initialized(self) -> None:
        if self.storage.get_item(self.key) is None:
            self.storage.set_item(self.key, "[]")

    def _load(self) -> List[Dict[str, Any]]:
        raw = self.storage.get_item(self.key)
        if not raw:
            return []
        try:
            queue = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"Sync queue under '{self.key}' is not valid JSON: {e}")
            raise StorageError(f"Sync queue is not valid JSON: {e}", key=self.key) from e
        if not isinstance(queue, list):
            raise StorageError("Sync queue is not a list.", key=self.key)
        return queue

    def append(self, entry: SyncQueueEntry) -> None:
        queue = self._load()
        queue.append(entry.to_dict())
        self.storage.set_item(self.key, json.dumps(queue, default=str))
        logger.debug(f"Queued {entry.action.value} for item id={entry.item.get('id')}")

    def clear(self) -> None:
        self.storage.set_item(self.key, "[]")
        logger.info("Sync queue cleared")

#
# End of Sync/models.py
#######################################################################################################################
