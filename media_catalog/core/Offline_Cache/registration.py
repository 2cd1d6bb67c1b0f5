# Offline_Cache/registration.py
# Description: Host-side driver that installs new shell versions and routes requests to the active one.
#
# Imports
import threading
from typing import Dict, Optional
#
# 3rd-party Libraries
from loguru import logger
#
# Local Imports
from media_catalog.core.Offline_Cache.cache_shell import OfflineCacheShell
from media_catalog.core.Offline_Cache.cache_storage import CacheStorage
from media_catalog.core.Offline_Cache.fetchers import Fetcher
from media_catalog.core.Offline_Cache.models import InstallResult, Request, Response
#
#######################################################################################################################
#
# Classes:


class CacheShellRegistration:
    """
    Tracks the active shell for one scope.

    A newly registered shell replaces the active one only if its install
    succeeds; otherwise the previous version keeps serving.
    """

    def __init__(self, cache_storage: CacheStorage, fetcher: Fetcher):
        self.cache_storage = cache_storage
        self.fetcher = fetcher
        self.active: Optional[OfflineCacheShell] = None
        # client id -> cache name of the controlling shell (None = uncontrolled)
        self.clients: Dict[str, Optional[str]] = {}
        self._lock = threading.Lock()

    def connect_client(self, client_id: str) -> None:
        with self._lock:
            self.clients[client_id] = self.active.cache_name if self.active else None

    def disconnect_client(self, client_id: str) -> None:
        with self._lock:
            self.clients.pop(client_id, None)

    def register(self, shell: OfflineCacheShell) -> InstallResult:
        if shell.cache_storage is not self.cache_storage:
            raise ValueError("Shell must use the registration's cache storage.")

        result = shell.install()
        if not result.success:
            current = self.active.cache_name if self.active else None
            logger.warning(f"New shell failed to install; still serving from '{current}'")
            return result

        def _claim() -> None:
            with self._lock:
                for client_id in self.clients:
                    self.clients[client_id] = shell.cache_name

        previous = self.active
        shell.activate(claim_clients=_claim)
        with self._lock:
            self.active = shell
        if previous is not None:
            previous.terminate()
        return result

    def handle(self, request: Request) -> Response:
        active = self.active
        if active is None:
            return self.fetcher.fetch(request)
        return active.handle(request)

#
# End of Offline_Cache/registration.py
#######################################################################################################################
