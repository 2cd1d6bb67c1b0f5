# Offline_Cache/cache_shell.py
# Description: The offline cache shell. Caches the application's static assets at install time,
# garbage-collects older cache versions on activation, and answers fetches cache-first.
#
# Imports
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Iterable, List, Optional, Sequence, Tuple
from urllib.parse import urljoin, urlsplit
#
# 3rd-party Libraries
from loguru import logger
#
# Local Imports
from media_catalog.config import CacheShellSettings
from media_catalog.core.Offline_Cache.cache_storage import (
    CacheStorage, FileSystemCacheStorage, MemoryCacheStorage
)
from media_catalog.core.Offline_Cache.exceptions import AssetFetchError, CacheShellError, CacheShellStateError
from media_catalog.core.Offline_Cache.fetchers import Fetcher, HttpFetcher
from media_catalog.core.Offline_Cache.manifest import DEFAULT_ASSET_MANIFEST, build_manifest
from media_catalog.core.Offline_Cache.models import InstallResult, Request, Response, ShellState
from media_catalog.core.Utils.Utils import Clock, epoch_millis, utc_now
#
#######################################################################################################################
#
# Classes:

DEFAULT_CACHE_PREFIX = "media-catalog-v3-"
DEFAULT_ENTRY_PAGE = "./index.html"


class OfflineCacheShell:
    """
    One deployed version of the cache shell.

    Lifecycle: NEW -> INSTALLING -> INSTALLED -> ACTIVE -> TERMINATED. A failed
    install goes straight to TERMINATED and leaves no cache behind.
    """

    def __init__(
        self,
        cache_storage: CacheStorage,
        fetcher: Fetcher,
        scope: str,
        *,
        manifest: Optional[Sequence[str]] = None,
        clock: Optional[Clock] = None,
        cache_prefix: str = DEFAULT_CACHE_PREFIX,
        entry_page: str = DEFAULT_ENTRY_PAGE,
        denylisted_schemes: Iterable[str] = ("chrome-extension",),
        install_workers: int = 4,
    ):
        if not isinstance(cache_storage, CacheStorage):
            raise TypeError("cache_storage must be a CacheStorage object")
        if not isinstance(fetcher, Fetcher):
            raise TypeError("fetcher must be a Fetcher object")
        if not scope:
            raise ValueError("scope cannot be empty")

        self.cache_storage = cache_storage
        self.fetcher = fetcher
        self.scope = scope if scope.endswith("/") else scope + "/"
        self.manifest = list(manifest) if manifest is not None else list(DEFAULT_ASSET_MANIFEST)
        self.cache_prefix = cache_prefix
        self.entry_page = entry_page
        self.denylisted_schemes = {s.lower().rstrip(":/") for s in denylisted_schemes}
        self.install_workers = max(install_workers, 1)
        self._clock = clock or utc_now

        self.state = ShellState.NEW
        self.cache_name: Optional[str] = None
        self.claimed = False
        self._state_lock = threading.Lock()

    def __repr__(self):
        return f"<OfflineCacheShell cache={self.cache_name!r} state={self.state.value}>"

    def resolve(self, url: str) -> str:
        return urljoin(self.scope, url)

    def _transition(self, expected: ShellState, new_state: ShellState) -> None:
        with self._state_lock:
            if self.state != expected:
                raise CacheShellStateError(
                    f"Cannot move to '{new_state.value}' from '{self.state.value}' (expected '{expected.value}')"
                )
            self.state = new_state

    def _new_cache_name(self) -> str:
        stamp = epoch_millis(self._clock())
        # Every install gets its own namespace, even within the same millisecond
        while self.cache_storage.has(f"{self.cache_prefix}{stamp}"):
            stamp += 1
        return f"{self.cache_prefix}{stamp}"

    # --- Install ---

    def _fetch_asset(self, request: Request) -> Response:
        response = self.fetcher.fetch(request)
        if not response.ok:
            raise AssetFetchError("Asset request failed", url=request.url, status=response.status)
        return response

    def _fetch_all(self, requests_: List[Request]) -> List[Tuple[Request, Response]]:
        """Fetches every asset; the first failure cancels the rest and is raised."""
        executor = ThreadPoolExecutor(max_workers=self.install_workers, thread_name_prefix="cache-shell-install")
        try:
            futures = {executor.submit(self._fetch_asset, request): i for i, request in enumerate(requests_)}
            responses: List[Optional[Response]] = [None] * len(requests_)
            for future in as_completed(futures):
                responses[futures[future]] = future.result()
            return list(zip(requests_, responses))
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    def _abort_install(self) -> None:
        self.cache_storage.delete(self.cache_name)
        with self._state_lock:
            self.state = ShellState.TERMINATED

    def install(self, manifest: Optional[Sequence[str]] = None) -> InstallResult:
        """
        Fetches and caches every manifest asset into a fresh, version-tagged cache.

        All or nothing: if any asset cannot be fetched (or stored), the new cache
        is removed, the shell is terminated and the result reports the error.
        Errors that are not CacheShellError get the same cleanup and are re-raised.
        """
        self._transition(ShellState.NEW, ShellState.INSTALLING)
        self.cache_name = self._new_cache_name()
        assets = [Request(self.resolve(asset)) for asset in (manifest if manifest is not None else self.manifest)]
        logger.info(f"Installing cache shell '{self.cache_name}' with {len(assets)} assets")

        try:
            fetched = self._fetch_all(assets)
            cache = self.cache_storage.open(self.cache_name)
            for request, response in fetched:
                cache.put(request, response)
        except CacheShellError as e:
            self._abort_install()
            logger.error(f"Install of '{self.cache_name}' failed: {e}")
            return InstallResult(success=False, cache_name=self.cache_name, cached=0, error=str(e))
        except Exception:
            # Unexpected fetcher/storage errors still leave no cache and no half-installed shell
            self._abort_install()
            logger.opt(exception=True).error(f"Install of '{self.cache_name}' failed unexpectedly")
            raise

        # Skip waiting: eligible to activate immediately
        self.state = ShellState.INSTALLED
        logger.info(f"Cache shell '{self.cache_name}' installed ({len(fetched)} assets cached)")
        return InstallResult(success=True, cache_name=self.cache_name, cached=len(fetched))

    # --- Activate ---

    def activate(self, claim_clients: Optional[Callable[[], None]] = None) -> None:
        """Deletes every cache but this version's, then takes control of open clients."""
        self._transition(ShellState.INSTALLED, ShellState.ACTIVE)
        for name in self.cache_storage.keys():
            if name != self.cache_name:
                logger.info(f"Clearing old cache '{name}'")
                self.cache_storage.delete(name)
        if claim_clients is not None:
            claim_clients()
        self.claimed = True
        logger.info(f"Cache shell '{self.cache_name}' activated")

    def terminate(self) -> None:
        with self._state_lock:
            self.state = ShellState.TERMINATED
        logger.info(f"Cache shell '{self.cache_name}' terminated")

    # --- Fetch interception ---

    def _is_denylisted(self, url: str) -> bool:
        return urlsplit(url).scheme.lower() in self.denylisted_schemes

    def handle(self, request: Request) -> Response:
        """
        Answers an intercepted request.

        Non-GET and denylisted-scheme requests go straight to the network.
        GET requests are served from cache when present; otherwise from the
        network, caching plain same-origin 200 responses. When the network is
        unreachable, HTML requests fall back to the cached entry page.

        Raises:
            AssetFetchError: The network failed and no fallback applies.
        """
        if self.state != ShellState.ACTIVE:
            raise CacheShellStateError(f"Shell '{self.cache_name}' is {self.state.value}, not active")

        if request.method != "GET" or self._is_denylisted(request.url):
            return self.fetcher.fetch(request)

        request = Request(self.resolve(request.url), method=request.method, headers=request.headers)
        cached = self.cache_storage.match(request)
        if cached is not None:
            logger.debug(f"Cache hit: {request.url}")
            return cached

        try:
            response = self.fetcher.fetch(request)
        except AssetFetchError:
            if request.accepts_html:
                fallback = self.cache_storage.match(Request(self.resolve(self.entry_page)))
                if fallback is not None:
                    logger.info(f"Offline: serving entry page for {request.url}")
                    return fallback
            raise

        if response.status == 200 and response.type == "basic":
            try:
                self.cache_storage.open(self.cache_name).put(request, response.clone())
            except CacheShellError as e:
                logger.warning(f"Could not cache {request.url}: {e}")
        return response


def build_cache_shell(
    settings: Optional[CacheShellSettings] = None,
    *,
    cache_storage: Optional[CacheStorage] = None,
    fetcher: Optional[Fetcher] = None,
    clock: Optional[Clock] = None,
) -> OfflineCacheShell:
    """Creates a shell from settings, defaulting to disk caches when `cache_dir` is set."""
    settings = settings or CacheShellSettings.from_config()
    if cache_storage is None:
        cache_storage = FileSystemCacheStorage(settings.cache_dir) if settings.cache_dir else MemoryCacheStorage()
    if fetcher is None:
        fetcher = HttpFetcher(settings.scope, timeout=settings.request_timeout)
    return OfflineCacheShell(
        cache_storage,
        fetcher,
        settings.scope,
        manifest=build_manifest(settings.extra_assets),
        clock=clock,
        cache_prefix=settings.cache_prefix,
        entry_page=settings.entry_page,
        denylisted_schemes=settings.denylisted_schemes,
        install_workers=settings.install_workers,
    )

#
# End of Offline_Cache/cache_shell.py
#######################################################################################################################
