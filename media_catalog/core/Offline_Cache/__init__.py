"""
Offline cache shell for the catalog's static assets.

- `cache_shell`: the versioned shell (install / activate / handle)
- `registration`: host-side driver that swaps shell versions
- `cache_storage`: named caches, in memory or on disk
- `fetchers`: network access via requests
"""
from .cache_shell import OfflineCacheShell, build_cache_shell
from .cache_storage import CacheStorage, FileSystemCacheStorage, MemoryCacheStorage
from .exceptions import AssetFetchError, CacheShellError, CacheShellStateError
from .fetchers import Fetcher, HttpFetcher
from .manifest import DEFAULT_ASSET_MANIFEST
from .models import InstallResult, Request, Response, ShellState
from .registration import CacheShellRegistration

__all__ = [
    "OfflineCacheShell",
    "build_cache_shell",
    "CacheStorage",
    "FileSystemCacheStorage",
    "MemoryCacheStorage",
    "AssetFetchError",
    "CacheShellError",
    "CacheShellStateError",
    "Fetcher",
    "HttpFetcher",
    "DEFAULT_ASSET_MANIFEST",
    "InstallResult",
    "Request",
    "Response",
    "ShellState",
    "CacheShellRegistration",
]
