# Offline_Cache/exceptions.py


class CacheShellError(Exception):
    """Base exception for the offline cache shell."""
    pass


class AssetFetchError(CacheShellError):
    """An asset could not be retrieved from the network (or from the fallback cache)."""

    def __init__(self, message, url=None, status=None, *args):
        super().__init__(message, *args)
        self.url = url
        self.status = status

    def __str__(self):
        base = super().__str__()
        details = []
        if self.url: details.append(f"URL: {self.url}")
        if self.status: details.append(f"Status: {self.status}")
        return f"{base} ({', '.join(details)})" if details else base


class CacheShellStateError(CacheShellError):
    """A lifecycle operation was attempted from the wrong state."""
    pass
