# Offline_Cache/fetchers.py
# Description: Network access for the cache shell.
#
# Imports
from abc import ABC, abstractmethod
from typing import Optional
from urllib.parse import urlsplit
#
# 3rd-party Libraries
import requests
from loguru import logger
#
# Local Imports
from media_catalog.core.Offline_Cache.exceptions import AssetFetchError
from media_catalog.core.Offline_Cache.models import Request, Response
#
#######################################################################################################################
#
# Classes:


def same_origin(url_a: str, url_b: str) -> bool:
    a, b = urlsplit(url_a), urlsplit(url_b)
    return (a.scheme, a.hostname, a.port) == (b.scheme, b.hostname, b.port)


class Fetcher(ABC):
    """Abstract base class for the network side of the cache shell."""

    @abstractmethod
    def fetch(self, request: Request) -> Response:
        """
        Performs *request* against the network.

        Returns:
            The response, whatever its status.

        Raises:
            AssetFetchError: If no response could be obtained at all.
        """
        pass


class HttpFetcher(Fetcher):
    """HTTP(S) fetcher using requests. Responses from *origin* are typed 'basic', others 'cors'."""

    def __init__(self, origin: str, timeout: Optional[float] = 30, session: Optional[requests.Session] = None):
        self.origin = origin
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()
        logger.info(f"HTTP fetcher initialized for origin: {self.origin}")

    def fetch(self, request: Request) -> Response:
        logger.debug(f"Fetching {request.method} {request.url}")
        try:
            http_response = self.session.request(
                request.method,
                request.url,
                headers=dict(request.headers),
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.warning(f"Network request failed for {request.url}: {e}")
            raise AssetFetchError(f"Network request failed: {e}", url=request.url) from e

        return Response(
            url=http_response.url or request.url,
            status=http_response.status_code,
            headers=dict(http_response.headers),
            body=http_response.content,
            type="basic" if same_origin(request.url, self.origin) else "cors",
        )

#
# End of Offline_Cache/fetchers.py
#######################################################################################################################
