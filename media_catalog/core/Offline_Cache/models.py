# Offline_Cache/models.py
# Description: Request/response and lifecycle types for the offline cache shell.
#
# Imports
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional
from urllib.parse import urldefrag
#
# 3rd-party Libraries
from requests.structures import CaseInsensitiveDict
#
#######################################################################################################################
#
# Classes:


class ShellState(str, Enum):
    NEW = "new"
    INSTALLING = "installing"
    INSTALLED = "installed"
    ACTIVE = "active"
    TERMINATED = "terminated"


@dataclass
class Request:
    url: str
    method: str = "GET"
    headers: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        self.method = self.method.upper()
        self.headers = CaseInsensitiveDict(self.headers)

    @property
    def accepts_html(self) -> bool:
        return "text/html" in (self.headers.get("Accept") or "")

    @property
    def cache_key(self) -> str:
        """Cache lookup key: the URL without its fragment."""
        return urldefrag(self.url)[0]


@dataclass
class Response:
    url: str
    status: int = 200
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""
    type: str = "basic"  # basic | cors | opaque | error

    def __post_init__(self):
        self.headers = CaseInsensitiveDict(self.headers)

    @property
    def ok(self) -> bool:
        return 200 <= self.status <= 299

    def clone(self) -> "Response":
        return Response(
            url=self.url,
            status=self.status,
            headers=dict(self.headers),
            body=self.body,
            type=self.type,
        )


@dataclass
class InstallResult:
    success: bool
    cache_name: str
    cached: int = 0
    error: Optional[str] = None

#
# End of Offline_Cache/models.py
#######################################################################################################################
