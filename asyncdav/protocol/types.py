"""
Core protocol types for the Sans-I/O WebDAV implementation.

These dataclasses represent HTTP requests and responses at the protocol level,
independent of any I/O implementation, plus the typed results of a listing.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Union
from urllib.parse import urlparse


class DAVMethod(Enum):
    """WebDAV HTTP methods."""

    GET = "GET"
    PUT = "PUT"
    DELETE = "DELETE"
    MKCOL = "MKCOL"
    COPY = "COPY"
    MOVE = "MOVE"
    PROPFIND = "PROPFIND"
    POST = "POST"


class Operation(Enum):
    """Client level operations and the HTTP method each of them uses."""

    GET = DAVMethod.GET
    PUT = DAVMethod.PUT
    DELETE = DAVMethod.DELETE
    MKCOL = DAVMethod.MKCOL
    COPY = DAVMethod.COPY
    MOVE = DAVMethod.MOVE
    LIST = DAVMethod.PROPFIND
    UNZIP = DAVMethod.POST

    @property
    def method(self) -> DAVMethod:
        return self.value


class Depth(Enum):
    """
    Scope of a PROPFIND.  Support for INFINITY depends on the server,
    many refuse it.
    """

    ZERO = "0"
    ONE = "1"
    INFINITY = "infinity"

    @classmethod
    def coerce(cls, depth: Union["Depth", int, str]) -> "Depth":
        """Accepts 0, 1, "0", "1", "infinity" or a Depth"""
        if isinstance(depth, Depth):
            return depth
        try:
            return cls(str(depth).lower())
        except ValueError:
            raise ValueError(
                f"invalid depth {depth!r}, expected 0, 1 or 'infinity'"
            ) from None


@dataclass(frozen=True)
class DAVRequest:
    """
    Represents an HTTP request to be made.

    This is a pure data structure with no I/O. It describes what request
    should be made, but does not make it.

    Attributes:
        method: HTTP method (GET, PUT, PROPFIND, etc.)
        url: Full URL for the request
        headers: HTTP headers as dict
        body: Request body as bytes (optional)
    """

    method: DAVMethod
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None

    @property
    def path(self) -> str:
        """The request-target (path and query), as used in the Digest uri field."""
        parsed = urlparse(self.url)
        path = parsed.path or "/"
        if parsed.query:
            path += "?" + parsed.query
        return path

    def with_header(self, name: str, value: str) -> "DAVRequest":
        """Return new request with additional header."""
        new_headers = {**self.headers, name: value}
        return DAVRequest(
            method=self.method,
            url=self.url,
            headers=new_headers,
            body=self.body,
        )


@dataclass(frozen=True)
class DAVResponse:
    """
    Represents an HTTP response received.

    Attributes:
        status: HTTP status code
        headers: HTTP headers as dict
        body: Response body as bytes
    """

    status: int
    headers: dict[str, str]
    body: bytes

    @property
    def ok(self) -> bool:
        """True if status indicates success (2xx)."""
        return 200 <= self.status < 300

    @property
    def is_multistatus(self) -> bool:
        """True if this is a 207 Multi-Status response."""
        return self.status == 207

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup"""
        name = name.lower()
        for key, value in self.headers.items():
            if key.lower() == name:
                return value
        return None


@dataclass(frozen=True)
class ListEntry:
    """
    One resource from a PROPFIND listing.

    Attributes:
        href: Absolute, percent-decoded path of the resource
        is_collection: True for collections (directories)
        last_modified: getlastmodified as timezone aware datetime
        content_length: getcontentlength, None for most collections
        etag: getetag, opaque string including the quotes
        content_type: getcontenttype
        display_name: displayname
        quota_used_bytes: quota-used-bytes (RFC 4331)
        quota_available_bytes: quota-available-bytes (RFC 4331)
    """

    href: str
    is_collection: bool = False
    last_modified: Optional[datetime] = None
    content_length: Optional[int] = None
    etag: Optional[str] = None
    content_type: Optional[str] = None
    display_name: Optional[str] = None
    quota_used_bytes: Optional[int] = None
    quota_available_bytes: Optional[int] = None

    @property
    def name(self) -> str:
        """Last path segment"""
        return self.href.rstrip("/").rsplit("/", 1)[-1]
