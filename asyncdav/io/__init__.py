"""
I/O layer for the WebDAV protocol.

This module provides the async implementation for executing
DAVRequest objects and returning DAVResponse objects.

The I/O layer is intentionally thin - it only handles HTTP transport.
All protocol logic (XML building/parsing, authentication) lives
elsewhere.

Example:
    from asyncdav.protocol import WebDAVProtocol
    from asyncdav.io import AsyncIO

    protocol = WebDAVProtocol(base_url="https://dav.example.com/files/")
    async with AsyncIO() as io:
        request = protocol.propfind_request("docs/")
        response = await io.execute(request)
        entries = protocol.parse_list(response)
"""

from .base import AsyncIOProtocol
from .async_ import AsyncIO

__all__ = [
    "AsyncIOProtocol",
    "AsyncIO",
]
