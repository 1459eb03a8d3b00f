"""
Sans-I/O WebDAV protocol implementation.

This module provides protocol-level operations without any I/O.
It builds requests and parses responses as pure data transformations.

The protocol layer is organized into:
- types: Core data structures (DAVRequest, DAVResponse, ListEntry)
- xml_builders: Pure functions to build XML request bodies
- xml_parsers: Pure functions to parse XML response bodies
- operations: High-level WebDAVProtocol class combining builders and parsers

Example usage:

    from asyncdav.protocol import WebDAVProtocol, Depth

    protocol = WebDAVProtocol(base_url="https://dav.example.com/files/")

    # Build a request (no I/O)
    request = protocol.propfind_request("docs/", depth=Depth.ONE)

    # Execute via your preferred I/O (async or mock)
    response = await your_http_client.execute(request)

    # Parse response (no I/O)
    entries = protocol.parse_list(response)
"""

from .types import (
    # Enums
    DAVMethod,
    Depth,
    Operation,
    # Request/Response
    DAVRequest,
    DAVResponse,
    # Result types
    ListEntry,
)
from .xml_builders import build_propfind_body
from .xml_parsers import parse_error_body, parse_http_date, parse_multistatus
from .operations import WebDAVProtocol

__all__ = [
    # Enums
    "DAVMethod",
    "Depth",
    "Operation",
    # Request/Response
    "DAVRequest",
    "DAVResponse",
    # Result types
    "ListEntry",
    # XML Builders
    "build_propfind_body",
    # XML Parsers
    "parse_error_body",
    "parse_http_date",
    "parse_multistatus",
    # Protocol
    "WebDAVProtocol",
]
