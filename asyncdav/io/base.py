"""
Abstract I/O protocol definition.

This module defines the interface that all I/O implementations must follow.
"""

from typing import Protocol, runtime_checkable

from asyncdav.protocol.types import DAVRequest, DAVResponse


@runtime_checkable
class AsyncIOProtocol(Protocol):
    """
    Protocol defining the asynchronous I/O interface.

    Implementations must send exactly one HTTP request per execute()
    call, with no retries, and return only after the complete
    response body has been received.  Transport failures are raised
    as asyncdav.lib.error.TransportError.
    """

    async def execute(self, request: DAVRequest) -> DAVResponse:
        """
        Execute a request and return the response.

        Args:
            request: The DAVRequest to execute

        Returns:
            DAVResponse with status, headers, and body
        """
        ...

    async def close(self) -> None:
        """Close any resources (e.g., HTTP session)."""
        ...
