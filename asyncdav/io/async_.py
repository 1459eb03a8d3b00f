"""
Asynchronous I/O implementation using aiohttp library.
"""

import asyncio
from typing import Optional

import aiohttp

from asyncdav.lib.error import TransportError
from asyncdav.protocol.types import DAVRequest, DAVResponse


class AsyncIO:
    """
    Asynchronous I/O shell using aiohttp library.

    This is a thin wrapper that executes DAVRequest objects via HTTP
    and returns DAVResponse objects.

    Example:
        async with AsyncIO() as io:
            request = protocol.propfind_request("docs/")
            response = await io.execute(request)
            entries = protocol.parse_list(response)
    """

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 30.0,
        verify_ssl: bool = True,
    ):
        """
        Initialize the async I/O handler.

        Args:
            session: Existing aiohttp ClientSession to use (creates new if None)
            timeout: Request timeout in seconds
            verify_ssl: Verify SSL certificates
        """
        self._session = session
        self._owns_session = session is None
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.verify_ssl = verify_ssl

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the aiohttp session."""
        if self._session is None:
            connector = aiohttp.TCPConnector(ssl=self.verify_ssl)
            self._session = aiohttp.ClientSession(
                timeout=self.timeout,
                connector=connector,
            )
        return self._session

    async def execute(self, request: DAVRequest) -> DAVResponse:
        """
        Execute a DAVRequest and return DAVResponse.

        Args:
            request: The request to execute

        Returns:
            DAVResponse with status, headers, and body

        Raises:
            TransportError: If the HTTP exchange failed
        """
        session = await self._get_session()

        try:
            async with session.request(
                method=request.method.value,
                url=request.url,
                headers=request.headers,
                data=request.body,
            ) as response:
                body = await response.read()
                ## repeated headers (WWW-Authenticate!) are folded into one
                headers: dict[str, str] = {}
                for name, value in response.headers.items():
                    if name in headers:
                        headers[name] = f"{headers[name]}, {value}"
                    else:
                        headers[name] = value
                return DAVResponse(
                    status=response.status,
                    headers=headers,
                    body=body,
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(url=request.url, reason=str(e) or e.__class__.__name__) from e

    async def close(self) -> None:
        """Close the session if we created it."""
        if self._session and self._owns_session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "AsyncIO":
        """Async context manager entry."""
        return self

    async def __aexit__(self, *args) -> None:
        """Async context manager exit."""
        await self.close()
