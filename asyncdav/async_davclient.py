#!/usr/bin/env python
"""
Async DAVClient implementation for the asyncdav library.

The client glues the pieces together: the sans-I/O WebDAVProtocol
builds the requests, the AuthNegotiator signs them, the I/O layer
sends them, and the responses are checked and parsed into typed
results.
"""

import sys
from types import TracebackType
from typing import Any, List, Optional, Type, Union

from asyncdav.io import AsyncIO, AsyncIOProtocol
from asyncdav.lib import error
from asyncdav.lib.auth import AuthMode, AuthNegotiator, extract_auth_types
from asyncdav.lib.error import log
from asyncdav.lib.python_utilities import to_normal_str
from asyncdav.protocol import (
    DAVRequest,
    DAVResponse,
    Depth,
    ListEntry,
    WebDAVProtocol,
)
from asyncdav.protocol.xml_parsers import parse_error_body

if sys.version_info < (3, 11):
    from typing_extensions import Self
else:
    from typing import Self


class AsyncDAVClient:
    """
    Basic client for WebDAV servers.

    All paths given to the methods are relative to the URL the client
    was created with.  Every operation is a coroutine; operations may
    be run concurrently on the same client.

    Example:
        async with AsyncDAVClient(
            "https://dav.example.com/remote.php/dav/files/someuser/",
            username="someuser",
            password="secret",
            auth_type="digest",
        ) as client:
            for entry in await client.list("photos/"):
                print(entry.href, entry.content_length)
    """

    def __init__(
        self,
        url: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        auth_type: Optional[str] = None,
        auth: Optional[AuthMode] = None,
        timeout: float = 30.0,
        ssl_verify_cert: bool = True,
        huge_tree: bool = False,
        io: Optional[AsyncIOProtocol] = None,
    ) -> None:
        """
        Sets up a client.  No connection is made before the first operation.

        Args:
            url: URL of the root collection.
            username: Username for authentication.
            password: Password for authentication.
            auth_type: 'basic' or 'digest'.  Defaults to 'basic' when
                username and password are given.
            auth: An AuthMode, instead of username/password/auth_type.
            timeout: Request timeout in seconds, passed to the I/O layer.
            ssl_verify_cert: Verify TLS certificates.
            huge_tree: Allow parsing very large PROPFIND responses.
            io: The I/O implementation, defaults to the aiohttp based AsyncIO.
        """
        if auth is None:
            if username is not None and password is not None:
                auth = AuthMode((auth_type or "basic").lower(), username, password)
            elif auth_type and auth_type.lower() != "none":
                raise ValueError(f"auth_type {auth_type} needs username and password")
            else:
                auth = AuthMode.none()
        self.url = url
        self.protocol = WebDAVProtocol(base_url=url, huge_tree=huge_tree)
        self.auth = AuthNegotiator(auth)
        self.io = io or AsyncIO(timeout=timeout, verify_ssl=ssl_verify_cert)

    async def close(self) -> None:
        """Close the HTTP session."""
        await self.io.close()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]] = None,
        exc_value: Optional[BaseException] = None,
        traceback: Optional[TracebackType] = None,
    ) -> None:
        await self.close()

    # ==================== Request Execution ====================

    async def _send(self, request: DAVRequest) -> DAVResponse:
        """Signs and sends a request once."""
        authorization = await self.auth.authorize(request)
        if authorization:
            request = request.with_header("Authorization", authorization)

        log.debug(
            f"sending request - method={request.method.value}, url={request.url}, "
            f"headers={self.protocol.headers_for_logging(request)}"
        )
        response = await self.io.execute(request)
        log.debug(f"server responded with {response.status}")
        return response

    async def request(self, request: DAVRequest) -> DAVResponse:
        """
        Sends a request, answering a Digest challenge once.

        A 401 with a Digest challenge (when Digest is configured) leads
        to exactly one retry of the same request with fresh
        credentials.  The retry is only sent after the complete first
        response is in.

        Returns:
            The final DAVResponse, whatever its status

        Raises:
            AuthenticationFailed: The credentials were rejected
            MalformedChallenge: The Digest challenge was unusable
            TransportError: The HTTP exchange failed
        """
        response = await self._send(request)
        if response.status != 401:
            return response

        challenge = response.header("WWW-Authenticate")
        if self.auth.mode.kind == "none":
            if challenge:
                log.warning(
                    "No credentials configured, the server asks for one of: "
                    + ", ".join(sorted(extract_auth_types(challenge)))
                )
            return response

        if self.auth.mode.kind == "digest" and await self.auth.on_challenge(challenge):
            log.debug("got a digest challenge, retrying with credentials")
            response = await self._send(request)
            if response.status != 401:
                return response

        exception, message = parse_error_body(response.body)
        raise error.AuthenticationFailed(
            response.body, url=request.url, exception=exception, message=message
        )

    async def _request_ok(self, request: DAVRequest) -> DAVResponse:
        response = await self.request(request)
        return self.protocol.check_response(request, response)

    # ==================== HTTP Method Wrappers ====================

    async def get_raw(self, path: str) -> DAVResponse:
        return await self.request(self.protocol.get_request(path))

    async def get(self, path: str) -> bytes:
        """
        Downloads a file.

        Returns:
            The content of the file
        """
        response = await self._request_ok(self.protocol.get_request(path))
        return response.body

    async def put_raw(
        self,
        path: str,
        data: Union[bytes, str],
        content_type: str = "application/octet-stream",
    ) -> DAVResponse:
        if isinstance(data, str):
            data = data.encode("utf-8")
        return await self.request(self.protocol.put_request(path, data, content_type))

    async def put(
        self,
        path: str,
        data: Union[bytes, str],
        content_type: str = "application/octet-stream",
    ) -> None:
        """
        Uploads a file, replacing it if it exists.  The parent
        collection must exist.
        """
        if isinstance(data, str):
            data = data.encode("utf-8")
        await self._request_ok(self.protocol.put_request(path, data, content_type))

    async def delete_raw(self, path: str) -> DAVResponse:
        return await self.request(self.protocol.delete_request(path))

    async def delete(self, path: str) -> None:
        """Deletes a file or a collection with all its content."""
        await self._request_ok(self.protocol.delete_request(path))

    async def mkcol_raw(self, path: str) -> DAVResponse:
        return await self.request(self.protocol.mkcol_request(path))

    async def mkcol(self, path: str) -> None:
        """Creates a collection.  The parent collection must exist."""
        await self._request_ok(self.protocol.mkcol_request(path))

    async def copy_raw(
        self, path: str, destination: str, overwrite: bool = False
    ) -> DAVResponse:
        return await self.request(
            self.protocol.copy_request(path, destination, overwrite)
        )

    async def copy(self, path: str, destination: str, overwrite: bool = False) -> None:
        """
        Copies a file or collection.  Unless overwrite is set, an
        existing destination makes the server fail with 412, which is
        raised as UnexpectedStatus.
        """
        await self._request_ok(self.protocol.copy_request(path, destination, overwrite))

    async def move_raw(
        self, path: str, destination: str, overwrite: bool = False
    ) -> DAVResponse:
        return await self.request(
            self.protocol.move_request(path, destination, overwrite)
        )

    async def move(self, path: str, destination: str, overwrite: bool = False) -> None:
        """Moves or renames a file or collection, see copy()."""
        await self._request_ok(self.protocol.move_request(path, destination, overwrite))

    async def list_raw(
        self,
        path: str = "",
        depth: Union[Depth, int, str] = Depth.ONE,
        include_quota: bool = False,
    ) -> DAVResponse:
        return await self.request(
            self.protocol.propfind_request(path, depth, include_quota)
        )

    async def list(
        self,
        path: str = "",
        depth: Union[Depth, int, str] = Depth.ONE,
        include_quota: bool = False,
    ) -> List[ListEntry]:
        """
        Lists a collection.

        Args:
            path: The collection to list
            depth: 0 for the collection itself only, 1 to include its
                members, "infinity" for the complete tree (often refused
                by servers)
            include_quota: Also ask for quota-used-bytes and
                quota-available-bytes

        Returns:
            One ListEntry per resource, in the order the server reported
            them.  With depth 1 or more, the collection itself is
            usually the first entry.
        """
        request = self.protocol.propfind_request(path, depth, include_quota)
        response = await self._request_ok(request)
        if not response.is_multistatus:
            error.weirdness(
                f"PROPFIND on {request.url} answered with {response.status} instead of 207"
            )
        try:
            return self.protocol.parse_list(response)
        except error.DAVError as e:
            if not e.url:
                e.url = request.url
            log.debug(
                "could not parse PROPFIND response:\n" + to_normal_str(response.body)
            )
            raise

    async def unzip_raw(self, path: str) -> DAVResponse:
        return await self.request(self.protocol.unzip_request(path))

    async def unzip(self, path: str) -> None:
        """
        Asks the server to extract a zip archive in place.  Only some
        servers support this.
        """
        await self._request_ok(self.protocol.unzip_request(path))


def get_davclient(
    check_config_file: bool = True,
    config_file: Optional[str] = None,
    config_section: str = "default",
    environment: bool = True,
    **config_data: Any,
) -> Optional[AsyncDAVClient]:
    """
    This function will yield an AsyncDAVClient object.  It will not
    try to connect.  It will read configuration from various sources,
    dependent on the parameters given, in this order:

    * Data from the parameters given
    * Environment variables prepended with `WEBDAV_`, like `WEBDAV_URL`,
      `WEBDAV_USERNAME`, `WEBDAV_PASSWORD`, `WEBDAV_AUTH_TYPE`.
    * Configuration file, `WEBDAV_CONFIG_FILE` or one of the default
      locations (see asyncdav.config.read_config)

    Returns None if no configuration was found.
    """
    from asyncdav import config

    conf = config.get_connection_params(
        check_config_file=check_config_file,
        config_file=config_file,
        section=config_section,
        environment=environment,
        **config_data,
    )
    if not conf:
        return None
    return AsyncDAVClient(**conf)
