"""
WebDAV protocol operations combining request building and response parsing.

This class provides a high-level interface to WebDAV operations while
remaining completely I/O-free.  Authentication is not handled here,
the client attaches the Authorization header to the requests built.
"""

from typing import Dict, List, Optional, Union
from urllib.parse import urlencode

from asyncdav.lib import error
from asyncdav.lib.url import join_path, split_base_url

from .types import DAVMethod, DAVRequest, DAVResponse, Depth, ListEntry, Operation
from .xml_builders import build_propfind_body
from .xml_parsers import parse_error_body, parse_multistatus


class WebDAVProtocol:
    """
    Sans-I/O WebDAV protocol handler.

    Builds requests and parses responses without doing any I/O.
    All HTTP communication is delegated to an external I/O implementation.

    Example:
        protocol = WebDAVProtocol(base_url="https://dav.example.com/files/")

        # Build request
        request = protocol.propfind_request("docs/", depth=Depth.ONE)

        # Execute with your I/O (not shown)
        response = await io.execute(request)

        # Parse response
        entries = protocol.parse_list(response)
    """

    def __init__(self, base_url: str, huge_tree: bool = False):
        """
        Args:
            base_url: URL of the root collection.  All paths are relative to it.
            huge_tree: Allow parsing very large XML documents
        """
        self.base_url = base_url
        self.origin, self.root = split_base_url(base_url)
        self.huge_tree = huge_tree

    def resolve_path(self, path: str) -> str:
        """
        Absolute, normalized path for a path relative to the root.

        Raises:
            InvalidPath: If the path contains dot segments
        """
        return join_path(self.root, path)

    def _resolve_url(self, path: str) -> str:
        return self.origin + self.resolve_path(path)

    # =========================================================================
    # Request builders
    # =========================================================================

    def build(
        self,
        operation: Operation,
        path: str,
        destination: Optional[str] = None,
        depth: Union[Depth, int, str] = Depth.ONE,
        overwrite: bool = False,
        body: Optional[bytes] = None,
        content_type: str = "application/octet-stream",
        include_quota: bool = False,
    ) -> DAVRequest:
        """
        Build the request for an operation.

        Args:
            operation: What to do
            path: Target path (the source for COPY and MOVE)
            destination: Target path for COPY and MOVE
            depth: Depth for LIST
            overwrite: Allow COPY and MOVE to replace an existing destination
            body: Content for PUT
            content_type: Content-Type for PUT
            include_quota: Ask for quota properties in LIST

        Returns:
            DAVRequest ready for execution
        """
        if operation is Operation.GET:
            return self.get_request(path)
        if operation is Operation.PUT:
            return self.put_request(path, body or b"", content_type)
        if operation is Operation.DELETE:
            return self.delete_request(path)
        if operation is Operation.MKCOL:
            return self.mkcol_request(path)
        if operation in (Operation.COPY, Operation.MOVE):
            if destination is None:
                raise ValueError(f"{operation.name} needs a destination")
            return self._transfer_request(
                operation.method, path, destination, overwrite
            )
        if operation is Operation.LIST:
            return self.propfind_request(path, depth, include_quota)
        if operation is Operation.UNZIP:
            return self.unzip_request(path)
        raise ValueError(f"unsupported operation {operation!r}")

    def get_request(self, path: str) -> DAVRequest:
        return DAVRequest(method=DAVMethod.GET, url=self._resolve_url(path))

    def put_request(
        self,
        path: str,
        data: bytes,
        content_type: str = "application/octet-stream",
    ) -> DAVRequest:
        return DAVRequest(
            method=DAVMethod.PUT,
            url=self._resolve_url(path),
            headers={"Content-Type": content_type},
            body=data,
        )

    def delete_request(self, path: str) -> DAVRequest:
        return DAVRequest(method=DAVMethod.DELETE, url=self._resolve_url(path))

    def mkcol_request(self, path: str) -> DAVRequest:
        return DAVRequest(method=DAVMethod.MKCOL, url=self._resolve_url(path))

    def _transfer_request(
        self,
        method: DAVMethod,
        path: str,
        destination: str,
        overwrite: bool,
    ) -> DAVRequest:
        ## resolve both before building anything, an invalid destination
        ## must not produce a request for the source
        url = self._resolve_url(path)
        headers = {
            "Destination": self.resolve_path(destination),
            "Overwrite": "T" if overwrite else "F",
        }
        return DAVRequest(method=method, url=url, headers=headers)

    def copy_request(
        self, path: str, destination: str, overwrite: bool = False
    ) -> DAVRequest:
        """
        Build a COPY request.  Unless overwrite is given, the server is
        told to fail (412 Precondition Failed) if the destination exists.
        """
        return self._transfer_request(DAVMethod.COPY, path, destination, overwrite)

    def move_request(
        self, path: str, destination: str, overwrite: bool = False
    ) -> DAVRequest:
        """Build a MOVE request, see copy_request"""
        return self._transfer_request(DAVMethod.MOVE, path, destination, overwrite)

    def propfind_request(
        self,
        path: str,
        depth: Union[Depth, int, str] = Depth.ONE,
        include_quota: bool = False,
    ) -> DAVRequest:
        """
        Build the PROPFIND request of a listing.

        Args:
            path: Collection (or resource) path
            depth: Depth header value (0, 1, or "infinity")
            include_quota: Also request the quota properties

        Returns:
            DAVRequest ready for execution
        """
        headers = {
            "Depth": Depth.coerce(depth).value,
            "Content-Type": "application/xml",
        }
        return DAVRequest(
            method=DAVMethod.PROPFIND,
            url=self._resolve_url(path),
            headers=headers,
            body=build_propfind_body(include_quota),
        )

    def unzip_request(self, path: str) -> DAVRequest:
        """
        Build the request asking the server to extract a zip archive in
        place.  This is not WebDAV but an extension offered by some
        hosting servers.
        """
        return DAVRequest(
            method=DAVMethod.POST,
            url=self._resolve_url(path),
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            body=urlencode({"method": "UNZIP"}).encode("ascii"),
        )

    # =========================================================================
    # Response parsers
    # =========================================================================

    def check_response(
        self,
        request: DAVRequest,
        response: DAVResponse,
    ) -> DAVResponse:
        """
        Check if a response indicates success (2xx).

        Args:
            request: The request the response belongs to
            response: The DAVResponse to check

        Raises:
            UnexpectedStatus: If the status is not 2xx

        Returns:
            The response
        """
        if not response.ok:
            exception, message = parse_error_body(response.body)
            raise error.UnexpectedStatus(
                response.status,
                response.body,
                url=request.url,
                exception=exception,
                message=message,
            )
        return response

    def parse_list(self, response: DAVResponse) -> List[ListEntry]:
        """
        Parse a PROPFIND response into listing entries.

        Args:
            response: The (successful) DAVResponse from the server

        Returns:
            List of ListEntry, in the order the server reported them
        """
        return parse_multistatus(response.body, huge_tree=self.huge_tree)

    def headers_for_logging(self, request: DAVRequest) -> Dict[str, str]:
        """The request headers with credentials masked"""
        return {
            name: ("***" if name.lower() == "authorization" else value)
            for name, value in request.headers.items()
        }
