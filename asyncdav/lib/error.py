#!/usr/bin/env python
import logging
import os
from typing import Optional
from typing import Union

from asyncdav import __version__

## Environmental variables prepended with "PYTHON_ASYNCDAV" are used for debug purposes,
## environmental variables prepended with "WEBDAV_" are for connection parameters
## one of DEBUG_PDB, DEBUG, DEVELOPMENT, PRODUCTION
debugmode = os.environ.get("PYTHON_ASYNCDAV_DEBUGMODE")
if not debugmode:
    if "dev" in __version__:
        debugmode = "DEVELOPMENT"
    else:
        debugmode = "PRODUCTION"

log = logging.getLogger("asyncdav")
if debugmode.startswith("DEBUG"):
    log.setLevel(logging.DEBUG)
else:
    log.setLevel(logging.WARNING)


def weirdness(*reasons) -> None:
    """Report server output that deviates from expectations but can be tolerated"""
    from asyncdav.lib.debug import xmlstring

    reason = " : ".join([xmlstring(x) for x in reasons])
    log.warning(f"Deviation from expectations found: {reason}")
    if debugmode == "DEBUG_PDB":
        log.error(f"Dropping into debugger due to {reason}")
        import pdb

        pdb.set_trace()


class DAVError(Exception):
    url: Optional[str] = None
    reason: str = "no reason"

    def __init__(self, url: Optional[str] = None, reason: Optional[str] = None) -> None:
        if url:
            self.url = url
        if reason:
            self.reason = reason
        super().__init__(self.reason)

    def __str__(self) -> str:
        return "%s at '%s', reason %s" % (
            self.__class__.__name__,
            self.url,
            self.reason,
        )


class TransportError(DAVError):
    """
    The HTTP exchange itself failed (connection refused, TLS failure,
    timeout ...).  The underlying exception is available as __cause__.
    It is never retried by this library.
    """

    pass


class UnexpectedStatus(DAVError):
    """
    The server answered with a status code that does not mean success
    for the operation.  ``code`` is the numeric HTTP status, ``body``
    the (decoded) response body if any.  If the body was a SabreDAV
    style error document, ``exception`` and ``message`` hold its content.
    """

    code: int = 0
    body: Optional[str] = None
    exception: Optional[str] = None
    message: Optional[str] = None

    def __init__(
        self,
        code: int,
        body: Union[str, bytes, None] = None,
        url: Optional[str] = None,
        exception: Optional[str] = None,
        message: Optional[str] = None,
    ) -> None:
        self.code = code
        if isinstance(body, bytes):
            body = body.decode("utf-8", errors="replace")
        self.body = body or None
        self.exception = exception
        self.message = message
        reason = f"unexpected status {code}"
        if message:
            reason += f": {message}"
        super().__init__(url=url, reason=reason)


class AuthenticationFailed(UnexpectedStatus):
    """
    The server still answered 401 after the credentials were supplied
    (after one challenge/retry cycle for Digest).
    """

    def __init__(
        self,
        body: Union[str, bytes, None] = None,
        url: Optional[str] = None,
        exception: Optional[str] = None,
        message: Optional[str] = None,
    ) -> None:
        super().__init__(401, body, url=url, exception=exception, message=message)
        self.reason = "authentication failed"


class MalformedChallenge(DAVError):
    """The WWW-Authenticate header could not be used"""

    pass


class MalformedXml(DAVError):
    """The multistatus body is not well-formed XML"""

    pass


class MissingProperty(DAVError):
    name: str = ""

    def __init__(self, name: str, url: Optional[str] = None) -> None:
        self.name = name
        super().__init__(url=url, reason=f"missing required property {name}")


class InvalidTimestamp(DAVError):
    value: Optional[str] = None

    def __init__(self, value: Optional[str], url: Optional[str] = None) -> None:
        self.value = value
        super().__init__(url=url, reason=f"invalid timestamp {value!r}")


class InvalidPath(DAVError):
    """
    The path given would escape the configured root (it contains
    ``.`` or ``..`` segments).  Such a path is never sent to the server.
    """

    path: Optional[str] = None

    def __init__(self, path: Optional[str], reason: Optional[str] = None) -> None:
        self.path = path
        super().__init__(url=path, reason=reason or f"invalid path {path!r}")
