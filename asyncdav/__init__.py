#!/usr/bin/env python
import logging

__version__ = "0.3.0"

from .async_davclient import AsyncDAVClient
from .async_davclient import get_davclient
from .lib.auth import AuthMode
from .protocol.types import Depth
from .protocol.types import ListEntry

# Silence notification of no default logging handler
log = logging.getLogger("asyncdav")


class NullHandler(logging.Handler):
    def emit(self, record) -> None:
        pass


log.addHandler(NullHandler())

__all__ = [
    "__version__",
    "AsyncDAVClient",
    "AuthMode",
    "Depth",
    "ListEntry",
    "get_davclient",
]
