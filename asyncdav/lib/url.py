#!/usr/bin/env python
"""
Path handling for the WebDAV client.

All addresses handed to the client are paths relative to the
configured root collection, i.e. with the root
"https://dav.example.com/remote.php/dav/files/someuser/", the path
"photos/2024" refers to
"https://dav.example.com/remote.php/dav/files/someuser/photos/2024".
A leading slash does not change that: "/photos/2024" is the same
resource.  Dot segments are refused rather than resolved, so a path
can never point outside of the root.
"""
from typing import List
from typing import Tuple
from urllib.parse import quote
from urllib.parse import unquote
from urllib.parse import urlparse
from urllib.parse import urlunparse

from asyncdav.lib.error import InvalidPath

## characters allowed unescaped in a path segment, RFC 3986 "pchar"
_SEGMENT_SAFE = "!$&'()*+,;=:@~"


def _segments(path: str) -> List[str]:
    """
    Splits a path into its non-empty segments.  Redundant slashes
    are collapsed, dot segments raise InvalidPath.
    """
    segments = []
    for segment in path.split("/"):
        if not segment:
            continue
        if unquote(segment) in (".", ".."):
            raise InvalidPath(path, "dot segments are not allowed: %r" % path)
        segments.append(segment)
    return segments


def quote_segment(segment: str) -> str:
    ## unquote first so that already encoded input is not double encoded
    return quote(unquote(segment), safe=_SEGMENT_SAFE)


def join_path(root: str, path: str = "") -> str:
    """
    Joins the root collection path with a relative path and returns
    the canonical absolute, percent-encoded path.

    >>> join_path("/dav/", "//a//b.txt")
    '/dav/a/b.txt'
    >>> join_path("/dav", "docs/")
    '/dav/docs/'
    """
    path = path or ""
    segments = _segments(root or "") + _segments(path)
    ret = "/" + "/".join(quote_segment(s) for s in segments)
    ## a trailing slash is significant to many servers (collections)
    trailing = path.endswith("/") if path else (root or "").endswith("/")
    if trailing and segments:
        ret += "/"
    return ret


def split_base_url(base_url: str) -> Tuple[str, str]:
    """
    Splits the configured root URL into the origin
    ("https://host:port") and the root path.
    """
    parsed = urlparse(base_url)
    if not parsed.scheme or not parsed.netloc:
        raise ValueError("%s is not an absolute http(s) URL" % base_url)
    origin = urlunparse((parsed.scheme, parsed.netloc, "", "", "", ""))
    return origin, parsed.path or "/"


def href_to_path(href: str) -> str:
    """
    Converts an href from a multistatus response to a plain,
    percent-decoded absolute path.  Some servers return full URLs,
    most return absolute paths.
    """
    text = href.strip()
    ## Fix for double-encoded at-signs (seen with Confluence)
    if "%2540" in text:
        text = text.replace("%2540", "%40")
    parsed = urlparse(text)
    if parsed.scheme and parsed.netloc:
        text = parsed.path or "/"
    return unquote(text)
