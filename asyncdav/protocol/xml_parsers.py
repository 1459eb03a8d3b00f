"""
Pure functions for parsing WebDAV XML responses.

All functions in this module are pure - they take XML bytes in and return
structured data out, with no side effects or I/O.

Elements are matched by their local name.  Servers disagree on
prefixes (d:, D:, none at all) and some even get the namespace wrong,
so neither the prefix nor the namespace URI is relied upon.
"""

import logging
import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional, Union

from lxml import etree
from lxml.etree import _Element

from asyncdav.lib import error
from asyncdav.lib.url import href_to_path

from .types import ListEntry

log = logging.getLogger(__name__)

_RFC1123_RE = re.compile(
    r"^[A-Z][a-z]{2}, \d{2} [A-Z][a-z]{2} \d{4} \d{2}:\d{2}:\d{2} (GMT|UTC)$"
)


def _parse_xml(body: Union[bytes, str], huge_tree: bool = False) -> _Element:
    """
    Raises:
        MalformedXml: If body is not well-formed XML
    """
    if isinstance(body, str):
        body = body.encode("utf-8")
    parser = etree.XMLParser(
        huge_tree=huge_tree, resolve_entities=False, no_network=True
    )
    try:
        tree = etree.fromstring(body, parser)
    except etree.XMLSyntaxError as e:
        raise error.MalformedXml(reason=str(e)) from e
    if tree is None:
        raise error.MalformedXml(reason="empty document")
    return tree


def _localname(elem: _Element) -> Optional[str]:
    # comments and processing instructions have no string tag
    if not isinstance(elem.tag, str):
        return None
    return etree.QName(elem).localname


def _children(elem: _Element, name: str) -> list[_Element]:
    return [child for child in elem if _localname(child) == name]


def _child(elem: _Element, name: str) -> Optional[_Element]:
    for child in elem:
        if _localname(child) == name:
            return child
    return None


def _text(elem: Optional[_Element]) -> Optional[str]:
    if elem is None or elem.text is None:
        return None
    text = elem.text.strip()
    return text or None


def _response_elements(tree: _Element) -> list[_Element]:
    """
    Strip outer elements to get to the response elements.

    The general format is:
        <multistatus>
            <response>...</response>
            <response>...</response>
        </multistatus>

    But some servers wrap it into an extra root element.
    """
    if _localname(tree) == "response":
        return [tree]
    multistatus = tree
    if _localname(tree) != "multistatus":
        multistatus = _child(tree, "multistatus")
        if multistatus is None:
            error.weirdness(f"expected a multistatus document, got <{_localname(tree)}>")
            multistatus = tree
    return _children(multistatus, "response")


def _status_to_code(status: Optional[str]) -> Optional[int]:
    """
    Extract status code from status string like "HTTP/1.1 200 OK".

    Returns:
        Integer status code, None if it can't be parsed
    """
    if not status:
        return None
    parts = status.split()
    if len(parts) >= 2:
        try:
            return int(parts[1])
        except ValueError:
            pass
    return None


def _extract_properties(response: _Element) -> dict[str, _Element]:
    """
    Collects the properties reported with a 200 status, keyed by local
    name.  If several propstat blocks report the same property, the
    last one wins.  Properties under any other status (404 for unknown
    properties, 403 ...) are ignored.
    """
    properties: dict[str, _Element] = {}
    for propstat in _children(response, "propstat"):
        status = _text(_child(propstat, "status"))
        if status is None:
            error.weirdness("propstat without status, assuming 200")
            code = 200
        else:
            code = _status_to_code(status)
        if code is None:
            error.weirdness(f"unparsable propstat status {status!r}")
            continue
        if code != 200:
            continue
        prop = _child(propstat, "prop")
        if prop is None:
            continue
        for child in prop:
            name = _localname(child)
            if name is not None:
                properties[name] = child
    return properties


def parse_http_date(value: str) -> datetime:
    """
    Parses an RFC 1123 date ("Mon, 01 Jan 2024 00:00:00 GMT") into a
    datetime in UTC.  Other RFC 2822 forms (two digit years, numeric
    offsets, missing zone) are refused.

    Raises:
        InvalidTimestamp: If the value is not a valid RFC 1123 date
    """
    if not _RFC1123_RE.match(value):
        raise error.InvalidTimestamp(value)
    try:
        ret = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError) as e:
        raise error.InvalidTimestamp(value) from e
    if ret is None or ret.tzinfo is None:
        raise error.InvalidTimestamp(value)
    return ret.astimezone(timezone.utc)


def _non_negative_int(elem: Optional[_Element]) -> Optional[int]:
    text = _text(elem)
    if text is None:
        return None
    try:
        ret = int(text)
    except ValueError:
        error.weirdness(f"expected an integer in <{_localname(elem)}>, got {text!r}")
        return None
    if ret < 0:
        return None
    return ret


def _parse_entry(response: _Element) -> ListEntry:
    href = _text(_child(response, "href"))
    if href is None:
        raise error.MissingProperty("href")
    path = href_to_path(href)

    props = _extract_properties(response)

    resourcetype = props.get("resourcetype")
    is_collection = resourcetype is not None and _child(resourcetype, "collection") is not None

    last_modified = None
    lastmodified_text = _text(props.get("getlastmodified"))
    if lastmodified_text is not None:
        try:
            last_modified = parse_http_date(lastmodified_text)
        except error.InvalidTimestamp as e:
            e.url = path
            raise

    return ListEntry(
        href=path,
        is_collection=is_collection,
        last_modified=last_modified,
        content_length=_non_negative_int(props.get("getcontentlength")),
        etag=_text(props.get("getetag")),
        content_type=_text(props.get("getcontenttype")),
        display_name=_text(props.get("displayname")),
        quota_used_bytes=_non_negative_int(props.get("quota-used-bytes")),
        quota_available_bytes=_non_negative_int(props.get("quota-available-bytes")),
    )


def parse_multistatus(
    body: Union[bytes, str],
    huge_tree: bool = False,
) -> list[ListEntry]:
    """
    Parse a 207 Multi-Status response body of a PROPFIND into listing
    entries, one per response element, in document order.

    Args:
        body: Raw XML response bytes
        huge_tree: Allow parsing very large XML documents

    Returns:
        List of ListEntry, empty if the document has no response elements

    Raises:
        MalformedXml: If body is not well-formed XML
        MissingProperty: If a response element has no href
        InvalidTimestamp: If a getlastmodified value can't be parsed
    """
    tree = _parse_xml(body, huge_tree=huge_tree)
    return [_parse_entry(response) for response in _response_elements(tree)]


def parse_error_body(body: Union[bytes, str, None]) -> tuple[Optional[str], Optional[str]]:
    """
    Extract exception and message from a SabreDAV style error body:

        <d:error xmlns:d="DAV:" xmlns:s="http://sabredav.org/ns">
          <s:exception>Sabre\\DAV\\Exception\\NotFound</s:exception>
          <s:message>File not found</s:message>
        </d:error>

    Returns:
        (exception, message), both None if the body is something else
    """
    if not body:
        return None, None
    try:
        tree = _parse_xml(body)
    except error.MalformedXml:
        log.debug("error body is not XML", exc_info=True)
        return None, None
    if _localname(tree) != "error":
        return None, None
    return _text(_child(tree, "exception")), _text(_child(tree, "message"))
