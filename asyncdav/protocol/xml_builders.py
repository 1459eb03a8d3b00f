"""
Pure functions for building WebDAV XML request bodies.

All functions in this module are pure - they take data in and return XML out,
with no side effects or I/O.
"""
from lxml import etree

from asyncdav.elements import dav

## The properties needed to fill a ListEntry
LIST_PROPS = (
    dav.DisplayName,
    dav.GetLastModified,
    dav.GetContentLength,
    dav.ResourceType,
    dav.GetEtag,
    dav.GetContentType,
)

QUOTA_PROPS = (
    dav.QuotaUsedBytes,
    dav.QuotaAvailableBytes,
)


def build_propfind_body(include_quota: bool = False) -> bytes:
    """
    Build the PROPFIND request body used for listings.

    Args:
        include_quota: Also ask for the RFC 4331 quota properties.
            Servers not supporting them report them with a 404
            propstat, which is harmless.

    Returns:
        UTF-8 encoded XML bytes
    """
    props = [prop() for prop in LIST_PROPS]
    if include_quota:
        props.extend(prop() for prop in QUOTA_PROPS)
    propfind = dav.Propfind() + (dav.Prop() + props)
    return etree.tostring(propfind.xmlelement(), encoding="utf-8", xml_declaration=True)
