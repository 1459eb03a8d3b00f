#!/usr/bin/env python
from typing import ClassVar

from .base import BaseElement
from asyncdav.lib.namespace import ns


# Operations
class Propfind(BaseElement):
    tag: ClassVar[str] = ns("D", "propfind")


class Prop(BaseElement):
    tag: ClassVar[str] = ns("D", "prop")


# Properties
class DisplayName(BaseElement):
    tag: ClassVar[str] = ns("D", "displayname")


class GetLastModified(BaseElement):
    tag: ClassVar[str] = ns("D", "getlastmodified")


class GetContentLength(BaseElement):
    tag: ClassVar[str] = ns("D", "getcontentlength")


class ResourceType(BaseElement):
    tag: ClassVar[str] = ns("D", "resourcetype")


class GetEtag(BaseElement):
    tag: ClassVar[str] = ns("D", "getetag")


class GetContentType(BaseElement):
    tag: ClassVar[str] = ns("D", "getcontenttype")


## RFC 4331
class QuotaUsedBytes(BaseElement):
    tag: ClassVar[str] = ns("D", "quota-used-bytes")


class QuotaAvailableBytes(BaseElement):
    tag: ClassVar[str] = ns("D", "quota-available-bytes")
