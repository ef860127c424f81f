"""Decode one exiftool <tag> record.

The record is decoded field by field instead of by reflection:

    name="..."      -> RawTag.name      (absent: "")
    writable="..."  -> RawTag.writable  (absent or empty: False)
    type="..."      -> RawTag.type      (absent: "")
    <desc lang="...">text</desc>        -> RawTag.descriptions, in document order
"""
from __future__ import annotations

from lxml import etree

from exifserve.app.constants import XmlName
from exifserve.app.domain.errors import EndOfInput, TagDecodeError
from exifserve.app.domain.models import RawTag, TagDescription
from exifserve.app.domain.xml_scanner import (
    TokenKind,
    XmlTokenScanner,
    attribute_by_local_name,
    local_name,
)

_TRUE_VALUES = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE_VALUES = {"0", "f", "F", "FALSE", "false", "False"}


def parse_bool(raw: str) -> bool:
    value = raw.strip()
    if not value or value in _FALSE_VALUES:
        return False
    if value in _TRUE_VALUES:
        return True
    raise ValueError(f"invalid boolean {raw!r}")


def _chardata(element: etree._Element) -> str:
    parts = [element.text or ""]
    parts.extend(child.tail or "" for child in element)
    return "".join(parts)


async def extract_tag(scanner: XmlTokenScanner, start: etree._Element) -> RawTag:
    """Consume the subtree opened by `start` and decode it into a RawTag.

    Leaves the scanner positioned right after the record's end token.
    """
    while True:
        try:
            token = await scanner.next_token()
        except EndOfInput as exc:
            raise TagDecodeError("unexpected end of input inside <tag>") from exc
        if token.kind is TokenKind.END and token.element is start:
            break

    name = attribute_by_local_name(XmlName.NAME, start) or ""
    try:
        writable = parse_bool(attribute_by_local_name(XmlName.WRITABLE, start) or "")
    except ValueError as exc:
        raise TagDecodeError(f"tag {name!r}: writable: {exc}") from exc

    descriptions = tuple(
        TagDescription(
            lang=attribute_by_local_name(XmlName.LANG, child) or "",
            value=_chardata(child),
        )
        for child in start.iterchildren(tag=etree.Element)
        if local_name(child.tag) == XmlName.DESC
    )
    tag = RawTag(
        name=name,
        writable=writable,
        type=attribute_by_local_name(XmlName.TYPE, start) or "",
        descriptions=descriptions,
    )
    scanner.release(start)
    return tag
