"""Incremental XML tokens over an async byte stream.

XmlTokenScanner feeds an lxml XMLPullParser chunk by chunk and hands out start
and end element tokens one at a time; `search` pulls tokens until one matches
an XmlQuery. Both raise EndOfInput when the input is exhausted at the top
level and XmlDecodeError when it is malformed or truncated.
"""
from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from enum import Enum

from lxml import etree

from exifserve.app.domain.errors import EndOfInput, XmlDecodeError
from exifserve.app.ports.byte_stream import ByteStream

DEFAULT_CHUNK_SIZE = 65536

_STREAM_ROOT = b"exifserve-stream"
_XML_DECLARATION = b"<?xml"
_UTF8_BOM = b"\xef\xbb\xbf"
_PROBE_SIZE = len(_UTF8_BOM) + len(_XML_DECLARATION) + 1


class TokenKind(Enum):
    START = "start"
    END = "end"


@dataclass(frozen=True)
class XmlToken:
    kind: TokenKind
    element: etree._Element

    @property
    def local_name(self) -> str:
        return local_name(self.element.tag)


@dataclass(frozen=True)
class XmlQuery:
    """Element names to stop at; an empty name disables that side of the match."""

    named_start: str = ""
    named_end: str = ""


@dataclass(frozen=True)
class XmlSearchResult:
    """Either the matched start element or the fact that a close matched, never both."""

    named_start: etree._Element | None = None
    named_end: bool = False


def local_name(name: str) -> str:
    return etree.QName(name).localname


def attribute_by_local_name(name: str, element: etree._Element) -> str | None:
    for key, value in element.attrib.items():
        if local_name(key) == name:
            return value
    return None


class XmlTokenScanner:
    """Pulls start/end element tokens from a byte stream.

    The input may hold several top-level elements, so it is wrapped in a
    synthetic root (placed after an optional XML declaration) whose own tokens
    are never reported. Not safe for concurrent use.
    """

    def __init__(self, stream: ByteStream, *, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self._stream = stream
        self._chunk_size = chunk_size
        self._parser = etree.XMLPullParser(
            events=("start", "end"),
            remove_comments=True,
            remove_pis=True,
            resolve_entities=False,
            no_network=True,
        )
        self._events: deque[tuple[str, etree._Element]] = deque()
        self._head = b""
        self._root_opened = False
        self._exhausted = False

    async def next_token(self) -> XmlToken:
        while True:
            while self._events:
                event, element = self._events.popleft()
                if element.getparent() is None:
                    continue
                return XmlToken(TokenKind(event), element)
            if self._exhausted:
                raise EndOfInput("end of input")
            await self._fill()

    def release(self, element: etree._Element) -> None:
        """Drop a fully consumed element's content, and the siblings before it, from the tree.

        Attributes stay: the element may still be held as a matched start token.
        """
        del element[:]
        element.text = None
        parent = element.getparent()
        if parent is None:
            return
        while element.getprevious() is not None:
            del parent[0]

    async def _fill(self) -> None:
        try:
            chunk = await self._stream.read(self._chunk_size)
        except OSError as exc:
            raise XmlDecodeError(f"stream.read: {exc}") from exc

        if chunk:
            if self._root_opened:
                self._feed(chunk)
            else:
                self._head += chunk
                self._open_root(final=False)
            return

        if not self._root_opened:
            self._open_root(final=True)
        self._feed(b"</" + _STREAM_ROOT + b">")
        try:
            self._parser.close()
        except etree.XMLSyntaxError as exc:
            raise XmlDecodeError(f"parser.close: {exc}") from exc
        self._events.extend(self._parser.read_events())
        self._exhausted = True

    def _open_root(self, *, final: bool) -> None:
        head = self._head
        if not final and len(head) < _PROBE_SIZE:
            return

        offset = len(_UTF8_BOM) if head.startswith(_UTF8_BOM) else 0
        body = head[offset:]
        split = offset
        if body.startswith(_XML_DECLARATION) and body[len(_XML_DECLARATION):len(_XML_DECLARATION) + 1].isspace():
            end = head.find(b"?>")
            if end < 0:
                if not final:
                    return
                split = len(head)
            else:
                split = end + 2

        self._root_opened = True
        self._head = b""
        self._feed(head[:split])
        self._feed(b"<" + _STREAM_ROOT + b">")
        self._feed(head[split:])

    def _feed(self, data: bytes) -> None:
        if not data:
            return
        try:
            self._parser.feed(data)
        except etree.XMLSyntaxError as exc:
            raise XmlDecodeError(f"parser.feed: {exc}") from exc
        self._events.extend(self._parser.read_events())


async def search(query: XmlQuery, scanner: XmlTokenScanner) -> XmlSearchResult:
    """Grab tokens one by one until `query` is satisfied.

    EndOfInput and XmlDecodeError from the scanner propagate unchanged; the
    caller decides whether running out of input is expected.
    """
    while True:
        token = await scanner.next_token()
        if token.kind is TokenKind.START:
            if query.named_start and token.local_name == query.named_start:
                return XmlSearchResult(named_start=token.element)
            continue

        matched = bool(query.named_end) and token.local_name == query.named_end
        scanner.release(token.element)
        if matched:
            return XmlSearchResult(named_end=True)
