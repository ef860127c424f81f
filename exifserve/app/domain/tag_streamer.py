"""Turns the exiftool -listx token stream into the `{"tags": [...]}` document.

State machine, driven by `search`:

    AwaitTable --<table name=...>--> AwaitTag(name) --</table>--> AwaitTable
    AwaitTag(name) --<tag>--> emit record --> AwaitTag(name)
    AwaitTable --end of input--> Done

Records are written as soon as they are decoded; nothing is buffered. The
epilogue is only written by the caller after `stream` returns, so a failed
stream leaves a truncated document behind.
"""
from __future__ import annotations

from typing import Any

from lxml import etree
from loguru import logger

from exifserve.app.constants import TAGS_EPILOG, TAGS_PROLOG, TAGS_SEPARATOR, XmlName
from exifserve.app.core import SERVICE_NAME
from exifserve.app.domain.errors import EndOfInput, MissingAttributeError, TagStreamError
from exifserve.app.domain.tag_extractor import extract_tag
from exifserve.app.domain.xml_scanner import XmlQuery, XmlTokenScanner, attribute_by_local_name, search
from exifserve.app.ports.tag_sink import TagSink
from exifserve.app.schemas.tags import TagRecord

_TABLE_QUERY = XmlQuery(named_start=XmlName.TABLE)
_TAG_QUERY = XmlQuery(named_start=XmlName.TAG, named_end=XmlName.TABLE)


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).debug("")


class TagStreamer:
    def __init__(self, scanner: XmlTokenScanner, sink: TagSink) -> None:
        self._scanner = scanner
        self._sink = sink
        self._emitted = 0

    @property
    def emitted(self) -> int:
        return self._emitted

    async def emit_prolog(self) -> None:
        await self._write(TAGS_PROLOG)

    async def emit_epilog(self) -> None:
        await self._write(TAGS_EPILOG)

    async def stream(self) -> None:
        """Emit every tag of every table; returns once input ends between tables."""
        while True:
            try:
                table = await search(_TABLE_QUERY, self._scanner)
            except EndOfInput:
                _log("tags_stream_done", emitted=self._emitted)
                return
            table_name = attribute_by_local_name(XmlName.NAME, table.named_start)
            if table_name is None:
                raise MissingAttributeError("no table name specified by exiftool")
            try:
                await self.stream_tags(table_name)
            except TagStreamError as exc:
                raise TagStreamError(f"stream_tags({table_name!r}): {exc}") from exc

    async def stream_tags(self, table_name: str) -> None:
        while True:
            try:
                res = await search(_TAG_QUERY, self._scanner)
            except EndOfInput as exc:
                raise TagStreamError("search: unexpected end of input inside <table>") from exc
            except TagStreamError as exc:
                raise TagStreamError(f"search: {exc}") from exc

            if res.named_end:
                return
            if self._emitted:
                await self._write(TAGS_SEPARATOR)
            try:
                await self.emit_tag(table_name, res.named_start)
            except TagStreamError as exc:
                raise TagStreamError(f"emit_tag: {exc}") from exc

    async def emit_tag(self, table_name: str, start: etree._Element) -> None:
        raw = await extract_tag(self._scanner, start)
        record = TagRecord.from_raw(raw, table_name=table_name)
        await self._write(record.model_dump_json().encode())
        self._emitted += 1

    async def _write(self, data: bytes) -> None:
        try:
            await self._sink.write(data)
        except OSError as exc:
            raise TagStreamError(f"sink.write: {exc}") from exc
