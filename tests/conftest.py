from __future__ import annotations

import asyncio
import os
import sys
from pathlib import Path

import pytest
from fastapi import FastAPI

from exifserve.app.config.settings import Settings
from exifserve.app.ports.tag_source import TagSourceStartError
from exifserve.app.routers.health import health_router
from exifserve.app.routers.tags import tags_router


class ChunkedStream:
    """Implements ByteStream over fixed bytes, handing out at most `chunk_size` bytes per read."""

    def __init__(self, data: bytes, chunk_size: int = 7) -> None:
        self._data = data
        self._chunk_size = chunk_size
        self._offset = 0
        self.reads = 0

    async def read(self, n: int = -1) -> bytes:
        self.reads += 1
        size = self._chunk_size if n < 0 else min(n, self._chunk_size)
        chunk = self._data[self._offset:self._offset + size]
        self._offset += len(chunk)
        return chunk


class BufferSink:
    """Implements TagSink; collects everything written. Can fail after N writes."""

    def __init__(self, *, fail_after: int | None = None) -> None:
        self.chunks: list[bytes] = []
        self._fail_after = fail_after

    async def write(self, data: bytes) -> None:
        if self._fail_after is not None and len(self.chunks) >= self._fail_after:
            raise BrokenPipeError("sink closed")
        self.chunks.append(data)

    @property
    def text(self) -> str:
        return b"".join(self.chunks).decode()


class FakeTagSource:
    """Implements TagSource for router tests; writes canned chunks instead of running exiftool."""

    def __init__(
        self,
        chunks: list[bytes] | None = None,
        *,
        raise_on_start: Exception | None = None,
        raise_on_stream: Exception | None = None,
    ) -> None:
        self._chunks = chunks or []
        self._raise_on_start = raise_on_start
        self._raise_on_stream = raise_on_stream
        self.started = False
        self.streamed = False
        self.close_calls = 0

    async def start(self) -> None:
        if self._raise_on_start is not None:
            raise self._raise_on_start
        self.started = True

    async def stream_tags(self, sink) -> None:
        self.streamed = True
        for chunk in self._chunks:
            await sink.write(chunk)
        if self._raise_on_stream is not None:
            raise self._raise_on_stream

    async def close(self) -> None:
        self.close_calls += 1


class FakeTagSourceFactory:
    """Implements TagSourceFactory; hands out one preset FakeTagSource and records the cancel events."""

    def __init__(self, source: FakeTagSource | None = None) -> None:
        self.source = source or FakeTagSource()
        self.cancel_events: list[asyncio.Event] = []

    def __call__(self, cancelled: asyncio.Event) -> FakeTagSource:
        self.cancel_events.append(cancelled)
        return self.source


def write_fake_exiftool(directory: Path, body: str, *, name: str = "exiftool") -> Path:
    """Write an executable Python script standing in for exiftool."""
    script = directory / name
    script.write_text(f"#!{sys.executable}\n{body}")
    os.chmod(script, 0o755)
    return script


@pytest.fixture()
def test_app() -> FastAPI:
    app = FastAPI()
    app.state.settings = Settings(EXIFTOOL_PATH=sys.executable)
    app.state.tag_source_factory = FakeTagSourceFactory()
    app.include_router(health_router)
    app.include_router(tags_router)
    return app


@pytest.fixture()
def failing_start_source() -> FakeTagSource:
    return FakeTagSource(raise_on_start=TagSourceStartError("create_subprocess_exec('exiftool'): not found"))
