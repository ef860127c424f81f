"""Port: a started tag producer (exiftool) streamed into a TagSink.

Implementations live in infrastructure. The router only depends on this
contract: start, stream_tags, close.
"""
from __future__ import annotations

import asyncio
from typing import Callable, Protocol

from exifserve.app.ports.tag_sink import TagSink


class TagSourceError(Exception):
    """Base for tag source failures."""


class TagSourceStartError(TagSourceError):
    """Raised when the producer process cannot be launched."""


class TagSourceStreamError(TagSourceError):
    """Raised when decoding or writing the tags document failed. The cause is chained."""


class TagSourceExitError(TagSourceError):
    """Raised when the producer process exited unsuccessfully."""

    def __init__(self, message: str, *, returncode: int | None) -> None:
        super().__init__(message)
        self.returncode = returncode


class TagSource(Protocol):
    async def start(self) -> None: ...

    async def stream_tags(self, sink: TagSink) -> None: ...

    async def close(self) -> None: ...


# Builds one TagSource per request, bound to that request's cancellation event.
TagSourceFactory = Callable[[asyncio.Event], TagSource]
