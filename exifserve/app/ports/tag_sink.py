"""Port: destination of the streamed tags document (e.g. an HTTP response body)."""
from __future__ import annotations

from typing import Protocol


class TagSink(Protocol):
    async def write(self, data: bytes) -> None: ...
