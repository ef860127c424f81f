"""Port: async byte source read by the XML scanner (e.g. a subprocess stdout)."""
from __future__ import annotations

from typing import Protocol


class ByteStream(Protocol):
    async def read(self, n: int = -1) -> bytes:
        """Return up to n bytes; b"" once the stream is exhausted."""
        ...
