"""ASGI response streaming the tags document straight from a started TagSource.

The status line goes out before the first byte of the document, so a failure
mid-stream can only show up as a truncated body. The response also watches
`receive` for the client disconnecting and sets the request's cancellation
event, which kills exiftool.
"""
from __future__ import annotations

import asyncio
from typing import Any, Mapping

from loguru import logger
from starlette.responses import Response
from starlette.types import Receive, Scope, Send

from exifserve.app.core import SERVICE_NAME
from exifserve.app.ports.tag_source import TagSource, TagSourceError


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).debug("")


class AsgiBodySink:
    """TagSink writing each chunk as one `http.response.body` message."""

    def __init__(self, send: Send) -> None:
        self._send = send

    async def write(self, data: bytes) -> None:
        if not data:
            return
        await self._send({"type": "http.response.body", "body": data, "more_body": True})


class TagStreamResponse(Response):
    media_type = "application/json"

    def __init__(
        self,
        tag_source: TagSource,
        cancelled: asyncio.Event,
        *,
        status_code: int = 200,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self.tag_source = tag_source
        self.cancelled = cancelled
        self.status_code = status_code
        self.background = None
        self.init_headers(headers)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        await send(
            {
                "type": "http.response.start",
                "status": self.status_code,
                "headers": self.raw_headers,
            }
        )
        watcher = asyncio.create_task(self._listen_for_disconnect(receive))
        try:
            await self.tag_source.stream_tags(AsgiBodySink(send))
        except TagSourceError as exc:
            # Too late for a 500. A cancelled request always fails here because
            # exiftool gets killed, so that case is not worth an error log.
            if self.cancelled.is_set():
                _log("stream_tags_cancelled", error=str(exc))
            else:
                logger.bind(service_name=SERVICE_NAME, event="stream_tags_failed").error(
                    "stream_tags: {}", exc
                )
        finally:
            watcher.cancel()
            await self.tag_source.close()

        if self.cancelled.is_set():
            return
        try:
            await send({"type": "http.response.body", "body": b"", "more_body": False})
        except OSError as exc:
            _log("response_close_failed", error=str(exc))

    async def _listen_for_disconnect(self, receive: Receive) -> None:
        while True:
            message = await receive()
            if message["type"] == "http.disconnect":
                _log("client_disconnected")
                self.cancelled.set()
                return
