"""exiftool subprocess wrapper implementing the TagSource port.

One ExifTool per request. Two independent events can bring the process down:
`cancelled`, owned by the request (client went away), and a private abort
event set when streaming fails. Either one kills the process; the exit wait
observes the kill asynchronously.
"""
from __future__ import annotations

import asyncio
from typing import Any, Sequence

from loguru import logger

from exifserve.app.constants import LISTX_ARGUMENT
from exifserve.app.core import SERVICE_NAME
from exifserve.app.domain.tag_streamer import TagStreamer
from exifserve.app.domain.xml_scanner import DEFAULT_CHUNK_SIZE, XmlTokenScanner
from exifserve.app.ports.tag_sink import TagSink
from exifserve.app.ports.tag_source import (
    TagSourceExitError,
    TagSourceStartError,
    TagSourceStreamError,
)


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class ExifTool:
    """Runs exiftool and streams its -listx output as the tags document.

    Lifecycle: start() -> stream_tags(sink) -> close(). close() must be called
    on every path and may be called more than once.
    """

    def __init__(
        self,
        argv: Sequence[str],
        *,
        cancelled: asyncio.Event | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        if not argv:
            raise ValueError("argv must not be empty")
        self._argv = list(argv)
        self._cancelled = cancelled if cancelled is not None else asyncio.Event()
        self._aborted = asyncio.Event()
        self._chunk_size = chunk_size
        self._process: asyncio.subprocess.Process | None = None
        self._stdout: asyncio.StreamReader | None = None
        self._killer: asyncio.Task[None] | None = None
        self._closed = False

    @classmethod
    def listx(
        cls,
        executable: str = "exiftool",
        *,
        cancelled: asyncio.Event | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> "ExifTool":
        """Return an `exiftool -listx` command ready to get started."""
        return cls([executable, LISTX_ARGUMENT], cancelled=cancelled, chunk_size=chunk_size)

    @property
    def argv(self) -> list[str]:
        return list(self._argv)

    @property
    def returncode(self) -> int | None:
        return self._process.returncode if self._process is not None else None

    @property
    def aborted(self) -> bool:
        return self._aborted.is_set()

    async def start(self) -> None:
        """Launch exiftool with stdout piped; it keeps running in the background."""
        if self._process is not None:
            raise RuntimeError("exiftool is already started")
        try:
            self._process = await asyncio.create_subprocess_exec(
                *self._argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except (OSError, ValueError) as exc:
            raise TagSourceStartError(f"create_subprocess_exec({self._argv[0]!r}): {exc}") from exc

        self._stdout = self._process.stdout
        self._killer = asyncio.create_task(self._kill_on_cancel())
        _log("exiftool_started", pid=self._process.pid, argv=self._argv)

    async def stream_tags(self, sink: TagSink) -> None:
        """Stream tags from the running exiftool into `sink`.

        The transform loop and the exit wait run concurrently and both finish
        before this returns. A streaming failure wins over the exit status,
        which at that point is usually our own kill.
        """
        if self._process is None or self._stdout is None:
            raise RuntimeError("exiftool is not started")

        streamer = TagStreamer(XmlTokenScanner(self._stdout, chunk_size=self._chunk_size), sink)
        stream_error, exit_error = await asyncio.gather(
            self._transform(streamer),
            self._wait_for_exit(),
        )
        if stream_error is not None:
            raise stream_error
        if exit_error is not None:
            raise exit_error
        _log("tags_streamed", pid=self._process.pid, emitted=streamer.emitted)

    async def close(self) -> None:
        """Stop the kill watcher, then kill and reap exiftool if it is still around."""
        if self._closed:
            return
        self._closed = True

        if self._killer is not None:
            self._killer.cancel()
            try:
                await self._killer
            except asyncio.CancelledError:
                pass

        process = self._process
        if process is not None:
            self._kill(reason="closed")
            await self._drain()
            await process.wait()
        self._stdout = None

    async def _transform(self, streamer: TagStreamer) -> TagSourceStreamError | None:
        try:
            await streamer.emit_prolog()
            # Request cancellation is not passed down: it kills exiftool, so
            # the next read hits a truncated document and the stream fails.
            await streamer.stream()
            await streamer.emit_epilog()
        except Exception as exc:
            self._aborted.set()
            error = TagSourceStreamError(f"stream: {exc}")
            error.__cause__ = exc
            # The exit wait only completes once stdout reaches EOF.
            await self._drain()
            return error
        return None

    async def _wait_for_exit(self) -> TagSourceExitError | None:
        assert self._process is not None
        returncode = await self._process.wait()
        if returncode == 0:
            return None
        if returncode < 0:
            message = f"process.wait: killed by signal {-returncode}"
        else:
            message = f"process.wait: exit status {returncode}"
        return TagSourceExitError(message, returncode=returncode)

    async def _kill_on_cancel(self) -> None:
        waiters = [
            asyncio.ensure_future(self._cancelled.wait()),
            asyncio.ensure_future(self._aborted.wait()),
        ]
        try:
            await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in waiters:
                waiter.cancel()
        self._kill(reason="aborted" if self._aborted.is_set() else "cancelled")

    def _kill(self, *, reason: str) -> None:
        process = self._process
        if process is None or process.returncode is not None:
            return
        try:
            process.kill()
        except ProcessLookupError:
            return
        _log("exiftool_killed", pid=process.pid, reason=reason)

    async def _drain(self) -> None:
        if self._stdout is None:
            return
        try:
            while await self._stdout.read(self._chunk_size):
                pass
        except OSError as exc:
            logger.warning("exiftool stdout drain failed: {}", exc)
