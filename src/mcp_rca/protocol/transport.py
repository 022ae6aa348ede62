"""Stdio transport — asyncio streams over the process's stdin and stdout.

The session only needs a byte source with ``read`` and a byte sink with
``write`` / ``drain``; :class:`asyncio.StreamReader` and
:class:`asyncio.StreamWriter` satisfy both protocols, as do test doubles.
"""

from __future__ import annotations

import asyncio
import sys
from typing import Protocol, runtime_checkable


@runtime_checkable
class ByteSource(Protocol):
    """Readable side of the transport."""

    async def read(self, n: int = -1) -> bytes: ...


@runtime_checkable
class ByteSink(Protocol):
    """Writable side of the transport."""

    def write(self, data: bytes) -> None: ...
    async def drain(self) -> None: ...


class StdoutSink:
    """Blocking writer for a stdout that is not a pipe (e.g. redirected to a file).

    ``connect_write_pipe`` only accepts pipes, sockets and character devices.
    """

    def __init__(self) -> None:
        self._stream = sys.stdout.buffer

    def write(self, data: bytes) -> None:
        self._stream.write(data)

    async def drain(self) -> None:
        self._stream.flush()


class StdinSource:
    """Thread-backed reader for a stdin that is not a pipe (e.g. a regular file).

    ``connect_read_pipe`` rejects regular files, so each read runs in a worker
    thread instead.
    """

    def __init__(self) -> None:
        self._stream = sys.stdin.buffer

    async def read(self, n: int = -1) -> bytes:
        if n < 0:
            return await asyncio.to_thread(self._stream.read)
        return await asyncio.to_thread(self._stream.read1, n)


async def open_stdio_streams() -> tuple[ByteSource, ByteSink]:
    """Attach non-blocking streams to stdin and stdout.

    Regular files on either side fall back to :class:`StdinSource` and
    :class:`StdoutSink`.
    """
    loop = asyncio.get_running_loop()

    stream_reader = asyncio.StreamReader()
    reader: ByteSource = stream_reader
    try:
        await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(stream_reader), sys.stdin)
    except ValueError:
        reader = StdinSource()

    try:
        transport, protocol = await loop.connect_write_pipe(
            asyncio.streams.FlowControlMixin, sys.stdout
        )
    except ValueError:
        return reader, StdoutSink()
    writer = asyncio.StreamWriter(transport, protocol, stream_reader, loop)
    return reader, writer


def stdin_is_interactive() -> bool:
    """Return ``True`` when stdin is attached to a terminal rather than a pipe."""
    try:
        return sys.stdin.isatty()
    except (AttributeError, ValueError):
        return False
