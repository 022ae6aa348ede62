"""Tests for the stdio transport helpers."""

import asyncio
import io
from unittest.mock import AsyncMock, MagicMock, patch

from mcp_rca.protocol.transport import (
    ByteSink,
    ByteSource,
    StdinSource,
    StdoutSink,
    open_stdio_streams,
    stdin_is_interactive,
)


class TestProtocols:
    async def test_asyncio_reader_is_a_byte_source(self) -> None:
        assert isinstance(asyncio.StreamReader(), ByteSource)

    def test_stdout_sink_is_a_byte_sink(self) -> None:
        stdout = MagicMock()
        stdout.buffer = io.BytesIO()
        with patch("mcp_rca.protocol.transport.sys.stdout", stdout):
            assert isinstance(StdoutSink(), ByteSink)


class TestStdoutSink:
    async def test_write_then_drain_flushes(self) -> None:
        buffer = io.BytesIO()
        stdout = MagicMock()
        stdout.buffer = buffer
        with patch("mcp_rca.protocol.transport.sys.stdout", stdout):
            sink = StdoutSink()
            sink.write(b"Content-Length: 2\r\n\r\n{}")
            await sink.drain()
        assert buffer.getvalue() == b"Content-Length: 2\r\n\r\n{}"



def _stdio(data: bytes = b"") -> tuple[MagicMock, MagicMock]:
    stdin = MagicMock()
    stdin.buffer = io.BufferedReader(io.BytesIO(data))
    stdout = MagicMock()
    stdout.buffer = io.BytesIO()
    return stdin, stdout


class TestStdinSource:
    async def test_reads_chunks_until_eof(self) -> None:
        stdin, _ = _stdio(b"Content-Length: 2\r\n\r\n{}")
        with patch("mcp_rca.protocol.transport.sys.stdin", stdin):
            source = StdinSource()
        assert isinstance(source, ByteSource)

        chunks: list[bytes] = []
        while chunk := await source.read(8):
            assert len(chunk) <= 8
            chunks.append(chunk)
        assert b"".join(chunks) == b"Content-Length: 2\r\n\r\n{}"


class TestOpenStdioStreams:
    async def test_regular_files_fall_back(self) -> None:
        stdin, stdout = _stdio(b"payload")
        loop = asyncio.get_running_loop()
        not_a_pipe = ValueError("Pipe transport is for pipes/sockets only.")
        with (
            patch("mcp_rca.protocol.transport.sys.stdin", stdin),
            patch("mcp_rca.protocol.transport.sys.stdout", stdout),
            patch.object(loop, "connect_read_pipe", AsyncMock(side_effect=not_a_pipe)),
            patch.object(loop, "connect_write_pipe", AsyncMock(side_effect=not_a_pipe)),
        ):
            reader, writer = await open_stdio_streams()

        assert isinstance(reader, StdinSource)
        assert isinstance(writer, StdoutSink)
        assert await reader.read(64) == b"payload"


class TestStdinIsInteractive:
    def test_tty(self) -> None:
        stdin = MagicMock()
        stdin.isatty.return_value = True
        with patch("mcp_rca.protocol.transport.sys.stdin", stdin):
            assert stdin_is_interactive() is True

    def test_pipe(self) -> None:
        stdin = MagicMock()
        stdin.isatty.return_value = False
        with patch("mcp_rca.protocol.transport.sys.stdin", stdin):
            assert stdin_is_interactive() is False

    def test_closed_stdin(self) -> None:
        stdin = MagicMock()
        stdin.isatty.side_effect = ValueError("I/O operation on closed file")
        with patch("mcp_rca.protocol.transport.sys.stdin", stdin):
            assert stdin_is_interactive() is False
