"""ServerSession — wires the byte stream, the codec and the router together.

Decoding happens synchronously as data arrives, so frames are *dispatched*
in arrival order.  Each dispatched message runs in its own task: a slow
tool call never blocks decoding of the frames behind it, and responses are
written in completion order.  Clients correlate responses by ``id``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from rich.console import Console

from mcp_rca import SERVER_NAME, __version__
from mcp_rca.protocol.framing import FrameCodec

if TYPE_CHECKING:
    from mcp_rca.protocol.lifecycle import Lifecycle
    from mcp_rca.protocol.models import JsonRpcResponse, SessionState
    from mcp_rca.protocol.router import RequestRouter
    from mcp_rca.protocol.transport import ByteSink, ByteSource

logger = logging.getLogger(__name__)

DEFAULT_READ_SIZE = 64 * 1024

INTERACTIVE_NOTICE = (
    f"{SERVER_NAME} {__version__} operates as an MCP server over stdio and expects "
    "Content-Length framed JSON-RPC; start it from an MCP client instead of a terminal."
)


class ServerSession:
    """Serves one client over a byte source / byte sink pair.

    Usage::

        session = ServerSession(router, lifecycle, reader, writer)
        exit_code = await session.serve()
    """

    def __init__(
        self,
        router: RequestRouter,
        lifecycle: Lifecycle,
        reader: ByteSource,
        writer: ByteSink,
        *,
        codec: FrameCodec | None = None,
        stdin_isatty: bool = False,
        read_size: int = DEFAULT_READ_SIZE,
        console: Console | None = None,
    ) -> None:
        self._router = router
        self._lifecycle = lifecycle
        self._reader = reader
        self._writer = writer
        self._codec = codec or FrameCodec()
        self._stdin_isatty = stdin_isatty
        self._read_size = read_size
        self._console = console or Console(stderr=True)
        self._in_flight: set[asyncio.Task[None]] = set()

    @property
    def state(self) -> SessionState:
        return self._lifecycle.state

    @property
    def exit_code(self) -> int | None:
        return self._lifecycle.exit_code

    @property
    def in_flight(self) -> int:
        """Number of dispatched messages whose handlers have not finished."""
        return len(self._in_flight)

    async def serve(self) -> int:
        """Serve until ``exit`` or end of input; return the process exit status."""
        if self._stdin_isatty:
            self._console.print(INTERACTIVE_NOTICE, markup=False, highlight=False, soft_wrap=True)
            return 0

        read_task = asyncio.create_task(self._read_loop())
        exit_task = asyncio.create_task(self._lifecycle.exited.wait())
        try:
            done, _ = await asyncio.wait(
                {read_task, exit_task}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for task in (read_task, exit_task):
                if not task.done():
                    task.cancel()

        if exit_task in done:
            await asyncio.gather(read_task, return_exceptions=True)
            await self._cancel_in_flight()
            return self._lifecycle.exit_code if self._lifecycle.exit_code is not None else 1

        await asyncio.gather(exit_task, return_exceptions=True)
        read_task.result()
        await self._drain_in_flight()
        return self._lifecycle.exit_code if self._lifecycle.exit_code is not None else 0

    async def _read_loop(self) -> None:
        while True:
            chunk = await self._reader.read(self._read_size)
            if not chunk:
                logger.info("Input stream closed")
                return
            for message in self._codec.feed(chunk):
                self._dispatch(message)

    def _dispatch(self, message: Any) -> None:
        task = asyncio.create_task(self._handle(message))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _handle(self, message: Any) -> None:
        response = await self._router.route(message)
        if response is None:
            return
        try:
            await self._write(response)
        except (ConnectionError, OSError):
            logger.exception("Failed to write response for id %r", response.id)

    async def _write(self, response: JsonRpcResponse) -> None:
        self._writer.write(self._codec.encode(response.to_wire()))
        await self._writer.drain()

    async def _drain_in_flight(self) -> None:
        while pending := [task for task in self._in_flight if not task.done()]:
            await asyncio.gather(*pending, return_exceptions=True)

    async def _cancel_in_flight(self) -> None:
        pending = list(self._in_flight)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
