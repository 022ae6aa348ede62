"""Shared helpers for E2E integration tests."""

from __future__ import annotations

import asyncio
import itertools
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from mcp_rca.config import ServerConfig
from mcp_rca.llm.provider import LLMProviderManager
from mcp_rca.protocol.framing import FrameCodec, encode_frame
from mcp_rca.protocol.session import ServerSession
from mcp_rca.server import build_server


def make_mock_litellm_response(
    content: str = "",
    finish_reason: str = "stop",
    model: str = "openai/gpt-4o-mini",
) -> MagicMock:
    """Create a ``MagicMock`` matching LiteLLM's response structure.

    The mock mirrors ``choices[0].message`` with content, plus top-level
    ``usage`` and ``model`` attributes.
    """
    message = MagicMock()
    message.content = content or None

    choice = MagicMock()
    choice.message = message
    choice.finish_reason = finish_reason

    usage = MagicMock()
    usage.prompt_tokens = 10
    usage.completion_tokens = 20
    usage.total_tokens = 30

    response = MagicMock()
    response.choices = [choice]
    response.usage = usage
    response.model = model

    return response


class FrameSink:
    """Byte sink that decodes every written frame as it arrives."""

    def __init__(self) -> None:
        self._codec = FrameCodec()
        self.messages: list[dict[str, Any]] = []

    def write(self, data: bytes) -> None:
        self.messages.extend(self._codec.feed(data))

    async def drain(self) -> None:
        return None


class McpClient:
    """Drives a :class:`ServerSession` the way an MCP client would over stdio."""

    def __init__(self, session: ServerSession, reader: asyncio.StreamReader, sink: FrameSink) -> None:
        self.session = session
        self.reader = reader
        self.sink = sink
        self._ids = itertools.count(1)
        self._serving: asyncio.Task[int] | None = None

    def start(self) -> None:
        self._serving = asyncio.create_task(self.session.serve())

    def notify(self, method: str, params: Any = None) -> None:
        message: dict[str, Any] = {"jsonrpc": "2.0", "method": method}
        if params is not None:
            message["params"] = params
        self.reader.feed_data(encode_frame(message))

    async def request(self, method: str, params: Any = None, timeout: float = 2.0) -> dict[str, Any]:
        request_id = next(self._ids)
        message: dict[str, Any] = {"jsonrpc": "2.0", "id": request_id, "method": method}
        if params is not None:
            message["params"] = params
        self.reader.feed_data(encode_frame(message))
        return await self.wait_for(request_id, timeout)

    async def wait_for(self, request_id: Any, timeout: float = 2.0) -> dict[str, Any]:
        async with asyncio.timeout(timeout):
            while True:
                for message in self.sink.messages:
                    if message.get("id") == request_id:
                        return message
                await asyncio.sleep(0.005)

    async def call_tool(self, name: str, arguments: dict[str, Any] | None = None) -> dict[str, Any]:
        response = await self.request("tools/call", {"name": name, "arguments": arguments or {}})
        assert "error" not in response, response["error"]
        return response["result"]["structuredContent"]

    async def initialize(self) -> dict[str, Any]:
        response = await self.request(
            "initialize",
            {"protocolVersion": "2024-11-05", "clientInfo": {"name": "e2e", "version": "1.0"}},
        )
        self.notify("notifications/initialized")
        return response

    async def finish(self, timeout: float = 2.0) -> int:
        """Send ``shutdown`` and ``exit`` and return the session's exit code."""
        await self.request("shutdown")
        self.notify("exit")
        assert self._serving is not None
        return await asyncio.wait_for(self._serving, timeout)

    async def close(self, timeout: float = 2.0) -> int:
        """End the input stream and return the session's exit code."""
        self.reader.feed_eof()
        assert self._serving is not None
        return await asyncio.wait_for(self._serving, timeout)


@pytest.fixture
def make_client(cases_path: Path):  # type: ignore[no-untyped-def]
    """Factory for started clients; every client shares the test's cases file."""

    def factory(llm: LLMProviderManager | None = None) -> McpClient:
        reader = asyncio.StreamReader()
        sink = FrameSink()
        session = build_server(reader, sink, config=ServerConfig(cases_path=cases_path), llm=llm)
        client = McpClient(session, reader, sink)
        client.start()
        return client

    return factory
