"""Test tools and a wired router for protocol-layer tests."""

from __future__ import annotations

import asyncio

import pytest
from pydantic import BaseModel, Field

from mcp_rca.protocol.context import ToolContext, ToolContextFactory
from mcp_rca.protocol.lifecycle import Lifecycle
from mcp_rca.protocol.registry import ToolRegistry
from mcp_rca.protocol.router import RequestRouter
from mcp_rca.tools.base import Tool


class EchoInput(BaseModel):
    text: str
    delay: float = Field(default=0, ge=0)


class EchoOutput(BaseModel):
    text: str
    request_id: str


class EchoTool(Tool[EchoInput, EchoOutput]):
    name = "echo"
    description = "Return the input text, optionally after a delay."
    input_model = EchoInput
    output_model = EchoOutput

    async def execute(self, params: EchoInput, context: ToolContext) -> EchoOutput:
        if params.delay:
            await asyncio.sleep(params.delay)
        return EchoOutput(text=params.text, request_id=context.request_id)


class FailInput(BaseModel):
    message: str = ""


class FailTool(Tool[FailInput, EchoOutput]):
    name = "fail"
    description = "Always raises."
    input_model = FailInput
    output_model = EchoOutput

    async def execute(self, params: FailInput, context: ToolContext) -> EchoOutput:
        raise RuntimeError(params.message) if params.message else KeyError()


@pytest.fixture
def registry() -> ToolRegistry:
    return ToolRegistry([EchoTool(), FailTool()])


@pytest.fixture
def lifecycle() -> Lifecycle:
    return Lifecycle()


@pytest.fixture
def router(registry: ToolRegistry, lifecycle: Lifecycle) -> RequestRouter:
    return RequestRouter(
        registry,
        lifecycle,
        ToolContextFactory(),
        server_info={"name": "mcp-rca", "version": "0.1.0"},
        capabilities={"tools": {"listChanged": False}},
    )
