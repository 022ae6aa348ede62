"""Protocol layer — framing, routing and the session lifecycle."""

from mcp_rca.protocol.context import ToolContext, ToolContextFactory
from mcp_rca.protocol.errors import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    METHOD_NOT_FOUND,
    NOT_INITIALIZED,
    TOOL_EXECUTION_FAILED,
    TOOL_NOT_FOUND,
    ProtocolError,
    ToolExecutionError,
    ToolNotFoundError,
)
from mcp_rca.protocol.framing import FrameCodec, encode_frame
from mcp_rca.protocol.lifecycle import Lifecycle
from mcp_rca.protocol.models import JsonRpcError, JsonRpcResponse, SessionState, ToolDescriptor
from mcp_rca.protocol.registry import ToolRegistry
from mcp_rca.protocol.router import RequestRouter
from mcp_rca.protocol.session import ServerSession

__all__ = [
    "INTERNAL_ERROR",
    "INVALID_PARAMS",
    "METHOD_NOT_FOUND",
    "NOT_INITIALIZED",
    "TOOL_EXECUTION_FAILED",
    "TOOL_NOT_FOUND",
    "FrameCodec",
    "JsonRpcError",
    "JsonRpcResponse",
    "Lifecycle",
    "ProtocolError",
    "RequestRouter",
    "ServerSession",
    "SessionState",
    "ToolContext",
    "ToolContextFactory",
    "ToolDescriptor",
    "ToolExecutionError",
    "ToolNotFoundError",
    "ToolRegistry",
    "encode_frame",
]
