"""Error types for the protocol layer.

Each :class:`ProtocolError` maps onto a JSON-RPC error object.  Handlers
raise these (or any other exception) and the router converts them at the
dispatch boundary; nothing below the router writes error frames itself.
"""

from __future__ import annotations

from typing import Any

from mcp_rca.protocol.models import JsonRpcError

METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603
NOT_INITIALIZED = -32002
TOOL_NOT_FOUND = -32004
TOOL_EXECUTION_FAILED = -32005


class ProtocolError(Exception):
    """Base error for all failures that are reported to the client."""

    code: int = INTERNAL_ERROR
    default_message: str = "Internal error"

    def __init__(self, message: str | None = None, data: Any = None) -> None:
        self.message = message or self.default_message
        self.data = data
        super().__init__(self.message)

    def to_error(self) -> JsonRpcError:
        return JsonRpcError(code=self.code, message=self.message, data=self.data)


class MethodNotFoundError(ProtocolError):
    """The requested JSON-RPC method is not served."""

    code = METHOD_NOT_FOUND
    default_message = "Method not found"

    def __init__(self, method: str) -> None:
        self.method = method
        super().__init__(f"Method not found: {method}")


class InvalidParamsError(ProtocolError):
    """Request parameters are missing or malformed."""

    code = INVALID_PARAMS
    default_message = "Invalid params"


class NotInitializedError(ProtocolError):
    """A method requiring an initialized session was called too early."""

    code = NOT_INITIALIZED
    default_message = "Server not initialized"


class ToolNotFoundError(ProtocolError):
    """Requested tool does not exist in the registry."""

    code = TOOL_NOT_FOUND
    default_message = "Tool not found"

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool not found: {name}")


class ToolExecutionError(ProtocolError):
    """A tool handler raised; *detail* carries the original message."""

    code = TOOL_EXECUTION_FAILED
    default_message = "Tool execution failed"

    def __init__(self, name: str, detail: str = "") -> None:
        self.name = name
        self.detail = detail
        super().__init__(f"Tool execution failed: {name}", data=detail or None)


class InternalError(ProtocolError):
    """Unexpected failure inside a lifecycle or introspection handler."""

    code = INTERNAL_ERROR
    default_message = "Internal error"
