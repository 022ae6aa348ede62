"""Protocol models — JSON-RPC 2.0 envelopes, tool descriptors, session state.

Incoming messages stay plain dicts until the router has classified them:
whether a message is a request depends on the *presence* of the ``id`` key,
which a model with a default would erase.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

JSONRPC_VERSION = "2.0"
PROTOCOL_VERSION = "2024-11-05"

RequestId = str | int | float | None


class WireModel(BaseModel):
    """Base for payload models: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

# ---------------------------------------------------------------------------
# JSON-RPC 2.0 envelope
# ---------------------------------------------------------------------------


class JsonRpcError(BaseModel):
    """A JSON-RPC 2.0 error object."""

    code: int
    message: str
    data: Any = None


class JsonRpcResponse(BaseModel):
    """A JSON-RPC 2.0 response message.

    Exactly one of ``result`` / ``error`` is set; use :meth:`success` or
    :meth:`failure` to build one.
    """

    jsonrpc: str = JSONRPC_VERSION
    id: RequestId = None
    result: dict[str, Any] | None = None
    error: JsonRpcError | None = None

    @classmethod
    def success(cls, request_id: RequestId, result: dict[str, Any]) -> JsonRpcResponse:
        return cls(id=request_id, result=result)

    @classmethod
    def failure(cls, request_id: RequestId, error: JsonRpcError) -> JsonRpcResponse:
        return cls(id=request_id, error=error)

    def to_wire(self) -> dict[str, Any]:
        """Return the dict written to the transport (``id`` kept even when null)."""
        payload: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            payload["error"] = self.error.model_dump(exclude_none=True)
        else:
            payload["result"] = self.result if self.result is not None else {}
        return payload


# ---------------------------------------------------------------------------
# MCP-specific payloads
# ---------------------------------------------------------------------------


class ToolDescriptor(BaseModel):
    """A tool definition as returned by ``tools/list``."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str = ""
    input_schema: dict[str, Any] = Field(default_factory=dict, alias="inputSchema")
    output_schema: dict[str, Any] = Field(default_factory=dict, alias="outputSchema")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class SessionState(Enum):
    """Lifecycle of a single server session."""

    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    SHUTDOWN_REQUESTED = "shutdown_requested"


def is_routable(message: Any) -> bool:
    """Return ``True`` if *message* is a JSON-RPC 2.0 object with a string method.

    An ``id``, when present, must be a string, a number or ``null``; booleans
    are rejected even though ``bool`` subclasses ``int``.
    """
    return (
        isinstance(message, dict)
        and message.get("jsonrpc") == JSONRPC_VERSION
        and isinstance(message.get("method"), str)
        and _is_valid_id(message.get("id"))
    )


def _is_valid_id(value: Any) -> bool:
    return value is None or (isinstance(value, str | int | float) and not isinstance(value, bool))


def is_request(message: dict[str, Any]) -> bool:
    """A request carries an ``id`` key, whatever its value (``0`` and ``null`` included)."""
    return "id" in message
