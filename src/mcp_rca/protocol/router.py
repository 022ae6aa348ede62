"""RequestRouter — turns one decoded message into a response, or nothing.

Routing rules:

* messages without ``jsonrpc == "2.0"`` and a string ``method`` are dropped
  silently, there is no reliable ``id`` to answer;
* a message with an ``id`` key is a request and always gets exactly one
  response, even when the id is ``0`` or ``null``;
* a message without an ``id`` key is a notification: its result is
  discarded and failures are only logged.

Every exception raised by a handler is converted here; none reaches the
session loop.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from mcp_rca.protocol.errors import (
    InternalError,
    InvalidParamsError,
    MethodNotFoundError,
    ProtocolError,
    ToolExecutionError,
    ToolNotFoundError,
)
from mcp_rca.protocol.models import (
    PROTOCOL_VERSION,
    JsonRpcResponse,
    RequestId,
    is_request,
    is_routable,
)
from mcp_rca.utils.telemetry import ATTR_REQUEST_ID, ATTR_RPC_METHOD, ATTR_TOOL_NAME, get_tracer

if TYPE_CHECKING:
    from mcp_rca.protocol.context import ToolContextFactory
    from mcp_rca.protocol.lifecycle import Lifecycle
    from mcp_rca.protocol.registry import ToolRegistry

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

Handler = Callable[[Any, RequestId], Awaitable[dict[str, Any]]]

JSON_CONTENT_TYPE = "application/json"


class RequestRouter:
    """Dispatches lifecycle, introspection and ``tools/call`` methods.

    Usage::

        router = RequestRouter(registry, lifecycle, ToolContextFactory(),
                               server_info={"name": "mcp-rca", "version": "0.1.0"})
        response = await router.route(message)
        if response is not None:
            writer.write(encode_frame(response.to_wire()))
    """

    def __init__(
        self,
        registry: ToolRegistry,
        lifecycle: Lifecycle,
        contexts: ToolContextFactory,
        *,
        server_info: dict[str, str],
        capabilities: dict[str, Any] | None = None,
    ) -> None:
        self._registry = registry
        self._lifecycle = lifecycle
        self._contexts = contexts
        self._server_info = server_info
        self._capabilities = capabilities or {}
        self._handlers: dict[str, Handler] = {
            "initialize": self._initialize,
            "initialized": self._initialized,
            "notifications/initialized": self._initialized,
            "shutdown": self._shutdown,
            "exit": self._exit,
            "ping": self._ping,
            "tools/list": self._list_tools,
            "tools/call": self._call_tool,
            "resources/list": self._list_resources,
            "resources/read": self._read_resource,
        }
        self._requires_initialized = frozenset(
            {"tools/list", "tools/call", "resources/list", "resources/read"}
        )

    @property
    def methods(self) -> list[str]:
        return list(self._handlers)

    async def route(self, message: Any) -> JsonRpcResponse | None:
        """Handle *message*; return the response to write, or ``None`` to write nothing."""
        if not is_routable(message):
            logger.debug("Dropping malformed message: %.200r", message)
            return None

        method: str = message["method"]
        expects_reply = is_request(message)
        request_id: RequestId = message.get("id")

        try:
            result = await self._dispatch(method, message.get("params"), request_id)
        except ProtocolError as exc:
            if not expects_reply:
                logger.warning("Notification %s failed: %s", method, exc.message)
                return None
            return JsonRpcResponse.failure(request_id, exc.to_error())
        except Exception as exc:
            logger.exception("Unhandled error while handling %s", method)
            if not expects_reply:
                return None
            error = InternalError(data=str(exc) or exc.__class__.__name__)
            return JsonRpcResponse.failure(request_id, error.to_error())

        if not expects_reply:
            return None
        return JsonRpcResponse.success(request_id, result)

    async def _dispatch(self, method: str, params: Any, request_id: RequestId) -> dict[str, Any]:
        handler = self._handlers.get(method)
        if handler is None:
            raise MethodNotFoundError(method)
        if method in self._requires_initialized:
            self._lifecycle.require_initialized()
        return await handler(params, request_id)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def _initialize(self, params: Any, request_id: RequestId) -> dict[str, Any]:
        if self._lifecycle.initialize() and isinstance(params, dict):
            client = params.get("clientInfo")
            if isinstance(client, dict):
                logger.info("Client connected: %s %s", client.get("name"), client.get("version"))
        return {
            "protocolVersion": PROTOCOL_VERSION,
            "serverInfo": dict(self._server_info),
            "capabilities": self._capabilities,
        }

    async def _initialized(self, params: Any, request_id: RequestId) -> dict[str, Any]:
        logger.debug("Client confirmed initialization")
        return {}

    async def _shutdown(self, params: Any, request_id: RequestId) -> dict[str, Any]:
        self._lifecycle.shutdown()
        return {}

    async def _exit(self, params: Any, request_id: RequestId) -> dict[str, Any]:
        self._lifecycle.exit()
        return {}

    async def _ping(self, params: Any, request_id: RequestId) -> dict[str, Any]:
        return {"ok": True}

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    async def _list_tools(self, params: Any, request_id: RequestId) -> dict[str, Any]:
        return {"tools": self._registry.describe()}

    async def _list_resources(self, params: Any, request_id: RequestId) -> dict[str, Any]:
        return {"resources": []}

    async def _read_resource(self, params: Any, request_id: RequestId) -> dict[str, Any]:
        uri = params.get("uri") if isinstance(params, dict) else None
        if not isinstance(uri, str) or not uri:
            raise InvalidParamsError("resources/read requires a non-empty 'uri' string")
        return {"contents": []}

    # ------------------------------------------------------------------
    # Tool calls
    # ------------------------------------------------------------------

    async def _call_tool(self, params: Any, request_id: RequestId) -> dict[str, Any]:
        if not isinstance(params, dict):
            raise InvalidParamsError("tools/call params must be an object")

        name = params.get("name")
        if not isinstance(name, str) or not name:
            raise InvalidParamsError("tools/call requires a non-empty 'name' string")

        arguments = params.get("arguments")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise InvalidParamsError("tools/call 'arguments' must be an object")

        tool = self._registry.get(name)
        if tool is None:
            raise ToolNotFoundError(name)

        context = self._contexts.create(request_id, tool_name=name)

        with _tracer.start_as_current_span("tool.call") as span:
            span.set_attribute(ATTR_RPC_METHOD, "tools/call")
            span.set_attribute(ATTR_TOOL_NAME, name)
            span.set_attribute(ATTR_REQUEST_ID, context.request_id)

            try:
                validated = tool.validate_input(arguments)
            except ValidationError as exc:
                errors = json.loads(exc.json(include_url=False))
                raise InvalidParamsError(f"Invalid arguments for tool {name}", data=errors) from exc

            try:
                output = await tool.execute(validated, context)
                data = tool.dump_output(output)
            except Exception as exc:
                context.logger.error("Tool %s failed: %s", name, exc)
                span.record_exception(exc)
                raise ToolExecutionError(name, str(exc) or exc.__class__.__name__) from exc

        return {
            "content": [{"type": JSON_CONTENT_TYPE, "data": data}],
            "structuredContent": data,
        }
