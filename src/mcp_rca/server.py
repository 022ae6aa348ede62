"""Server composition — the tool set, the router and one stdio session."""

from __future__ import annotations

import logging
from typing import Any

from mcp_rca import SERVER_NAME, __version__
from mcp_rca.config import ServerConfig
from mcp_rca.llm.generator import HypothesisGenerator
from mcp_rca.llm.provider import LLMProviderManager
from mcp_rca.protocol.context import ToolContextFactory
from mcp_rca.protocol.lifecycle import Lifecycle
from mcp_rca.protocol.registry import ToolRegistry
from mcp_rca.protocol.router import RequestRouter
from mcp_rca.protocol.session import ServerSession
from mcp_rca.protocol.transport import ByteSink, ByteSource, open_stdio_streams, stdin_is_interactive
from mcp_rca.store.case_store import CaseStore
from mcp_rca.tools import build_tools
from mcp_rca.utils.telemetry import configure_telemetry

logger = logging.getLogger(__name__)

CAPABILITIES: dict[str, Any] = {
    "tools": {"listChanged": False},
    "resources": {"listChanged": False},
}


def build_registry(store: CaseStore, generator: HypothesisGenerator) -> ToolRegistry:
    """Register the RCA tools in their fixed order."""
    return ToolRegistry(build_tools(store, generator))


def build_server(
    reader: ByteSource,
    writer: ByteSink,
    *,
    config: ServerConfig,
    store: CaseStore | None = None,
    llm: LLMProviderManager | None = None,
    stdin_isatty: bool = False,
) -> ServerSession:
    """Assemble a session.  *store* and *llm* default to ones built from *config*."""
    store = store or CaseStore(config.cases_path)
    registry = build_registry(store, HypothesisGenerator(llm))
    lifecycle = Lifecycle()
    router = RequestRouter(
        registry,
        lifecycle,
        ToolContextFactory(),
        server_info={"name": SERVER_NAME, "version": __version__},
        capabilities=CAPABILITIES,
    )
    return ServerSession(router, lifecycle, reader, writer, stdin_isatty=stdin_isatty)


async def run(config: ServerConfig) -> int:
    """Serve over stdio until ``exit`` or end of input; return the process exit code."""
    if config.otlp_endpoint:
        configure_telemetry(service_name=SERVER_NAME, otlp_endpoint=config.otlp_endpoint)

    llm = LLMProviderManager.from_env(default=config.llm_provider)
    reader, writer = await open_stdio_streams()
    session = build_server(
        reader,
        writer,
        config=config,
        llm=llm,
        stdin_isatty=stdin_is_interactive(),
    )
    logger.info("%s %s serving on stdio (cases: %s)", SERVER_NAME, __version__, config.cases_path)
    return await session.serve()
