"""Smoke test to verify the project scaffolding works."""

from __future__ import annotations


def test_import() -> None:
    import mcp_rca

    assert mcp_rca.__version__ == "0.1.0"
    assert mcp_rca.SERVER_NAME == "mcp-rca"


def test_cli_entrypoint() -> None:
    from mcp_rca.cli import main

    assert callable(main)


def test_package_exports() -> None:
    from mcp_rca.llm import HypothesisGenerator, LLMProviderManager
    from mcp_rca.protocol import FrameCodec, RequestRouter, ServerSession, ToolContextFactory, ToolRegistry
    from mcp_rca.store import CaseStore
    from mcp_rca.tools import build_tools

    assert CaseStore is not None
    assert FrameCodec is not None
    assert RequestRouter is not None
    assert ServerSession is not None
    assert ToolContextFactory is not None
    assert ToolRegistry is not None
    assert HypothesisGenerator is not None
    assert LLMProviderManager is not None
    assert callable(build_tools)
