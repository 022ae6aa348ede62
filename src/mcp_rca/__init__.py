"""mcp-rca — root cause analysis tools served over MCP stdio."""

from __future__ import annotations

__version__ = "0.1.0"

SERVER_NAME = "mcp-rca"
