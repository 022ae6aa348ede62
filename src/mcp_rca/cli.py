"""mcp-rca CLI entrypoint."""

from __future__ import annotations

import asyncio
import sys

import click
from rich.console import Console
from rich.markup import escape

from mcp_rca import SERVER_NAME, __version__

console = Console(stderr=True)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(
    __version__,
    "-v",
    "--version",
    prog_name=SERVER_NAME,
    message="%(prog)s v%(version)s",
)
def main() -> None:
    """Serve the RCA toolset to an MCP client over stdio.

    Configuration is read from the environment: MCP_RCA_CASES_PATH,
    MCP_RCA_LOG_LEVEL, MCP_RCA_LLM_PROVIDER, MCP_RCA_OTLP_ENDPOINT,
    OPENAI_API_KEY and ANTHROPIC_API_KEY.
    """
    from mcp_rca.config import ServerConfig, configure_logging
    from mcp_rca.server import run

    try:
        config = ServerConfig.from_env()
        configure_logging(config.log_level)
        exit_code = asyncio.run(run(config))
    except KeyboardInterrupt:
        exit_code = 130
    except Exception as exc:
        console.print(f"[red]Failed to start {SERVER_NAME}:[/red] {escape(str(exc))}", highlight=False)
        sys.exit(1)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
