"""Server configuration, read from ``MCP_RCA_*`` environment variables."""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, field_validator

from mcp_rca.store.case_store import DEFAULT_CASES_PATH

CASES_PATH_ENV = "MCP_RCA_CASES_PATH"
LOG_LEVEL_ENV = "MCP_RCA_LOG_LEVEL"
OTLP_ENDPOINT_ENV = "MCP_RCA_OTLP_ENDPOINT"
LLM_PROVIDER_ENV = "MCP_RCA_LLM_PROVIDER"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class ServerConfig(BaseModel):
    """Runtime settings for one server process."""

    cases_path: Path
    log_level: str = "WARNING"
    llm_provider: str | None = None
    otlp_endpoint: str | None = None

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> ServerConfig:
        source = os.environ if env is None else env
        return cls(
            cases_path=Path(source.get(CASES_PATH_ENV, "").strip() or DEFAULT_CASES_PATH),
            log_level=source.get(LOG_LEVEL_ENV, "").strip() or "WARNING",
            llm_provider=source.get(LLM_PROVIDER_ENV, "").strip() or None,
            otlp_endpoint=source.get(OTLP_ENDPOINT_ENV, "").strip() or None,
        )


def configure_logging(level: str) -> None:
    """Send log records to stderr; stdout is reserved for protocol frames."""
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr, force=True)
