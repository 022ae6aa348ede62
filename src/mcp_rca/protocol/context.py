"""Per-invocation tool context."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

TOOL_LOGGER_NAME = "mcp_rca.tools"


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class ToolContext:
    """Request id, clock and logger handed to a tool handler.

    Created immediately before the handler runs and dropped afterwards.
    """

    request_id: str
    now: Callable[[], datetime]
    logger: logging.LoggerAdapter[logging.Logger]


class ToolContextFactory:
    """Builds a fresh :class:`ToolContext` for every ``tools/call``."""

    def __init__(
        self,
        clock: Callable[[], datetime] = utc_now,
        logger: logging.Logger | None = None,
    ) -> None:
        self._clock = clock
        self._logger = logger or logging.getLogger(TOOL_LOGGER_NAME)

    def create(self, request_id: Any = None, *, tool_name: str = "") -> ToolContext:
        """Return a context keyed by *request_id*, or by a new unique id when it is ``None``."""
        resolved = str(request_id) if request_id is not None else uuid4().hex
        adapter = logging.LoggerAdapter(
            self._logger,
            {"request_id": resolved, "tool": tool_name},
        )
        return ToolContext(request_id=resolved, now=self._clock, logger=adapter)
