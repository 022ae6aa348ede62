"""Session lifecycle state machine.

``UNINITIALIZED → INITIALIZED → SHUTDOWN_REQUESTED → exit``
"""

from __future__ import annotations

import asyncio
import logging

from mcp_rca.protocol.errors import NotInitializedError
from mcp_rca.protocol.models import SessionState

logger = logging.getLogger(__name__)


class Lifecycle:
    """Tracks the session state and the requested exit status."""

    def __init__(self) -> None:
        self.state = SessionState.UNINITIALIZED
        self.exit_code: int | None = None
        self.exited = asyncio.Event()

    @property
    def initialized(self) -> bool:
        return self.state is SessionState.INITIALIZED

    def initialize(self) -> bool:
        """Move to ``INITIALIZED``; return ``False`` if the session was already past it."""
        if self.state is not SessionState.UNINITIALIZED:
            logger.debug("initialize received again in state %s; ignoring", self.state.value)
            return False
        self.state = SessionState.INITIALIZED
        logger.info("Session initialized")
        return True

    def require_initialized(self) -> None:
        if not self.initialized:
            raise NotInitializedError()

    def shutdown(self) -> None:
        self.state = SessionState.SHUTDOWN_REQUESTED
        logger.info("Shutdown requested")

    def exit(self) -> int:
        """Record the exit status (0 after ``shutdown``, else 1) and signal the session."""
        if self.state is SessionState.SHUTDOWN_REQUESTED:
            self.exit_code = 0
        else:
            logger.warning("exit received without a prior shutdown")
            self.exit_code = 1
        self.exited.set()
        return self.exit_code
