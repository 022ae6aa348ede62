"""Shared fixtures: a store on a temporary file and a deterministic clock."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from mcp_rca.protocol.context import ToolContext, ToolContextFactory
from mcp_rca.store.case_store import CaseStore


class TickingClock:
    """Returns a new instant, one second later, on every call."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2024, 5, 1, 12, 0, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        value = self.current
        self.current += timedelta(seconds=1)
        return value


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def cases_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "cases.json"


@pytest.fixture
def store(cases_path: Path, clock: TickingClock) -> CaseStore:
    return CaseStore(cases_path, clock=clock)


@pytest.fixture
def context() -> ToolContext:
    return ToolContextFactory().create(1, tool_name="test")
