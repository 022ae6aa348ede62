"""RCA tool set exposed over ``tools/call``."""

from __future__ import annotations

from typing import Any

from mcp_rca.llm.generator import HypothesisGenerator
from mcp_rca.store.case_store import CaseStore
from mcp_rca.tools.base import StoreTool, Tool
from mcp_rca.tools.case import CaseCreateTool, CaseGetTool, CaseListTool, CaseUpdateTool
from mcp_rca.tools.conclusion import ConclusionFinalizeTool
from mcp_rca.tools.hypothesis import (
    HypothesisFinalizeTool,
    HypothesisProposeTool,
    HypothesisRemoveTool,
    HypothesisUpdateTool,
)
from mcp_rca.tools.observation import (
    ObservationAddTool,
    ObservationRemoveTool,
    ObservationsListTool,
    ObservationUpdateTool,
)
from mcp_rca.tools.test_plan import (
    BulkDeleteProvisionalTool,
    PrioritizeTool,
    TestPlanRemoveTool,
    TestPlanTool,
    TestPlanUpdateTool,
)


def build_tools(store: CaseStore, generator: HypothesisGenerator) -> list[Tool[Any, Any]]:
    """Return every tool, in the order ``tools/list`` reports them."""
    return [
        CaseCreateTool(store),
        CaseGetTool(store),
        CaseListTool(store),
        CaseUpdateTool(store),
        ObservationAddTool(store),
        ObservationUpdateTool(store),
        ObservationRemoveTool(store),
        ObservationsListTool(store),
        HypothesisProposeTool(store, generator),
        HypothesisUpdateTool(store),
        HypothesisRemoveTool(store),
        HypothesisFinalizeTool(store),
        TestPlanTool(store),
        TestPlanUpdateTool(store),
        TestPlanRemoveTool(store),
        PrioritizeTool(),
        BulkDeleteProvisionalTool(store),
        ConclusionFinalizeTool(store),
    ]


__all__ = ["StoreTool", "Tool", "build_tools"]
