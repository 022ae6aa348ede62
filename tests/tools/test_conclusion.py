"""Tests for conclusion_finalize."""

import pytest
from pydantic import ValidationError

from mcp_rca.protocol.context import ToolContext
from mcp_rca.store.case_store import CaseStore
from mcp_rca.store.errors import CaseNotFoundError
from mcp_rca.tools.conclusion import ConclusionFinalizeTool


async def test_records_conclusion(store: CaseStore, context: ToolContext) -> None:
    created = await store.create_case(title="Login outage", severity="SEV1")
    tool = ConclusionFinalizeTool(store)
    output = tool.dump_output(
        await tool.execute(
            tool.validate_input(
                {
                    "caseId": created.id,
                    "rootCauses": ["Expired TLS certificate"],
                    "fix": "Rotate certificate",
                    "followUps": ["Alert 14 days before expiry"],
                }
            ),
            context,
        )
    )
    conclusion = output["conclusion"]
    assert conclusion["caseId"] == created.id
    assert conclusion["rootCauses"] == ["Expired TLS certificate"]
    assert conclusion["confidenceMarker"] == "🟢"
    assert output["case"]["conclusion"] == conclusion


async def test_missing_case(store: CaseStore, context: ToolContext) -> None:
    tool = ConclusionFinalizeTool(store)
    params = tool.validate_input({"caseId": "case_x", "rootCauses": ["x"], "fix": "y"})
    with pytest.raises(CaseNotFoundError):
        await tool.execute(params, context)


@pytest.mark.parametrize(
    "arguments",
    [
        {"rootCauses": [], "fix": "f"},
        {"rootCauses": ["  "], "fix": "f"},
        {"rootCauses": ["r"], "fix": ""},
        {"rootCauses": ["r"]},
    ],
)
def test_rejects_incomplete_conclusion(store: CaseStore, arguments: dict) -> None:
    with pytest.raises(ValidationError):
        ConclusionFinalizeTool(store).validate_input({"caseId": "c", **arguments})
