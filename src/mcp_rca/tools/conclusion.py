"""conclusion_finalize — close an investigation with its root causes and fix."""

from __future__ import annotations

from pydantic import Field

from mcp_rca.protocol.context import ToolContext
from mcp_rca.protocol.models import WireModel
from mcp_rca.store.models import Case, Conclusion
from mcp_rca.tools.base import Identifier, RequiredText, StoreTool

CONFIRMED_MARKER = "🟢"


class ConclusionInput(WireModel):
    case_id: Identifier
    root_causes: list[RequiredText] = Field(min_length=1)
    fix: RequiredText
    follow_ups: list[str] | None = None


class ConclusionOutput(WireModel):
    conclusion: Conclusion
    case: Case


class ConclusionFinalizeTool(StoreTool):
    name = "conclusion_finalize"
    description = "Close the RCA case with the agreed root cause and follow-up actions."
    input_model = ConclusionInput
    output_model = ConclusionOutput

    async def execute(self, params: ConclusionInput, context: ToolContext) -> ConclusionOutput:
        conclusion, updated = await self.store.set_conclusion(
            params.case_id,
            root_causes=params.root_causes,
            fix=params.fix,
            follow_ups=params.follow_ups,
            confidence_marker=CONFIRMED_MARKER,
        )
        context.logger.info("Concluded case %s with %d root causes", params.case_id, len(conclusion.root_causes))
        return ConclusionOutput(conclusion=conclusion, case=updated)
