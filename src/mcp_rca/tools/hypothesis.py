"""Hypothesis tools — propose, revise, remove and confirm root cause hypotheses."""

from __future__ import annotations

from pydantic import Field

from mcp_rca.llm.generator import HypothesisGenerator
from mcp_rca.protocol.context import ToolContext
from mcp_rca.protocol.models import WireModel
from mcp_rca.store.case_store import CaseStore
from mcp_rca.store.errors import CaseNotFoundError
from mcp_rca.store.models import Case, Hypothesis, TestPlan
from mcp_rca.tools.base import Identifier, RequiredText, StoreTool, TrimmedText


class HypothesisResult(WireModel):
    case_id: str
    hypothesis: Hypothesis
    case: Case


# ---------------------------------------------------------------------------
# hypothesis_propose
# ---------------------------------------------------------------------------


class HypothesisProposeInput(WireModel):
    case_id: Identifier
    text: RequiredText = Field(description="Synopsis of the incident symptoms.")
    rationale: TrimmedText | None = None
    context: TrimmedText | None = None
    logs: list[str] | None = None


class ProposedHypothesis(Hypothesis):
    test_plan: TestPlan


class HypothesisProposeOutput(WireModel):
    hypotheses: list[ProposedHypothesis]


class HypothesisProposeTool(StoreTool):
    name = "hypothesis_propose"
    description = (
        "Generate up to 3 testable root cause hypotheses using the current case knowledge base."
    )
    input_model = HypothesisProposeInput
    output_model = HypothesisProposeOutput

    def __init__(self, store: CaseStore, generator: HypothesisGenerator) -> None:
        super().__init__(store)
        self.generator = generator

    async def execute(
        self, params: HypothesisProposeInput, context: ToolContext
    ) -> HypothesisProposeOutput:
        if await self.store.get_case(params.case_id) is None:
            raise CaseNotFoundError(params.case_id)

        generated = await self.generator.generate(
            case_id=params.case_id,
            text=params.text,
            rationale=params.rationale,
            context=params.context,
            logs=params.logs,
        )

        proposed: list[ProposedHypothesis] = []
        for candidate in generated:
            hypothesis, _ = await self.store.add_hypothesis(
                params.case_id,
                text=candidate.text,
                rationale=candidate.rationale,
            )
            plan, _ = await self.store.add_test_plan(
                params.case_id,
                hypothesis_id=hypothesis.id,
                method=candidate.test_plan.method,
                expected=candidate.test_plan.expected,
                metric=candidate.test_plan.metric,
            )
            proposed.append(ProposedHypothesis(**hypothesis.model_dump(), test_plan=plan))

        context.logger.info("Proposed %d hypotheses for case %s", len(proposed), params.case_id)
        return HypothesisProposeOutput(hypotheses=proposed)


# ---------------------------------------------------------------------------
# hypothesis_update / hypothesis_remove / hypothesis_finalize
# ---------------------------------------------------------------------------


class HypothesisUpdateInput(WireModel):
    case_id: Identifier
    hypothesis_id: Identifier
    text: RequiredText | None = None
    rationale: str | None = None
    confidence: float | None = Field(default=None, ge=0, le=1)


class HypothesisUpdateTool(StoreTool):
    name = "hypothesis_update"
    description = "Update an existing hypothesis in a case."
    input_model = HypothesisUpdateInput
    output_model = HypothesisResult

    async def execute(self, params: HypothesisUpdateInput, context: ToolContext) -> HypothesisResult:
        changes = params.model_dump(exclude_unset=True, include={"text", "rationale", "confidence"})
        hypothesis, updated = await self.store.update_hypothesis(
            params.case_id, params.hypothesis_id, changes
        )
        context.logger.info(
            "Updated hypothesis %s in case %s fields=%s",
            params.hypothesis_id,
            params.case_id,
            sorted(changes),
        )
        return HypothesisResult(case_id=params.case_id, hypothesis=hypothesis, case=updated)


class HypothesisRefInput(WireModel):
    case_id: Identifier
    hypothesis_id: Identifier


class HypothesisRemoveTool(StoreTool):
    name = "hypothesis_remove"
    description = "Remove a hypothesis from a case and its related test plans."
    input_model = HypothesisRefInput
    output_model = HypothesisResult

    async def execute(self, params: HypothesisRefInput, context: ToolContext) -> HypothesisResult:
        hypothesis, updated = await self.store.remove_hypothesis(params.case_id, params.hypothesis_id)
        context.logger.info("Removed hypothesis %s from case %s", params.hypothesis_id, params.case_id)
        return HypothesisResult(case_id=params.case_id, hypothesis=hypothesis, case=updated)


class HypothesisFinalizeTool(StoreTool):
    name = "hypothesis_finalize"
    description = "Mark a hypothesis as confirmed by setting its confidence to 1.0."
    input_model = HypothesisRefInput
    output_model = HypothesisResult

    async def execute(self, params: HypothesisRefInput, context: ToolContext) -> HypothesisResult:
        hypothesis, updated = await self.store.finalize_hypothesis(params.case_id, params.hypothesis_id)
        context.logger.info("Finalized hypothesis %s in case %s", params.hypothesis_id, params.case_id)
        return HypothesisResult(case_id=params.case_id, hypothesis=hypothesis, case=updated)
