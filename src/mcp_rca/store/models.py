"""RCA record models — cases and the records attached to them.

Records are stored and served in camelCase; Python code uses snake_case.
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field

from mcp_rca.protocol.models import WireModel

Severity = Literal["SEV1", "SEV2", "SEV3"]
CaseStatus = Literal["active", "archived"]
ConfidenceMarker = Literal["🟢", "🔵", "🟡", "🔴"]


class DeployMetadata(WireModel):
    """Optional association with a branch, commit or environment."""

    git_branch: str | None = None
    git_commit: str | None = None
    deploy_env: str | None = None


class Observation(DeployMetadata):
    id: str
    case_id: str
    what: str
    context: str | None = None
    created_at: str


class Impact(WireModel):
    id: str
    case_id: str
    metric: str
    value: str
    scope: str | None = None
    created_at: str


class Hypothesis(WireModel):
    id: str
    case_id: str
    text: str
    rationale: str | None = None
    confidence: float | None = Field(default=None, ge=0, le=1)
    created_at: str
    updated_at: str


class TestPlan(DeployMetadata):
    __test__ = False

    id: str
    case_id: str
    hypothesis_id: str
    method: str
    expected: str
    metric: str | None = None
    priority: int | None = None
    created_at: str
    updated_at: str


class TestResult(WireModel):
    __test__ = False

    id: str
    test_plan_id: str
    observed: str
    metrics: dict[str, float | str] | None = None
    created_at: str
    updated_at: str


class Conclusion(WireModel):
    id: str
    case_id: str
    root_causes: list[str]
    fix: str
    follow_ups: list[str] | None = None
    confidence_marker: ConfidenceMarker | None = None
    created_at: str
    updated_at: str


class Case(DeployMetadata):
    """A single incident investigation and everything recorded against it."""

    id: str
    title: str
    severity: Severity
    tags: list[str] = []
    status: CaseStatus = "active"
    observations: list[Observation] = []
    impacts: list[Impact] = []
    hypotheses: list[Hypothesis] = []
    tests: list[TestPlan] = []
    results: list[TestResult] = []
    conclusion: Conclusion | None = None
    created_at: str
    updated_at: str


class CaseSummary(WireModel):
    """Row returned by ``case_list``."""

    id: str
    title: str
    severity: Severity
    status: CaseStatus
    tags: list[str]
    created_at: str
    updated_at: str
    observation_count: int


class CaseFile(WireModel):
    """Top-level layout of the JSON store file."""

    cases: list[Case] = []
