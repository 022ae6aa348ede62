"""Case tools — create, fetch, list and update RCA cases."""

from __future__ import annotations

from typing import Literal

from pydantic import Field

from mcp_rca.protocol.context import ToolContext
from mcp_rca.protocol.models import WireModel
from mcp_rca.store.case_store import (
    DEFAULT_PAGE_SIZE,
    MAX_CASE_PAGE_SIZE,
    MAX_OBSERVATION_PAGE_SIZE,
    decode_cursor,
    encode_cursor,
)
from mcp_rca.store.errors import CaseNotFoundError
from mcp_rca.store.models import Case, CaseStatus, CaseSummary, Severity
from mcp_rca.tools.base import Identifier, RequiredText, StoreTool, TrimmedText

IncludeSection = Literal["observations", "hypotheses", "tests", "results"]


# ---------------------------------------------------------------------------
# case_create
# ---------------------------------------------------------------------------


class CaseCreateInput(WireModel):
    title: RequiredText
    severity: Severity
    tags: list[RequiredText] | None = None
    git_branch: TrimmedText | None = None
    git_commit: TrimmedText | None = None
    deploy_env: TrimmedText | None = None


class CaseCreateOutput(WireModel):
    case_id: str
    case: Case


class CaseCreateTool(StoreTool):
    name = "case_create"
    description = "Create a new RCA case with metadata for subsequent investigation."
    input_model = CaseCreateInput
    output_model = CaseCreateOutput

    async def execute(self, params: CaseCreateInput, context: ToolContext) -> CaseCreateOutput:
        created = await self.store.create_case(
            title=params.title,
            severity=params.severity,
            tags=params.tags,
            git_branch=params.git_branch,
            git_commit=params.git_commit,
            deploy_env=params.deploy_env,
        )
        context.logger.info("Created RCA case %s (%s)", created.id, params.title)
        return CaseCreateOutput(case_id=created.id, case=created)


# ---------------------------------------------------------------------------
# case_get
# ---------------------------------------------------------------------------


class CaseGetInput(WireModel):
    case_id: Identifier
    include: list[IncludeSection] | None = None
    observation_cursor: str | None = None
    observation_limit: int | None = Field(default=None, ge=1, le=MAX_OBSERVATION_PAGE_SIZE)


class ObservationCursors(WireModel):
    next_observation_cursor: str | None = None
    observation_limit: int
    observation_returned: int
    observation_total: int
    has_more_observations: bool


class CaseGetOutput(WireModel):
    case: Case
    cursors: ObservationCursors | None = None


class CaseGetTool(StoreTool):
    name = "case_get"
    description = "Fetch the latest state of a single RCA case with optional observation paging."
    input_model = CaseGetInput
    output_model = CaseGetOutput

    async def execute(self, params: CaseGetInput, context: ToolContext) -> CaseGetOutput:
        found = await self.store.get_case(params.case_id)
        if found is None:
            raise CaseNotFoundError(params.case_id)

        sections = set(params.include) if params.include is not None else {
            "observations",
            "hypotheses",
            "tests",
            "results",
        }

        cursors: ObservationCursors | None = None
        observations = []
        if "observations" in sections:
            limit = params.observation_limit or DEFAULT_PAGE_SIZE
            payload = decode_cursor(params.observation_cursor)
            total = len(found.observations)
            offset = min(max(payload["offset"], 0), total) if payload else 0
            observations = found.observations[offset : offset + limit]
            next_offset = offset + limit
            next_cursor = encode_cursor({"offset": next_offset}) if next_offset < total else None
            cursors = ObservationCursors(
                next_observation_cursor=next_cursor,
                observation_limit=limit,
                observation_returned=len(observations),
                observation_total=total,
                has_more_observations=next_cursor is not None,
            )

        view = found.model_copy(
            update={
                "observations": observations,
                "hypotheses": found.hypotheses if "hypotheses" in sections else [],
                "tests": found.tests if "tests" in sections else [],
                "results": found.results if "results" in sections else [],
            }
        )
        context.logger.info("Fetched case %s (sections=%s)", params.case_id, sorted(sections))
        return CaseGetOutput(case=view, cursors=cursors)


# ---------------------------------------------------------------------------
# case_list
# ---------------------------------------------------------------------------


class CaseListInput(WireModel):
    query: TrimmedText | None = None
    tags: list[RequiredText] | None = None
    severity: Severity | None = None
    include_archived: bool | None = None
    page_size: int | None = Field(default=None, ge=1, le=MAX_CASE_PAGE_SIZE)
    cursor: str | None = None


class CaseListOutput(WireModel):
    cases: list[CaseSummary]
    next_cursor: str | None = None
    total: int


class CaseListTool(StoreTool):
    name = "case_list"
    description = "List RCA cases with filtering and cursor-based pagination."
    input_model = CaseListInput
    output_model = CaseListOutput

    async def execute(self, params: CaseListInput, context: ToolContext) -> CaseListOutput:
        summaries, next_cursor, total = await self.store.list_cases(
            query=params.query,
            tags=params.tags,
            severity=params.severity,
            include_archived=bool(params.include_archived),
            page_size=params.page_size,
            cursor=params.cursor,
        )
        context.logger.info("Listed %d of %d cases", len(summaries), total)
        return CaseListOutput(cases=summaries, next_cursor=next_cursor, total=total)


# ---------------------------------------------------------------------------
# case_update
# ---------------------------------------------------------------------------


class CaseUpdateInput(WireModel):
    case_id: Identifier
    title: TrimmedText | None = None
    severity: Severity | None = None
    tags: list[RequiredText] | None = None
    status: CaseStatus | None = None
    git_branch: TrimmedText | None = None
    git_commit: TrimmedText | None = None
    deploy_env: TrimmedText | None = None


class CaseUpdateOutput(WireModel):
    case: Case


class CaseUpdateTool(StoreTool):
    name = "case_update"
    description = "Modify case metadata or archive/unarchive a case."
    input_model = CaseUpdateInput
    output_model = CaseUpdateOutput

    async def execute(self, params: CaseUpdateInput, context: ToolContext) -> CaseUpdateOutput:
        changes = params.model_dump(exclude_unset=True, exclude={"case_id"})
        provided = {
            key
            for key, value in changes.items()
            if value or key in ("git_branch", "git_commit", "deploy_env")
        }
        if not provided:
            raise ValueError("At least one updatable field must be provided")

        updated = await self.store.update_case(params.case_id, changes)
        context.logger.info("Updated case %s fields=%s", params.case_id, sorted(provided))
        return CaseUpdateOutput(case=updated)
