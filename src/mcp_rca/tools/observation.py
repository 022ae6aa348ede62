"""Observation tools — record, edit, remove and search case observations."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal

from pydantic import Field, field_validator

from mcp_rca.protocol.context import ToolContext
from mcp_rca.protocol.models import WireModel
from mcp_rca.store.case_store import MAX_OBSERVATION_PAGE_SIZE, ObservationField, SortOrder
from mcp_rca.store.models import Case, Observation
from mcp_rca.tools.base import Identifier, RequiredText, StoreTool, TrimmedText


class ObservationResult(WireModel):
    case_id: str
    observation: Observation
    case: Case


class ObservationAddInput(WireModel):
    case_id: Identifier
    what: RequiredText
    context: TrimmedText | None = None
    git_branch: TrimmedText | None = None
    git_commit: TrimmedText | None = None
    deploy_env: TrimmedText | None = None


class ObservationAddTool(StoreTool):
    name = "observation_add"
    description = "Append a new observation to an existing RCA case."
    input_model = ObservationAddInput
    output_model = ObservationResult

    async def execute(self, params: ObservationAddInput, context: ToolContext) -> ObservationResult:
        observation, updated = await self.store.add_observation(
            params.case_id,
            what=params.what,
            context=params.context,
            git_branch=params.git_branch,
            git_commit=params.git_commit,
            deploy_env=params.deploy_env,
        )
        context.logger.info("Added observation %s to case %s", observation.id, params.case_id)
        return ObservationResult(case_id=params.case_id, observation=observation, case=updated)


class ObservationUpdateInput(WireModel):
    case_id: Identifier
    observation_id: Identifier
    what: TrimmedText | None = None
    context: TrimmedText | None = None


class ObservationUpdateTool(StoreTool):
    name = "observation_update"
    description = "Modify an observation's summary or context for an existing RCA case."
    input_model = ObservationUpdateInput
    output_model = ObservationResult

    async def execute(self, params: ObservationUpdateInput, context: ToolContext) -> ObservationResult:
        changes = params.model_dump(exclude_unset=True, include={"what", "context"})
        if not changes:
            raise ValueError("Provide at least one field to update")

        observation, updated = await self.store.update_observation(
            params.case_id, params.observation_id, changes
        )
        context.logger.info(
            "Updated observation %s in case %s fields=%s",
            params.observation_id,
            params.case_id,
            sorted(changes),
        )
        return ObservationResult(case_id=params.case_id, observation=observation, case=updated)


class ObservationRemoveInput(WireModel):
    case_id: Identifier
    observation_id: Identifier


class ObservationRemoveTool(StoreTool):
    name = "observation_remove"
    description = "Remove an observation from an existing RCA case."
    input_model = ObservationRemoveInput
    output_model = ObservationResult

    async def execute(self, params: ObservationRemoveInput, context: ToolContext) -> ObservationResult:
        observation, updated = await self.store.remove_observation(params.case_id, params.observation_id)
        context.logger.info("Removed observation %s from case %s", params.observation_id, params.case_id)
        return ObservationResult(case_id=params.case_id, observation=observation, case=updated)


class ObservationsListInput(WireModel):
    case_id: Identifier
    query: TrimmedText | None = None
    fields: list[ObservationField] | None = Field(default=None, min_length=1)
    created_after: datetime | None = None
    created_before: datetime | None = None
    git_branch: TrimmedText | None = None
    git_commit: TrimmedText | None = None
    deploy_env: TrimmedText | None = None
    sort_by: Literal["createdAt"] = "createdAt"
    order: SortOrder = "asc"
    page_size: int | None = Field(default=None, ge=1, le=MAX_OBSERVATION_PAGE_SIZE)
    cursor: str | None = None

    @field_validator("created_after", "created_before")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


class ObservationsListOutput(WireModel):
    case_id: str
    observations: list[Observation]
    next_cursor: str | None = None
    total: int
    page_size: int
    has_more: bool


class ObservationsListTool(StoreTool):
    name = "observations_list"
    description = "List observations for a case with filtering, search, and pagination."
    input_model = ObservationsListInput
    output_model = ObservationsListOutput

    async def execute(self, params: ObservationsListInput, context: ToolContext) -> ObservationsListOutput:
        observations, next_cursor, total, page_size = await self.store.list_observations(
            params.case_id,
            query=params.query,
            fields=params.fields,
            created_after=params.created_after,
            created_before=params.created_before,
            git_branch=params.git_branch,
            git_commit=params.git_commit,
            deploy_env=params.deploy_env,
            order=params.order,
            page_size=params.page_size,
            cursor=params.cursor,
        )
        context.logger.info(
            "Listed %d of %d observations for case %s", len(observations), total, params.case_id
        )
        return ObservationsListOutput(
            case_id=params.case_id,
            observations=observations,
            next_cursor=next_cursor,
            total=total,
            page_size=page_size,
            has_more=next_cursor is not None,
        )
