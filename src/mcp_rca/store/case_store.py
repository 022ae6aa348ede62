"""CaseStore — flat JSON file persistence for RCA cases.

Every operation loads the whole file, mutates the case list and writes it
back.  Load-mutate-save sequences run under one :class:`asyncio.Lock`, so
concurrent tool calls against the same store never lose each other's writes.
File I/O runs in a worker thread to keep the event loop responsive.
"""

from __future__ import annotations

import asyncio
import base64
import json
import logging
import os
from collections.abc import AsyncIterator, Callable, Iterable, Sequence
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Literal
from uuid import uuid4

from mcp_rca.protocol.context import utc_now
from mcp_rca.store.errors import CaseNotFoundError, ChildNotFoundError, InvalidQueryError
from mcp_rca.store.models import (
    Case,
    CaseFile,
    CaseStatus,
    CaseSummary,
    Conclusion,
    ConfidenceMarker,
    Hypothesis,
    Observation,
    Severity,
    TestPlan,
)

logger = logging.getLogger(__name__)

DEFAULT_CASES_PATH = Path("data") / "cases.json"

MAX_LIST_TOTAL = 1000
DEFAULT_PAGE_SIZE = 20
MAX_CASE_PAGE_SIZE = 50
MAX_OBSERVATION_PAGE_SIZE = 100
DEFAULT_CONFIDENCE_THRESHOLD = 0.5
DEFAULT_PRIORITY_THRESHOLD = 3

ObservationField = Literal["what", "context"]
SortOrder = Literal["asc", "desc"]

_DEPLOY_FIELDS = ("git_branch", "git_commit", "deploy_env")


def normalize_tags(tags: Iterable[str] | None) -> list[str]:
    """Trim, drop empty, de-duplicate and sort *tags*."""
    if not tags:
        return []
    return sorted({tag.strip() for tag in tags if tag.strip()})


def clean_text(value: str | None) -> str | None:
    """Strip *value*; blank strings become ``None``."""
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def encode_cursor(payload: dict[str, Any]) -> str:
    raw = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decode_cursor(cursor: str | None) -> dict[str, Any] | None:
    """Decode a cursor produced by :func:`encode_cursor`; malformed cursors yield ``None``."""
    if not cursor:
        return None
    padded = cursor + "=" * (-len(cursor) % 4)
    try:
        payload = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
    except (ValueError, UnicodeError):
        return None
    if not isinstance(payload, dict) or not isinstance(payload.get("offset"), int):
        return None
    return payload


def _parse_timestamp(value: str) -> datetime | None:
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def _apply_changes(
    record: Any,
    changes: dict[str, Any],
    *,
    required_text: Sequence[str] = (),
    optional_text: Sequence[str] = (),
    nullable: Sequence[str] = (),
    replace: Sequence[str] = (),
) -> dict[str, Any]:
    """Translate partial-update *changes* into a ``model_copy`` update dict.

    * ``required_text``: applied only when non-blank after stripping;
    * ``optional_text``: ``None`` or blank clears the field, else stripped;
    * ``nullable``: ``None`` clears the field, any other value is stored;
    * ``replace``: applied when not ``None``.
    """
    update: dict[str, Any] = {}
    for field in required_text:
        value = changes.get(field)
        if isinstance(value, str) and value.strip():
            update[field] = value.strip()
    for field in optional_text:
        if field in changes:
            update[field] = clean_text(changes[field])
    for field in nullable:
        if field in changes:
            update[field] = changes[field]
    for field in replace:
        if changes.get(field) is not None:
            update[field] = changes[field]
    return update


class CaseStore:
    """Async CRUD over the cases JSON file.

    Usage::

        store = CaseStore(Path("data/cases.json"))
        created = await store.create_case(title="API latency", severity="SEV2")
        observation, case = await store.add_observation(created.id, what="p99 doubled")
    """

    def __init__(self, path: str | os.PathLike[str], clock: Callable[[], datetime] = utc_now) -> None:
        self._path = Path(path)
        self._clock = clock
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # File access
    # ------------------------------------------------------------------

    def _read_file(self) -> CaseFile:
        if not self._path.exists():
            return CaseFile()
        raw = self._path.read_bytes()
        if not raw.strip():
            return CaseFile()
        return CaseFile.model_validate_json(raw)

    def _write_file(self, data: CaseFile) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        tmp_path.write_text(
            data.model_dump_json(by_alias=True, exclude_none=True, indent=2),
            encoding="utf-8",
        )
        tmp_path.replace(self._path)

    async def _load(self) -> list[Case]:
        data = await asyncio.to_thread(self._read_file)
        return data.cases

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[list[Case]]:
        """Yield the case list under the store lock and save it if the block succeeds."""
        async with self._lock:
            cases = await self._load()
            yield cases
            await asyncio.to_thread(self._write_file, CaseFile(cases=cases))

    def _timestamp(self) -> str:
        return self._clock().isoformat(timespec="milliseconds").replace("+00:00", "Z")

    @staticmethod
    def _index_of(cases: list[Case], case_id: str) -> int:
        for index, item in enumerate(cases):
            if item.id == case_id:
                return index
        raise CaseNotFoundError(case_id)

    @staticmethod
    def _child_index(records: Sequence[Any], record_id: str, kind: str, case_id: str) -> int:
        for index, item in enumerate(records):
            if item.id == record_id:
                return index
        raise ChildNotFoundError(kind, record_id, case_id)

    # ------------------------------------------------------------------
    # Cases
    # ------------------------------------------------------------------

    async def create_case(
        self,
        *,
        title: str,
        severity: Severity,
        tags: Iterable[str] | None = None,
        git_branch: str | None = None,
        git_commit: str | None = None,
        deploy_env: str | None = None,
    ) -> Case:
        now = self._timestamp()
        case = Case(
            id=f"case_{uuid4()}",
            title=title.strip(),
            severity=severity,
            tags=normalize_tags(tags),
            git_branch=clean_text(git_branch),
            git_commit=clean_text(git_commit),
            deploy_env=clean_text(deploy_env),
            created_at=now,
            updated_at=now,
        )
        async with self._transaction() as cases:
            cases.append(case)
        return case

    async def get_case(self, case_id: str) -> Case | None:
        async with self._lock:
            cases = await self._load()
        return next((item for item in cases if item.id == case_id), None)

    async def list_cases(
        self,
        *,
        query: str | None = None,
        tags: Iterable[str] | None = None,
        severity: Severity | None = None,
        include_archived: bool = False,
        page_size: int | None = None,
        cursor: str | None = None,
    ) -> tuple[list[CaseSummary], str | None, int]:
        """Return ``(summaries, next_cursor, total)`` for the filtered case list.

        ``query`` and ``tags`` match case-insensitive prefixes; a cursor is
        only honoured when it was issued for the same filters.
        """
        async with self._lock:
            cases = await self._load()

        norm_query = (query or "").strip().lower() or None
        norm_tags = [tag.strip().lower() for tag in tags or () if tag.strip()]

        def matches(item: Case) -> bool:
            if not include_archived and item.status == "archived":
                return False
            if severity is not None and item.severity != severity:
                return False
            case_tags = [tag.lower() for tag in item.tags]
            if norm_tags and not all(
                any(case_tag.startswith(tag) for case_tag in case_tags) for tag in norm_tags
            ):
                return False
            if norm_query is not None:
                tag_match = any(tag.startswith(norm_query) for tag in case_tags)
                if not item.title.lower().startswith(norm_query) and not tag_match:
                    return False
            return True

        filtered = [item for item in cases if matches(item)]

        size = min(max(page_size or DEFAULT_PAGE_SIZE, 1), MAX_CASE_PAGE_SIZE)
        signature = json.dumps(
            {
                "query": norm_query,
                "tags": sorted(norm_tags) or None,
                "severity": severity,
                "includeArchived": include_archived,
            },
            sort_keys=True,
        )
        offset = 0
        payload = decode_cursor(cursor)
        if payload is not None and payload.get("signature") == signature:
            offset = max(payload["offset"], 0)

        page = filtered[offset : offset + size]
        summaries = [
            CaseSummary(
                id=item.id,
                title=item.title,
                severity=item.severity,
                status=item.status,
                tags=item.tags,
                created_at=item.created_at,
                updated_at=item.updated_at,
                observation_count=len(item.observations),
            )
            for item in page
        ]

        next_offset = offset + size
        next_cursor = (
            encode_cursor({"offset": next_offset, "signature": signature})
            if next_offset < len(filtered)
            else None
        )
        return summaries, next_cursor, min(len(filtered), MAX_LIST_TOTAL)

    async def update_case(self, case_id: str, changes: dict[str, Any]) -> Case:
        """Apply the provided fields of *changes* (snake_case keys) to a case."""
        async with self._transaction() as cases:
            index = self._index_of(cases, case_id)
            update = _apply_changes(
                cases[index],
                changes,
                required_text=("title",),
                optional_text=_DEPLOY_FIELDS,
                replace=("severity", "status"),
            )
            if changes.get("tags") is not None:
                update["tags"] = normalize_tags(changes["tags"])
            update["updated_at"] = self._timestamp()
            cases[index] = cases[index].model_copy(update=update)
            return cases[index]

    async def set_status(self, case_id: str, status: CaseStatus) -> Case:
        return await self.update_case(case_id, {"status": status})

    # ------------------------------------------------------------------
    # Observations
    # ------------------------------------------------------------------

    async def add_observation(
        self,
        case_id: str,
        *,
        what: str,
        context: str | None = None,
        git_branch: str | None = None,
        git_commit: str | None = None,
        deploy_env: str | None = None,
    ) -> tuple[Observation, Case]:
        async with self._transaction() as cases:
            index = self._index_of(cases, case_id)
            now = self._timestamp()
            observation = Observation(
                id=f"obs_{uuid4()}",
                case_id=case_id,
                what=what.strip(),
                context=clean_text(context),
                git_branch=clean_text(git_branch),
                git_commit=clean_text(git_commit),
                deploy_env=clean_text(deploy_env),
                created_at=now,
            )
            current = cases[index]
            cases[index] = current.model_copy(
                update={"observations": [*current.observations, observation], "updated_at": now}
            )
            return observation, cases[index]

    async def update_observation(
        self, case_id: str, observation_id: str, changes: dict[str, Any]
    ) -> tuple[Observation, Case]:
        async with self._transaction() as cases:
            index = self._index_of(cases, case_id)
            current = cases[index]
            child = self._child_index(current.observations, observation_id, "Observation", case_id)
            original = current.observations[child]
            updated = original.model_copy(
                update=_apply_changes(
                    original,
                    changes,
                    required_text=("what",),
                    optional_text=("context", *_DEPLOY_FIELDS),
                )
            )
            observations = list(current.observations)
            observations[child] = updated
            cases[index] = current.model_copy(
                update={"observations": observations, "updated_at": self._timestamp()}
            )
            return updated, cases[index]

    async def remove_observation(self, case_id: str, observation_id: str) -> tuple[Observation, Case]:
        async with self._transaction() as cases:
            index = self._index_of(cases, case_id)
            current = cases[index]
            child = self._child_index(current.observations, observation_id, "Observation", case_id)
            observations = list(current.observations)
            removed = observations.pop(child)
            cases[index] = current.model_copy(
                update={"observations": observations, "updated_at": self._timestamp()}
            )
            return removed, cases[index]

    async def list_observations(
        self,
        case_id: str,
        *,
        query: str | None = None,
        fields: Sequence[ObservationField] | None = None,
        created_after: datetime | None = None,
        created_before: datetime | None = None,
        git_branch: str | None = None,
        git_commit: str | None = None,
        deploy_env: str | None = None,
        order: SortOrder = "asc",
        page_size: int | None = None,
        cursor: str | None = None,
    ) -> tuple[list[Observation], str | None, int, int]:
        """Return ``(observations, next_cursor, total, page_size)`` for a case.

        ``query`` is a case-insensitive substring match over ``fields``
        (``what`` and ``context`` by default).  Raises
        :class:`InvalidQueryError` if the date window is inverted.
        """
        if created_after and created_before and created_after > created_before:
            raise InvalidQueryError("createdAfter must be earlier than or equal to createdBefore")

        case = await self.get_case(case_id)
        if case is None:
            raise CaseNotFoundError(case_id)

        search_fields = sorted(set(fields or ("what", "context")))
        needle = (query or "").strip().lower() or None
        exact = {
            "git_branch": clean_text(git_branch),
            "git_commit": clean_text(git_commit),
            "deploy_env": clean_text(deploy_env),
        }

        def matches(item: Observation) -> bool:
            if needle is not None and not any(
                needle in (getattr(item, field) or "").lower() for field in search_fields
            ):
                return False
            for field, expected in exact.items():
                if expected is not None and getattr(item, field) != expected:
                    return False
            if created_after or created_before:
                created = _parse_timestamp(item.created_at)
                if created is None:
                    return False
                if created_after and created < created_after:
                    return False
                if created_before and created > created_before:
                    return False
            return True

        filtered = [item for item in case.observations if matches(item)]
        filtered.sort(key=lambda item: item.created_at, reverse=order == "desc")

        size = min(max(page_size or DEFAULT_PAGE_SIZE, 1), MAX_OBSERVATION_PAGE_SIZE)
        signature = json.dumps(
            {
                "caseId": case_id,
                "query": needle,
                "fields": search_fields,
                "createdAfter": created_after.isoformat() if created_after else None,
                "createdBefore": created_before.isoformat() if created_before else None,
                "exact": exact,
                "order": order,
            },
            sort_keys=True,
        )
        offset = 0
        payload = decode_cursor(cursor)
        if payload is not None and payload.get("signature") == signature:
            offset = max(payload["offset"], 0)

        page = filtered[offset : offset + size]
        next_offset = offset + size
        next_cursor = (
            encode_cursor({"offset": next_offset, "signature": signature})
            if next_offset < len(filtered)
            else None
        )
        return page, next_cursor, len(filtered), size

    # ------------------------------------------------------------------
    # Hypotheses
    # ------------------------------------------------------------------

    async def add_hypothesis(
        self,
        case_id: str,
        *,
        text: str,
        rationale: str | None = None,
        confidence: float | None = None,
    ) -> tuple[Hypothesis, Case]:
        async with self._transaction() as cases:
            index = self._index_of(cases, case_id)
            now = self._timestamp()
            hypothesis = Hypothesis(
                id=f"hyp_{uuid4()}",
                case_id=case_id,
                text=text.strip(),
                rationale=clean_text(rationale),
                confidence=confidence,
                created_at=now,
                updated_at=now,
            )
            current = cases[index]
            cases[index] = current.model_copy(
                update={"hypotheses": [*current.hypotheses, hypothesis], "updated_at": now}
            )
            return hypothesis, cases[index]

    async def update_hypothesis(
        self, case_id: str, hypothesis_id: str, changes: dict[str, Any]
    ) -> tuple[Hypothesis, Case]:
        async with self._transaction() as cases:
            index = self._index_of(cases, case_id)
            current = cases[index]
            child = self._child_index(current.hypotheses, hypothesis_id, "Hypothesis", case_id)
            original = current.hypotheses[child]
            now = self._timestamp()
            update = _apply_changes(
                original,
                changes,
                required_text=("text",),
                optional_text=("rationale",),
                nullable=("confidence",),
            )
            update["updated_at"] = now
            updated = original.model_copy(update=update)
            hypotheses = list(current.hypotheses)
            hypotheses[child] = updated
            cases[index] = current.model_copy(update={"hypotheses": hypotheses, "updated_at": now})
            return updated, cases[index]

    async def finalize_hypothesis(self, case_id: str, hypothesis_id: str) -> tuple[Hypothesis, Case]:
        """Mark a hypothesis as confirmed (confidence 1.0)."""
        return await self.update_hypothesis(case_id, hypothesis_id, {"confidence": 1.0})

    async def remove_hypothesis(self, case_id: str, hypothesis_id: str) -> tuple[Hypothesis, Case]:
        """Remove a hypothesis together with the test plans that target it."""
        async with self._transaction() as cases:
            index = self._index_of(cases, case_id)
            current = cases[index]
            child = self._child_index(current.hypotheses, hypothesis_id, "Hypothesis", case_id)
            hypotheses = list(current.hypotheses)
            removed = hypotheses.pop(child)
            tests = [plan for plan in current.tests if plan.hypothesis_id != hypothesis_id]
            cases[index] = current.model_copy(
                update={"hypotheses": hypotheses, "tests": tests, "updated_at": self._timestamp()}
            )
            return removed, cases[index]

    # ------------------------------------------------------------------
    # Test plans
    # ------------------------------------------------------------------

    async def add_test_plan(
        self,
        case_id: str,
        *,
        hypothesis_id: str,
        method: str,
        expected: str,
        metric: str | None = None,
        priority: int | None = None,
        git_branch: str | None = None,
        git_commit: str | None = None,
        deploy_env: str | None = None,
    ) -> tuple[TestPlan, Case]:
        async with self._transaction() as cases:
            index = self._index_of(cases, case_id)
            current = cases[index]
            self._child_index(current.hypotheses, hypothesis_id, "Hypothesis", case_id)
            now = self._timestamp()
            plan = TestPlan(
                id=f"tp_{uuid4()}",
                case_id=case_id,
                hypothesis_id=hypothesis_id,
                method=method.strip(),
                expected=expected.strip(),
                metric=clean_text(metric),
                priority=priority,
                git_branch=clean_text(git_branch),
                git_commit=clean_text(git_commit),
                deploy_env=clean_text(deploy_env),
                created_at=now,
                updated_at=now,
            )
            cases[index] = current.model_copy(update={"tests": [*current.tests, plan], "updated_at": now})
            return plan, cases[index]

    async def update_test_plan(
        self, case_id: str, test_plan_id: str, changes: dict[str, Any]
    ) -> tuple[TestPlan, Case]:
        async with self._transaction() as cases:
            index = self._index_of(cases, case_id)
            current = cases[index]
            child = self._child_index(current.tests, test_plan_id, "Test plan", case_id)
            original = current.tests[child]
            now = self._timestamp()
            update = _apply_changes(
                original,
                changes,
                required_text=("method", "expected"),
                optional_text=("metric", *_DEPLOY_FIELDS),
                nullable=("priority",),
            )
            update["updated_at"] = now
            updated = original.model_copy(update=update)
            tests = list(current.tests)
            tests[child] = updated
            cases[index] = current.model_copy(update={"tests": tests, "updated_at": now})
            return updated, cases[index]

    async def remove_test_plan(self, case_id: str, test_plan_id: str) -> tuple[TestPlan, Case]:
        async with self._transaction() as cases:
            index = self._index_of(cases, case_id)
            current = cases[index]
            child = self._child_index(current.tests, test_plan_id, "Test plan", case_id)
            tests = list(current.tests)
            removed = tests.pop(child)
            cases[index] = current.model_copy(update={"tests": tests, "updated_at": self._timestamp()})
            return removed, cases[index]

    async def bulk_delete_provisional(
        self,
        case_id: str,
        *,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
        priority_threshold: int = DEFAULT_PRIORITY_THRESHOLD,
    ) -> tuple[list[Hypothesis], list[TestPlan], Case]:
        """Delete low-confidence hypotheses and low-priority or orphaned test plans.

        A missing confidence counts as 0; a missing priority counts as 0.
        """
        async with self._transaction() as cases:
            index = self._index_of(cases, case_id)
            current = cases[index]

            deleted_hypotheses = [
                hyp for hyp in current.hypotheses if (hyp.confidence or 0) < confidence_threshold
            ]
            deleted_ids = {hyp.id for hyp in deleted_hypotheses}
            deleted_tests = [
                plan
                for plan in current.tests
                if (plan.priority or 0) > priority_threshold or plan.hypothesis_id in deleted_ids
            ]
            deleted_test_ids = {plan.id for plan in deleted_tests}

            cases[index] = current.model_copy(
                update={
                    "hypotheses": [h for h in current.hypotheses if h.id not in deleted_ids],
                    "tests": [t for t in current.tests if t.id not in deleted_test_ids],
                    "updated_at": self._timestamp(),
                }
            )
            return deleted_hypotheses, deleted_tests, cases[index]

    # ------------------------------------------------------------------
    # Conclusion
    # ------------------------------------------------------------------

    async def set_conclusion(
        self,
        case_id: str,
        *,
        root_causes: Sequence[str],
        fix: str,
        follow_ups: Sequence[str] | None = None,
        confidence_marker: ConfidenceMarker | None = None,
    ) -> tuple[Conclusion, Case]:
        async with self._transaction() as cases:
            index = self._index_of(cases, case_id)
            current = cases[index]
            now = self._timestamp()
            created_at = current.conclusion.created_at if current.conclusion else now
            conclusion = Conclusion(
                id=current.conclusion.id if current.conclusion else f"conc_{uuid4()}",
                case_id=case_id,
                root_causes=[cause.strip() for cause in root_causes if cause.strip()],
                fix=fix.strip(),
                follow_ups=[item.strip() for item in follow_ups if item.strip()] if follow_ups else None,
                confidence_marker=confidence_marker,
                created_at=created_at,
                updated_at=now,
            )
            cases[index] = current.model_copy(update={"conclusion": conclusion, "updated_at": now})
            return conclusion, cases[index]
