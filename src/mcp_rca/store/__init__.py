"""Case persistence — RCA records and the JSON file store."""

from mcp_rca.store.case_store import CaseStore, normalize_tags
from mcp_rca.store.errors import (
    CaseNotFoundError,
    ChildNotFoundError,
    InvalidQueryError,
    RecordNotFoundError,
    StoreError,
)
from mcp_rca.store.models import (
    Case,
    CaseSummary,
    Conclusion,
    Hypothesis,
    Impact,
    Observation,
    TestPlan,
    TestResult,
)

__all__ = [
    "Case",
    "CaseNotFoundError",
    "CaseStore",
    "CaseSummary",
    "ChildNotFoundError",
    "Conclusion",
    "Hypothesis",
    "Impact",
    "InvalidQueryError",
    "Observation",
    "RecordNotFoundError",
    "StoreError",
    "TestPlan",
    "TestResult",
    "normalize_tags",
]
