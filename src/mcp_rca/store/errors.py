"""Error types for the case store."""

from __future__ import annotations


class StoreError(Exception):
    """Base error for all persistence failures."""


class RecordNotFoundError(StoreError):
    """A case or a record inside a case does not exist."""


class CaseNotFoundError(RecordNotFoundError):
    def __init__(self, case_id: str) -> None:
        self.case_id = case_id
        super().__init__(f"Case {case_id} not found")


class ChildNotFoundError(RecordNotFoundError):
    """An observation, hypothesis or test plan is missing from its case."""

    def __init__(self, kind: str, record_id: str, case_id: str) -> None:
        self.kind = kind
        self.record_id = record_id
        self.case_id = case_id
        super().__init__(f"{kind} {record_id} not found in case {case_id}")


class InvalidQueryError(StoreError):
    """A list filter could not be interpreted."""
