"""Data models for tcregistry."""

from tcregistry.models.summary import StatusSummary
from tcregistry.models.test_case import (
    EXECUTED_STATUSES,
    FIELD_NAMES,
    ExecutionEvent,
    ExecutionStatus,
    RecordFilter,
    TestCaseRecord,
)

__all__ = [
    "TestCaseRecord",
    "ExecutionStatus",
    "ExecutionEvent",
    "RecordFilter",
    "StatusSummary",
    "EXECUTED_STATUSES",
    "FIELD_NAMES",
]
