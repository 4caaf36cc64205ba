"""Aggregate execution statistics over a set of test cases."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from tcregistry.models.test_case import (
    EXECUTED_STATUSES,
    ExecutionStatus,
    TestCaseRecord,
    format_timestamp,
    utcnow,
)


@dataclass(frozen=True)
class StatusSummary:
    """
    Snapshot of execution progress over a set of test cases.

    Attributes:
        counts: Number of records per status (every status present)
        total: Number of records summarized
        executed: Records with status Pass, Fail or Blocked
        coverage: executed / total, 0.0 for an empty set
        pass_rate: Pass / executed, 0.0 when nothing was executed
        generated_at: When the snapshot was taken
    """

    counts: dict[ExecutionStatus, int]
    total: int
    executed: int
    coverage: float
    pass_rate: float
    generated_at: datetime = field(default_factory=utcnow)

    def count(self, status: ExecutionStatus) -> int:
        return self.counts.get(status, 0)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "counts": {status.value: n for status, n in self.counts.items()},
            "total": self.total,
            "executed": self.executed,
            "coverage": round(self.coverage, 4),
            "passRate": round(self.pass_rate, 4),
            "generatedAt": format_timestamp(self.generated_at),
        }

    @classmethod
    def calculate(
        cls,
        records: Iterable[TestCaseRecord],
        generated_at: datetime | None = None,
    ) -> StatusSummary:
        """Calculate the summary from a sequence of records."""
        counts = {status: 0 for status in ExecutionStatus}
        for record in records:
            counts[record.status] += 1

        total = sum(counts.values())
        executed = sum(counts[status] for status in EXECUTED_STATUSES)
        coverage = executed / total if total > 0 else 0.0
        passed = counts[ExecutionStatus.PASS]
        pass_rate = passed / executed if executed > 0 else 0.0

        return cls(
            counts=counts,
            total=total,
            executed=executed,
            coverage=coverage,
            pass_rate=pass_rate,
            generated_at=generated_at or utcnow(),
        )
