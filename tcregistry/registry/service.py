"""Registry service: authoring, execution tracking and summaries."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Union

from tcregistry.config.settings import RegistryConfig
from tcregistry.errors import InvalidStatus, InvalidTransition
from tcregistry.models import (
    EXECUTED_STATUSES,
    ExecutionEvent,
    ExecutionStatus,
    RecordFilter,
    StatusSummary,
    TestCaseRecord,
)
from tcregistry.models.test_case import utcnow
from tcregistry.store import RecordStore, RecordView
from tcregistry.utils.logging import get_logger

logger = get_logger("registry.service")


class RegistryService:
    """
    Front door to the record store.

    Provides:
    - Test-case authoring (create, update, archive, supersede)
    - Execution recording with an append-only history
    - Status counts and coverage over any filtered set of cases
    """

    def __init__(
        self,
        store: Optional[RecordStore] = None,
        clock: Callable[[], datetime] = utcnow,
        require_steps: bool = True,
    ) -> None:
        """
        Initialize the service.

        Args:
            store: Record store to operate on (a fresh in-memory one if None)
            clock: Source of execution timestamps
            require_steps: Refuse to record executions for cases without steps
        """
        self.store = store if store is not None else RecordStore()
        self.clock = clock
        self.require_steps = require_steps

    @classmethod
    def from_config(cls, config: RegistryConfig) -> RegistryService:
        """Open the store file named by the configuration."""
        store = RecordStore.open(
            config.storage.path,
            autosave=config.storage.autosave,
            indent=config.storage.indent,
        )
        return cls(store=store, require_steps=config.execution.require_steps)

    # Authoring

    def create(self, record: Union[TestCaseRecord, dict]) -> TestCaseRecord:
        return self.store.create(record)

    def get(self, case_id: str) -> TestCaseRecord:
        return self.store.get(case_id)

    def update(self, case_id: str, patch: dict[str, Any]) -> TestCaseRecord:
        return self.store.update(case_id, patch)

    def list(
        self,
        record_filter: Optional[RecordFilter] = None,
        sort_key: Optional[str] = None,
        reverse: bool = False,
    ) -> RecordView:
        return self.store.list(record_filter, sort_key=sort_key, reverse=reverse)

    def archive(self, case_id: str) -> TestCaseRecord:
        return self.store.archive(case_id)

    def supersede(
        self,
        old_id: str,
        new_record: Union[TestCaseRecord, dict],
    ) -> TestCaseRecord:
        """
        Replace a test case with a new version.

        The old record is archived, keeping its execution history, and the
        new one is created under its own id. Both happen or neither does.

        Raises:
            NotFound: If old_id does not exist
            DuplicateId: If the new record's id is already in use
        """
        with self.store.transaction():
            self.store.archive(old_id)
            created = self.store.create(new_record)

        logger.info("record_superseded", old_id=old_id, new_id=created.id)
        return created

    def import_records(
        self,
        records: Iterable[TestCaseRecord],
        preserve_state: bool = False,
        skip_existing: bool = False,
    ) -> dict[str, int]:
        """
        Add many records in one transaction.

        Args:
            records: Records to add
            preserve_state: Keep status/actualResult/testedBy/dateExecuted
                instead of resetting each record to NotRun
            skip_existing: Skip ids already in the store instead of failing

        Returns:
            Counts of imported and skipped records
        """
        imported = 0
        skipped = 0
        with self.store.transaction():
            for record in records:
                if skip_existing and self.store.exists(record.id):
                    skipped += 1
                    continue
                if preserve_state:
                    self.store.restore(record)
                else:
                    self.store.create(record)
                imported += 1

        logger.info("records_import_completed", imported=imported, skipped=skipped)
        return {"imported": imported, "skipped": skipped}

    # Execution tracking

    def record_execution(
        self,
        case_id: str,
        status: Union[str, ExecutionStatus],
        actual_result: Optional[str],
        tested_by: str,
    ) -> TestCaseRecord:
        """
        Record the outcome of running a test case.

        Args:
            case_id: Test case that was executed
            status: Pass, Fail or Blocked
            actual_result: What was observed
            tested_by: Who ran it

        Returns:
            The updated record, stamped with the execution time

        Raises:
            InvalidStatus: If status is not Pass, Fail or Blocked
            NotFound: If the test case does not exist
            InvalidTransition: If tested_by is empty, the case has no steps,
                or the case is archived
        """
        parsed = ExecutionStatus.parse(status)
        if parsed not in EXECUTED_STATUSES:
            raise InvalidStatus(
                f"Executions must be Pass, Fail or Blocked, got {parsed.value}",
                case_id=case_id,
            )
        if not tested_by or not str(tested_by).strip():
            raise InvalidTransition("testedBy is required to record an execution", case_id=case_id)

        executed_at = self.clock()

        with self.store.transaction():
            current = self.store.get(case_id)
            if self.require_steps and not current.is_executable:
                raise InvalidTransition(
                    f"Test case {case_id} has no steps and cannot be executed",
                    case_id=case_id,
                )

            record = self.store.update(
                case_id,
                {
                    "status": parsed,
                    "actual_result": actual_result,
                    "tested_by": tested_by,
                    "date_executed": executed_at,
                },
            )
            self.store.append_event(
                ExecutionEvent(
                    case_id=case_id,
                    status=parsed,
                    actual_result=actual_result,
                    tested_by=tested_by,
                    date_executed=record.date_executed,
                )
            )

        logger.info(
            "execution_recorded",
            case_id=case_id,
            status=parsed.value,
            tested_by=tested_by,
        )
        return record

    def reset(self, case_id: str) -> TestCaseRecord:
        """Return a test case to NotRun. Its execution history is kept."""
        record = self.store.update(
            case_id,
            {
                "status": ExecutionStatus.NOT_RUN,
                "actual_result": None,
                "tested_by": None,
                "date_executed": None,
            },
        )
        logger.info("execution_reset", case_id=case_id)
        return record

    def history(self, case_id: str) -> list[ExecutionEvent]:
        """
        Execution history of a test case, oldest first.

        Raises:
            NotFound: If the test case has never existed
        """
        self.store.get(case_id)
        return self.store.events(case_id)

    # Reporting

    def summary(self, record_filter: Optional[RecordFilter] = None) -> StatusSummary:
        """
        Status counts and coverage over the active cases matching the filter.

        The result is a snapshot; later executions do not change it.
        """
        with self.store.read_lock():
            records = list(self.store.list(record_filter))
            generated_at = self.clock()
        summary = StatusSummary.calculate(records, generated_at=generated_at)

        logger.debug(
            "summary_computed",
            total=summary.total,
            executed=summary.executed,
            coverage=round(summary.coverage, 4),
        )
        return summary

    def save(self, path: Optional[Path] = None) -> Path:
        return self.store.save(path)
