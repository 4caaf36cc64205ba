"""Record store: the table of test-case records.

Records live in two partitions. Active records are returned by ``list``;
archived records are kept for audit and still resolve through ``get``.
Ids are unique across both partitions. Every mutation runs under the
exclusive side of a readers-writer lock and either completes (including
the optional save to disk) or leaves the store untouched.
"""

from __future__ import annotations

from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Any, Generator, Iterator, Optional, Union

from tcregistry.errors import (
    DuplicateId,
    InvalidRecord,
    InvalidTransition,
    NotFound,
    PersistenceError,
)
from tcregistry.models import (
    FIELD_NAMES,
    ExecutionEvent,
    ExecutionStatus,
    RecordFilter,
    TestCaseRecord,
)
from tcregistry.store.locking import ReadWriteLock
from tcregistry.store.persistence import StoreDocument, read_store, write_store
from tcregistry.utils.logging import get_logger

logger = get_logger("store.record_store")

# Persisted field name -> attribute, plus attribute names themselves
_ATTRIBUTES: dict[str, str] = {
    **{attr: attr for attr in FIELD_NAMES},
    **{name: attr for attr, name in FIELD_NAMES.items()},
}


def resolve_field(name: str) -> str:
    """Map a field name (attribute or persisted form) to its attribute."""
    try:
        return _ATTRIBUTES[name]
    except KeyError:
        raise InvalidRecord(f"Unknown field: {name}") from None


def _sort_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (dict, list)):
        return str(value)
    return value


def sort_records(
    records: list[TestCaseRecord], attr: str, reverse: bool = False
) -> list[TestCaseRecord]:
    """Sort by one field; records without a value come last in either direction."""
    present = [r for r in records if getattr(r, attr) is not None]
    missing = [r for r in records if getattr(r, attr) is None]
    present.sort(key=lambda r: _sort_value(getattr(r, attr)), reverse=reverse)
    return present + missing


class RecordView:
    """
    Lazy, restartable sequence of records.

    Each iteration takes a fresh snapshot of the partition under the read
    lock, then filters and copies records one at a time.
    """

    def __init__(
        self,
        store: RecordStore,
        record_filter: RecordFilter,
        sort_key: Optional[str] = None,
        reverse: bool = False,
        archived: bool = False,
    ) -> None:
        self._store = store
        self._filter = record_filter
        self._sort_attr = resolve_field(sort_key) if sort_key else None
        self._reverse = reverse
        self._archived = archived

    def __iter__(self) -> Iterator[TestCaseRecord]:
        rows = self._store._snapshot(self._archived)
        if self._sort_attr:
            rows = sort_records(rows, self._sort_attr, self._reverse)
        elif self._reverse:
            rows.reverse()
        for record in rows:
            if self._filter.matches(record):
                yield record.copy()

    def ids(self) -> list[str]:
        return [record.id for record in self]


class RecordStore:
    """
    In-memory table of test-case records, optionally backed by a file.

    Provides:
    - Unique ids across active and archived records
    - Partial updates validated against the execution-state invariants
    - Archival instead of deletion
    - Append-only execution history
    """

    def __init__(
        self,
        path: Optional[Path] = None,
        autosave: bool = True,
        indent: int = 2,
    ) -> None:
        """
        Initialize an empty store.

        Args:
            path: Store file used by save(); None keeps the store in memory
            autosave: Save after every successful mutation when a path is set
            indent: JSON indentation for the store file
        """
        self.path = Path(path) if path is not None else None
        self.autosave = autosave
        self.indent = indent
        self._records: dict[str, TestCaseRecord] = {}
        self._archived: dict[str, TestCaseRecord] = {}
        self._events: list[ExecutionEvent] = []
        self._lock = ReadWriteLock()
        self._tx_depth = 0

    @classmethod
    def open(cls, path: Path, autosave: bool = True, indent: int = 2) -> RecordStore:
        """Create a store backed by ``path``, loading it if it exists."""
        store = cls(path=path, autosave=autosave, indent=indent)
        document = read_store(store.path)
        if document is not None:
            store._load(document)
        return store

    def _load(self, document: StoreDocument) -> None:
        with self._lock.write():
            records: dict[str, TestCaseRecord] = {}
            archived: dict[str, TestCaseRecord] = {}
            for partition, rows in ((records, document.records), (archived, document.archived)):
                for record in rows:
                    if record.id in records or record.id in archived:
                        raise PersistenceError(
                            f"Duplicate id in store file: {record.id}", case_id=record.id
                        )
                    try:
                        record.check_execution_state()
                    except InvalidTransition as e:
                        raise PersistenceError(
                            f"Inconsistent record in store file: {e.message}",
                            case_id=record.id,
                        ) from e
                    partition[record.id] = record
            self._records = records
            self._archived = archived
            self._events = list(document.executions)

    # Locking and transactions

    @contextmanager
    def read_lock(self) -> Generator[None, None, None]:
        with self._lock.read():
            yield

    @contextmanager
    def transaction(self) -> Generator[None, None, None]:
        """
        Run a group of mutations as one exclusive, all-or-nothing step.

        Nested transactions join the outermost one. The store is saved once
        when the outermost transaction completes; if anything fails, including
        the save, every change made inside the transaction is undone.
        """
        with self._lock.write():
            records = dict(self._records)
            archived = dict(self._archived)
            n_events = len(self._events)
            self._tx_depth += 1
            try:
                yield
                if self._tx_depth == 1 and self.autosave and self.path is not None:
                    self._save_locked(self.path)
            except Exception:
                self._records = records
                self._archived = archived
                del self._events[n_events:]
                raise
            finally:
                self._tx_depth -= 1

    def save(self, path: Optional[Path] = None) -> Path:
        """
        Write the store to ``path`` (default: the store's own path).

        Raises:
            PersistenceError: If no path is known or the write fails
        """
        target = Path(path) if path is not None else self.path
        if target is None:
            raise PersistenceError("No store path configured")
        with self._lock.write():
            self._save_locked(target)
        return target

    def _save_locked(self, path: Path) -> None:
        document = StoreDocument(
            records=list(self._records.values()),
            archived=list(self._archived.values()),
            executions=list(self._events),
        )
        write_store(path, document, indent=self.indent)

    def _snapshot(self, archived: bool = False) -> list[TestCaseRecord]:
        with self._lock.read():
            partition = self._archived if archived else self._records
            return list(partition.values())

    # Record operations

    def create(self, record: Union[TestCaseRecord, dict]) -> TestCaseRecord:
        """
        Insert a new record with status NotRun.

        Execution fields on the input (status, actualResult, testedBy,
        dateExecuted) are cleared; executions are recorded separately.

        Raises:
            InvalidRecord: If the record has no usable id
            DuplicateId: If the id is already in use (active or archived)
        """
        record = self._coerce(record)
        record.status = ExecutionStatus.NOT_RUN
        record.actual_result = None
        record.tested_by = None
        record.date_executed = None

        with self.transaction():
            self._insert(record)

        logger.info("record_created", case_id=record.id, title=record.title)
        return record.copy()

    def restore(self, record: Union[TestCaseRecord, dict]) -> TestCaseRecord:
        """
        Insert a record keeping its execution state, as read from an export.

        Raises:
            InvalidRecord: If the record has no usable id
            DuplicateId: If the id is already in use
            InvalidTransition: If its execution fields are inconsistent
        """
        record = self._coerce(record)
        record.check_execution_state()

        with self.transaction():
            self._insert(record)

        logger.info("record_restored", case_id=record.id, status=record.status.value)
        return record.copy()

    def _coerce(self, record: Union[TestCaseRecord, dict]) -> TestCaseRecord:
        if isinstance(record, dict):
            return TestCaseRecord.from_dict(record)
        if not isinstance(record, TestCaseRecord):
            raise InvalidRecord(f"Expected a TestCaseRecord, got {type(record).__name__}")
        # Same field normalisation as records read from JSON
        try:
            data = record.to_dict()
        except (AttributeError, TypeError) as e:
            raise InvalidRecord(f"Malformed test case: {e}", case_id=record.id) from e
        return TestCaseRecord.from_dict(data)

    def _insert(self, record: TestCaseRecord) -> None:
        if record.id in self._records or record.id in self._archived:
            raise DuplicateId(f"Test case {record.id} already exists", case_id=record.id)
        self._records[record.id] = record

    def get(self, case_id: str) -> TestCaseRecord:
        """
        Get a record by id, looking in the archive if it is not active.

        Raises:
            NotFound: If no record has this id
        """
        with self._lock.read():
            record = self._records.get(case_id) or self._archived.get(case_id)
            if record is None:
                raise NotFound(f"Test case {case_id} not found", case_id=case_id)
            return record.copy()

    def exists(self, case_id: str) -> bool:
        with self._lock.read():
            return case_id in self._records or case_id in self._archived

    def is_archived(self, case_id: str) -> bool:
        with self._lock.read():
            return case_id in self._archived

    def update(self, case_id: str, patch: dict[str, Any]) -> TestCaseRecord:
        """
        Apply a partial change to an active record.

        Args:
            case_id: Record to change
            patch: Field name (attribute or persisted form) -> new value

        Returns:
            The updated record

        The record is looked up before the patch is checked, so an unknown
        id is always NotFound.

        Raises:
            NotFound: If the record does not exist
            InvalidRecord: If the patch names an unknown field or changes the id
            InvalidStatus: If the patch carries an unknown status
            InvalidTransition: If actualResult is set without status, the
                execution fields end up inconsistent, or the record is archived
        """
        with self.transaction():
            if case_id in self._archived:
                raise InvalidTransition(
                    f"Test case {case_id} is archived and read-only", case_id=case_id
                )
            current = self._records.get(case_id)
            if current is None:
                raise NotFound(f"Test case {case_id} not found", case_id=case_id)

            changes = {resolve_field(name): value for name, value in patch.items()}
            if "id" in changes and changes["id"] != case_id:
                raise InvalidRecord("Test case id cannot be changed", case_id=case_id)
            if "actual_result" in changes and "status" not in changes:
                raise InvalidTransition(
                    "actualResult can only be set together with status", case_id=case_id
                )

            merged = current.to_dict()
            for attr, value in changes.items():
                if attr == "status" and isinstance(value, ExecutionStatus):
                    value = value.value
                merged[FIELD_NAMES[attr]] = value
            # date_executed may arrive as a datetime; from_dict accepts both
            updated = TestCaseRecord.from_dict(merged)
            updated.check_execution_state()

            self._records[case_id] = updated

        logger.info("record_updated", case_id=case_id, fields=sorted(changes))
        return updated.copy()

    def list(
        self,
        record_filter: Optional[RecordFilter] = None,
        sort_key: Optional[str] = None,
        reverse: bool = False,
    ) -> RecordView:
        """
        Active records matching the filter, in insertion order by default.

        Raises:
            InvalidRecord: If sort_key is not a record field
        """
        return RecordView(self, record_filter or RecordFilter(), sort_key, reverse)

    def list_archived(
        self,
        record_filter: Optional[RecordFilter] = None,
        sort_key: Optional[str] = None,
        reverse: bool = False,
    ) -> RecordView:
        """Archived records matching the filter, in archival order by default."""
        return RecordView(
            self, record_filter or RecordFilter(), sort_key, reverse, archived=True
        )

    def archive(self, case_id: str) -> TestCaseRecord:
        """
        Move a record to the archival partition.

        Raises:
            NotFound: If the record does not exist
            InvalidTransition: If the record is already archived
        """
        with self.transaction():
            if case_id in self._archived:
                raise InvalidTransition(
                    f"Test case {case_id} is already archived", case_id=case_id
                )
            record = self._records.pop(case_id, None)
            if record is None:
                raise NotFound(f"Test case {case_id} not found", case_id=case_id)
            self._archived[case_id] = record

        logger.info("record_archived", case_id=case_id)
        return record.copy()

    # Execution history

    def append_event(self, event: ExecutionEvent) -> None:
        with self.transaction():
            self._events.append(event)

    def events(self, case_id: Optional[str] = None) -> list[ExecutionEvent]:
        """Execution history, oldest first, optionally for one case."""
        with self._lock.read():
            return [e for e in self._events if case_id is None or e.case_id == case_id]

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._records)

    def __contains__(self, case_id: object) -> bool:
        with self._lock.read():
            return case_id in self._records
