"""Reading and writing the store file and JSON Lines record exports."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from tcregistry.errors import PersistenceError, RegistryError
from tcregistry.models import ExecutionEvent, TestCaseRecord
from tcregistry.models.test_case import format_timestamp, utcnow
from tcregistry.utils.atomic import atomic_write, atomic_write_json
from tcregistry.utils.logging import get_logger

logger = get_logger("store.persistence")

STORE_FORMAT_VERSION = 1


@dataclass
class StoreDocument:
    """Contents of a store file: both partitions and the execution history."""

    records: list[TestCaseRecord] = field(default_factory=list)
    archived: list[TestCaseRecord] = field(default_factory=list)
    executions: list[ExecutionEvent] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "version": STORE_FORMAT_VERSION,
            "updatedAt": format_timestamp(utcnow()),
            "records": [r.to_dict() for r in self.records],
            "archived": [r.to_dict() for r in self.archived],
            "executions": [e.to_dict() for e in self.executions],
        }

    @classmethod
    def from_dict(cls, data: dict) -> StoreDocument:
        if not isinstance(data, dict):
            raise PersistenceError("Store file must contain a JSON object")

        version = data.get("version", STORE_FORMAT_VERSION)
        if version != STORE_FORMAT_VERSION:
            raise PersistenceError(f"Unsupported store format version: {version}")

        try:
            return cls(
                records=[TestCaseRecord.from_dict(r) for r in data.get("records", [])],
                archived=[TestCaseRecord.from_dict(r) for r in data.get("archived", [])],
                executions=[
                    ExecutionEvent.from_dict(e) for e in data.get("executions", [])
                ],
            )
        except (RegistryError, KeyError, TypeError) as e:
            raise PersistenceError(f"Invalid store file entry: {e}") from e


def read_store(path: Path) -> Optional[StoreDocument]:
    """
    Load a store file.

    Args:
        path: Store file path

    Returns:
        The parsed document, or None if the file does not exist

    Raises:
        PersistenceError: If the file is unreadable or malformed
    """
    path = Path(path)
    if not path.exists():
        logger.info("store_not_found", path=str(path))
        return None

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.error("store_load_failed", path=str(path), error=str(e))
        raise PersistenceError(f"Failed to read store file {path}: {e}") from e

    document = StoreDocument.from_dict(data)
    logger.info(
        "store_loaded",
        path=str(path),
        records=len(document.records),
        archived=len(document.archived),
        executions=len(document.executions),
    )
    return document


def write_store(path: Path, document: StoreDocument, indent: int = 2) -> None:
    """Atomically write a store file."""
    atomic_write_json(Path(path), document.to_dict(), indent=indent)
    logger.debug(
        "store_saved",
        path=str(path),
        records=len(document.records),
        archived=len(document.archived),
    )


def export_jsonl(records: Iterable[TestCaseRecord], path: Path) -> int:
    """
    Write records as JSON Lines, one record per line.

    Returns:
        Number of records written
    """
    count = 0
    with atomic_write(Path(path)) as f:
        for record in records:
            f.write(json.dumps(record.to_dict(), ensure_ascii=False))
            f.write("\n")
            count += 1

    logger.info("records_exported", path=str(path), records=count)
    return count


def import_jsonl(path: Path) -> list[TestCaseRecord]:
    """
    Read records from a JSON Lines file. Blank lines are skipped.

    Raises:
        PersistenceError: If the file cannot be read or a line is malformed
    """
    path = Path(path)
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        raise PersistenceError(f"Failed to read {path}: {e}") from e

    records = []
    for line_no, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            records.append(TestCaseRecord.from_dict(json.loads(line)))
        except json.JSONDecodeError as e:
            raise PersistenceError(f"{path}:{line_no}: invalid JSON: {e}") from e
        except RegistryError as e:
            raise PersistenceError(f"{path}:{line_no}: {e.message}") from e

    logger.info("records_imported", path=str(path), records=len(records))
    return records
