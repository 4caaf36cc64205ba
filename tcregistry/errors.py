"""Exceptions raised by the record store and registry service.

Every error leaves the store exactly as it was before the failed call.
"""

from __future__ import annotations

from typing import Optional


class RegistryError(Exception):
    """Base class for all registry errors."""

    def __init__(self, message: str, case_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.case_id = case_id

    def to_dict(self) -> dict:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "case_id": self.case_id,
        }


class NotFound(RegistryError):
    """No record with the given id exists."""


class DuplicateId(RegistryError):
    """A record with the given id already exists (active or archived)."""


class InvalidTransition(RegistryError):
    """The requested change would break the execution-state invariants."""


class InvalidStatus(RegistryError):
    """A status value outside the ExecutionStatus enumeration."""


class InvalidRecord(RegistryError):
    """A record or patch that does not fit the test-case schema."""


class PersistenceError(RegistryError):
    """The store file could not be read or written."""
