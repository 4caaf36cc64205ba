"""Result type for explicit error handling.

Configuration loading returns Ok/Err values instead of raising, so that the
CLI can report a bad config file without a traceback.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, NoReturn, TypeVar, Union

from tcregistry.errors import (
    DuplicateId,
    InvalidRecord,
    InvalidStatus,
    InvalidTransition,
    NotFound,
    PersistenceError,
    RegistryError,
)

T = TypeVar("T")  # Success type
E = TypeVar("E")  # Error type


class ResultError(Exception):
    """Raised when unwrapping a Result fails."""

    pass


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Represents a successful result."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        """Get the success value. Safe to call since this is Ok."""
        return self.value

    def unwrap_err(self) -> NoReturn:
        """Get the error value. Raises since this is Ok."""
        raise ResultError(f"Called unwrap_err on Ok value: {self.value}")

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True)
class Err(Generic[E]):
    """Represents an error result."""

    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> NoReturn:
        """Get the success value. Raises since this is Err."""
        raise ResultError(f"Called unwrap on Err value: {self.error}")

    def unwrap_err(self) -> E:
        """Get the error value. Safe to call since this is Err."""
        return self.error

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result = Union[Ok[T], Err[E]]


@dataclass(frozen=True)
class ConfigError:
    """Error in configuration."""

    field: str
    message: str

    def __str__(self) -> str:
        return f"Config error in '{self.field}': {self.message}"


class ExitCode:
    """Exit codes for CLI."""

    SUCCESS = 0
    GENERAL_ERROR = 1
    CONFIG_ERROR = 2

    # Registry errors (10-19)
    NOT_FOUND = 10
    DUPLICATE_ID = 11
    INVALID_TRANSITION = 12
    INVALID_STATUS = 13
    INVALID_RECORD = 14
    PERSISTENCE_ERROR = 15


_EXIT_CODES: dict[type, int] = {
    NotFound: ExitCode.NOT_FOUND,
    DuplicateId: ExitCode.DUPLICATE_ID,
    InvalidTransition: ExitCode.INVALID_TRANSITION,
    InvalidStatus: ExitCode.INVALID_STATUS,
    InvalidRecord: ExitCode.INVALID_RECORD,
    PersistenceError: ExitCode.PERSISTENCE_ERROR,
}


def exit_code_for(error: RegistryError) -> int:
    """Map a registry error to its CLI exit code."""
    for error_type, code in _EXIT_CODES.items():
        if isinstance(error, error_type):
            return code
    return ExitCode.GENERAL_ERROR
