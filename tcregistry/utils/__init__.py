"""Utility modules for tcregistry."""

from tcregistry.utils.atomic import (
    AtomicWriteError,
    atomic_write,
    atomic_write_json,
    atomic_write_text,
)
from tcregistry.utils.logging import (
    configure_logging,
    get_correlation_id,
    get_logger,
    set_actor,
)
from tcregistry.utils.result import (
    ConfigError,
    Err,
    ExitCode,
    Ok,
    Result,
    exit_code_for,
)

__all__ = [
    # Logging
    "configure_logging",
    "get_logger",
    "get_correlation_id",
    "set_actor",
    # Atomic writes
    "AtomicWriteError",
    "atomic_write",
    "atomic_write_json",
    "atomic_write_text",
    # Results
    "Ok",
    "Err",
    "Result",
    "ConfigError",
    "ExitCode",
    "exit_code_for",
]
