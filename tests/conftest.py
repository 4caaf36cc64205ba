"""
Shared pytest fixtures for the tcregistry test suite.

Provides:
    - clock: Controllable clock for execution timestamps
    - store: Empty in-memory RecordStore
    - service: RegistryService over ``store`` using ``clock``
    - login_case: The TC001 "Login success" record as a dict
"""

import sys
from datetime import datetime, timedelta, timezone

import pytest

from tcregistry.registry import RegistryService
from tcregistry.store import RecordStore
from tcregistry.utils.logging import configure_logging


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture(autouse=True)
def _logging():
    """Send logs to the current stderr; CLI tests reconfigure it per invocation."""
    configure_logging(level="debug", format_type="text", stream=sys.stderr)
    yield


@pytest.fixture
def clock():
    return FixedClock(datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc))


@pytest.fixture
def store():
    return RecordStore()


@pytest.fixture
def service(store, clock):
    return RegistryService(store=store, clock=clock)


@pytest.fixture
def login_case():
    return {
        "id": "TC001",
        "title": "Login success",
        "steps": ["open login", "enter creds", "submit"],
        "expectedResult": "redirect to dashboard",
    }
