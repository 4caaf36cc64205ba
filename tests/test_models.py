"""Tests for the record, filter and summary models."""

from datetime import datetime, timezone

import pytest

from tcregistry.errors import InvalidRecord, InvalidStatus, InvalidTransition
from tcregistry.models import (
    ExecutionEvent,
    ExecutionStatus,
    RecordFilter,
    StatusSummary,
    TestCaseRecord,
)


class TestExecutionStatus:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("Pass", ExecutionStatus.PASS),
            ("fail", ExecutionStatus.FAIL),
            ("NotRun", ExecutionStatus.NOT_RUN),
            ("not_run", ExecutionStatus.NOT_RUN),
            ("BLOCKED", ExecutionStatus.BLOCKED),
            (ExecutionStatus.PASS, ExecutionStatus.PASS),
        ],
    )
    def test_parse(self, value, expected):
        assert ExecutionStatus.parse(value) is expected

    @pytest.mark.parametrize("value", ["Passed", "", "skipped", 1, None])
    def test_parse_rejects_unknown(self, value):
        with pytest.raises(InvalidStatus):
            ExecutionStatus.parse(value)


class TestTestCaseRecord:
    def test_defaults(self):
        record = TestCaseRecord(id="TC001")
        assert record.status is ExecutionStatus.NOT_RUN
        assert record.actual_result is None
        assert record.tested_by is None
        assert record.date_executed is None
        assert not record.is_executed
        assert not record.is_executable

    def test_to_dict_uses_persisted_names(self):
        when = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)
        record = TestCaseRecord(
            id="TC001",
            title="Login success",
            steps=["open login"],
            test_data={"user": "alice"},
            expected_result="redirect",
            actual_result="redirected",
            status=ExecutionStatus.PASS,
            tested_by="alice",
            date_executed=when,
        )

        data = record.to_dict()

        assert set(data) == {
            "id", "title", "description", "preconditions", "steps", "testData",
            "expectedResult", "actualResult", "status", "comments", "testedBy",
            "dateExecuted",
        }
        assert data["status"] == "Pass"
        assert data["testData"] == {"user": "alice"}
        assert data["dateExecuted"] == "2024-03-01T09:30:00+00:00"
        assert TestCaseRecord.from_dict(data) == record

    def test_from_dict_accepts_attribute_names(self):
        record = TestCaseRecord.from_dict(
            {"id": "TC002", "expected_result": "ok", "steps": "first\n\nsecond"}
        )
        assert record.expected_result == "ok"
        assert record.steps == ["first", "second"]

    def test_from_dict_naive_timestamp_is_utc(self):
        record = TestCaseRecord.from_dict({
            "id": "TC003",
            "status": "Fail",
            "testedBy": "bob",
            "dateExecuted": "2024-03-01T10:00:00",
        })
        assert record.date_executed.tzinfo == timezone.utc

    @pytest.mark.parametrize(
        "data",
        [
            {"title": "no id"},
            {"id": ""},
            {"id": 42},
            {"id": "TC", "steps": 5},
            {"id": "TC", "testData": 3.5},
            {"id": "TC", "status": "Fail", "testedBy": "x", "dateExecuted": "yesterday"},
        ],
    )
    def test_from_dict_rejects_bad_shapes(self, data):
        with pytest.raises(InvalidRecord):
            TestCaseRecord.from_dict(data)

    def test_check_execution_state(self):
        when = datetime(2024, 3, 1, tzinfo=timezone.utc)

        TestCaseRecord(id="A").check_execution_state()
        TestCaseRecord(
            id="B", status=ExecutionStatus.PASS, tested_by="alice", date_executed=when
        ).check_execution_state()

        with pytest.raises(InvalidTransition):
            TestCaseRecord(id="C", tested_by="alice").check_execution_state()
        with pytest.raises(InvalidTransition):
            TestCaseRecord(id="D", status=ExecutionStatus.FAIL).check_execution_state()
        with pytest.raises(InvalidTransition):
            TestCaseRecord(
                id="E", tested_by="alice", date_executed=when
            ).check_execution_state()


def test_execution_event_round_trip():
    event = ExecutionEvent(
        case_id="TC001",
        status=ExecutionStatus.BLOCKED,
        actual_result="env down",
        tested_by="carol",
        date_executed=datetime(2024, 3, 1, tzinfo=timezone.utc),
    )
    assert ExecutionEvent.from_dict(event.to_dict()) == event


class TestRecordFilter:
    def test_empty_filter_matches_everything(self):
        assert RecordFilter().matches(TestCaseRecord(id="A"))

    def test_status_and_title(self):
        record = TestCaseRecord(id="A", title="Login success")
        assert RecordFilter.of("NotRun").matches(record)
        assert not RecordFilter.of(["Pass", "Fail"]).matches(record)
        assert RecordFilter.of(title="LOGIN").matches(record)
        assert not RecordFilter.of("NotRun", title="logout").matches(record)

    def test_rejects_unknown_status(self):
        with pytest.raises(InvalidStatus):
            RecordFilter.of("Done")


class TestStatusSummary:
    def test_calculate(self):
        records = [
            TestCaseRecord(id="A", status=ExecutionStatus.PASS),
            TestCaseRecord(id="B", status=ExecutionStatus.FAIL),
            TestCaseRecord(id="C"),
            TestCaseRecord(id="D", status=ExecutionStatus.PASS),
        ]

        summary = StatusSummary.calculate(records)

        assert summary.count(ExecutionStatus.PASS) == 2
        assert summary.count(ExecutionStatus.BLOCKED) == 0
        assert summary.total == 4
        assert summary.executed == 3
        assert summary.coverage == pytest.approx(0.75)
        assert summary.pass_rate == pytest.approx(2 / 3)

    def test_empty(self):
        summary = StatusSummary.calculate([])
        assert summary.total == 0
        assert summary.coverage == 0.0
        assert summary.pass_rate == 0.0
        assert summary.to_dict()["counts"] == {
            "NotRun": 0, "Pass": 0, "Fail": 0, "Blocked": 0,
        }
