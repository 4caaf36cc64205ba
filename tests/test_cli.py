"""Tests for the command-line interface."""

import json

import pytest
from click.testing import CliRunner

from tcregistry.cli import cli, parse_assignment
from tcregistry.errors import InvalidRecord
from tcregistry.utils.result import ExitCode


@pytest.fixture
def run(tmp_path, monkeypatch):
    monkeypatch.delenv("TCREGISTRY_STORE", raising=False)
    store_path = tmp_path / "cases.json"
    runner = CliRunner()

    def invoke(*args):
        result = runner.invoke(
            cli,
            [
                "--config", str(tmp_path / "config"),
                "--store", str(store_path),
                "--log-level", "error",
                *args,
            ],
        )
        payload = None
        if result.output.strip().startswith("{"):
            payload = json.loads(result.output)
        return result, payload

    invoke.store_path = store_path
    return invoke


def create_login_case(run):
    return run(
        "create", "--id", "TC001", "--title", "Login success",
        "--step", "open login", "--step", "enter creds", "--step", "submit",
        "--expected", "redirect to dashboard",
    )


def test_create_and_show(run):
    result, payload = create_login_case(run)
    assert result.exit_code == 0, result.output
    assert payload["records"][0]["status"] == "NotRun"

    result, payload = run("show", "TC001")
    assert result.exit_code == 0
    assert payload["record"]["steps"] == ["open login", "enter creds", "submit"]
    assert payload["archived"] is False
    assert run.store_path.exists()


def test_duplicate_create_exit_code(run):
    create_login_case(run)
    result, payload = create_login_case(run)
    assert result.exit_code == ExitCode.DUPLICATE_ID
    assert payload["error"] == "DuplicateId"
    assert payload["case_id"] == "TC001"


def test_create_requires_id_or_file(run):
    result, payload = run("create", "--title", "orphan")
    assert result.exit_code == ExitCode.INVALID_RECORD


def test_create_from_file(run, tmp_path):
    source = tmp_path / "cases.json.in"
    source.write_text(json.dumps([
        {"id": "TC001", "title": "Login", "steps": ["a"]},
        {"id": "TC002", "title": "Logout", "steps": ["b"]},
    ]))

    result, payload = run("create", "--from-file", str(source))

    assert result.exit_code == 0, result.output
    assert [r["id"] for r in payload["records"]] == ["TC001", "TC002"]


def test_record_execution_flow(run):
    create_login_case(run)

    result, payload = run(
        "record", "TC001", "--status", "Pass",
        "--actual", "redirected correctly", "--tested-by", "alice",
    )

    assert result.exit_code == 0, result.output
    record = payload["record"]
    assert record["status"] == "Pass"
    assert record["testedBy"] == "alice"
    assert record["dateExecuted"]

    _, payload = run("history", "TC001")
    assert len(payload["executions"]) == 1

    _, payload = run("summary")
    assert payload["summary"]["counts"]["Pass"] == 1
    assert payload["summary"]["coverage"] == 1.0


def test_record_unknown_case(run):
    result, payload = run("record", "TC999", "--status", "Pass", "--tested-by", "alice")
    assert result.exit_code == ExitCode.NOT_FOUND
    assert payload["error"] == "NotFound"


def test_record_invalid_status(run):
    create_login_case(run)
    result, payload = run("record", "TC001", "--status", "Maybe", "--tested-by", "alice")
    assert result.exit_code == ExitCode.INVALID_STATUS


def test_update(run):
    create_login_case(run)

    result, payload = run(
        "update", "TC001",
        "--set", "title=Login via SSO",
        "--set", 'steps=["open sso", "approve"]',
        "--set", "comments=null",
    )

    assert result.exit_code == 0, result.output
    assert payload["record"]["title"] == "Login via SSO"
    assert payload["record"]["steps"] == ["open sso", "approve"]


def test_update_actual_result_without_status(run):
    create_login_case(run)
    result, _ = run("update", "TC001", "--set", "actualResult=done")
    assert result.exit_code == ExitCode.INVALID_TRANSITION


def test_list_archive_and_reset(run):
    create_login_case(run)
    run("create", "--id", "TC002", "--title", "Logout", "--step", "click logout")

    run("archive", "TC001")

    _, payload = run("list")
    assert [r["id"] for r in payload["records"]] == ["TC002"]
    _, payload = run("list", "--archived")
    assert [r["id"] for r in payload["records"]] == ["TC001"]
    _, payload = run("show", "TC001")
    assert payload["archived"] is True

    run("record", "TC002", "--status", "Blocked", "--tested-by", "bob")
    _, payload = run("list", "--status", "Blocked")
    assert payload["count"] == 1
    result, payload = run("reset", "TC002")
    assert result.exit_code == 0
    assert payload["record"]["status"] == "NotRun"


def test_supersede(run, tmp_path):
    create_login_case(run)
    replacement = tmp_path / "v2.json"
    replacement.write_text(json.dumps({"id": "TC001-v2", "title": "Login (SSO)", "steps": ["sso"]}))

    result, payload = run("supersede", "TC001", "--from-file", str(replacement))

    assert result.exit_code == 0, result.output
    _, payload = run("list")
    assert [r["id"] for r in payload["records"]] == ["TC001-v2"]


def test_export_markdown(run):
    create_login_case(run)
    result, _ = run("export", "--format", "markdown", "--with-summary", "--title", "Smoke")
    assert result.exit_code == 0
    assert result.output.startswith("# Smoke")
    assert "| TC001 | Login success |" in result.output
    assert "## Summary" in result.output


def test_export_import_jsonl(run, tmp_path):
    create_login_case(run)
    run("record", "TC001", "--status", "Fail", "--actual", "500", "--tested-by", "alice")
    exported = tmp_path / "export.jsonl"

    result, payload = run("export", "--format", "jsonl", "--output", str(exported))
    assert result.exit_code == 0, result.output
    assert payload["records"] == 1

    run.store_path.unlink()
    result, payload = run("import", str(exported), "--preserve-state")
    assert result.exit_code == 0, result.output
    assert payload == {"status": "success", "imported": 1, "skipped": 0}

    _, payload = run("show", "TC001")
    assert payload["record"]["status"] == "Fail"

    result, payload = run("import", str(exported), "--skip-existing")
    assert payload["skipped"] == 1


def test_changes_saved_with_autosave_off(run, tmp_path):
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    (config_dir / "registry.yaml").write_text("storage:\n  autosave: false\n")

    result, payload = create_login_case(run)
    assert result.exit_code == 0, result.output
    assert run.store_path.exists()

    run("record", "TC001", "--status", "Pass", "--tested-by", "alice")
    run("create", "--id", "TC002", "--title", "Logout", "--step", "click logout")
    run("archive", "TC002")

    _, payload = run("show", "TC001")
    assert payload["record"]["status"] == "Pass"
    _, payload = run("list", "--archived")
    assert [r["id"] for r in payload["records"]] == ["TC002"]


def test_bad_config(run, tmp_path):
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    (config_dir / "registry.yaml").write_text("logging:\n  format: xml\n")

    result, payload = run("list")

    assert result.exit_code == ExitCode.CONFIG_ERROR
    assert payload["error"] == "ConfigError"


def test_parse_assignment():
    assert parse_assignment("title=Login=SSO") == ("title", "Login=SSO")
    assert parse_assignment("testData={\"user\": \"alice\"}") == ("testData", {"user": "alice"})
    assert parse_assignment("comments=null") == ("comments", None)
    with pytest.raises(InvalidRecord):
        parse_assignment("no-equals-sign")
    with pytest.raises(InvalidRecord):
        parse_assignment("steps=[broken")
