"""CLI entry point for tcregistry."""

from __future__ import annotations

import functools
import json
import sys
from pathlib import Path
from typing import Any, Callable, Optional

import click

from tcregistry import __version__
from tcregistry.config.settings import STORE_ENV_VAR, RegistryConfig, load_config
from tcregistry.errors import InvalidRecord, RegistryError
from tcregistry.models import RecordFilter, TestCaseRecord
from tcregistry.registry import RegistryService
from tcregistry.reporter import render_markdown
from tcregistry.store import export_jsonl, import_jsonl
from tcregistry.utils.logging import (
    configure_logging,
    get_correlation_id,
    get_logger,
    set_actor,
)
from tcregistry.utils.result import ExitCode, exit_code_for

DEFAULT_CONFIG = "./config"


class Context:
    """CLI context for sharing state between commands."""

    def __init__(self, config: RegistryConfig) -> None:
        self.config = config
        self.logger = get_logger("cli")
        self._service: Optional[RegistryService] = None

    @property
    def service(self) -> RegistryService:
        """Registry over the configured store file, opened on first use."""
        if self._service is None:
            self._service = RegistryService.from_config(self.config)
        return self._service

    def commit(self) -> None:
        """
        Persist the changes made by a command.

        With autosave on, every mutation has already been written. With it
        off, the command's changes are written here in one save.
        """
        if not self.config.storage.autosave:
            path = self.service.save()
            self.logger.debug("store_saved", path=str(path))


pass_context = click.make_pass_decorator(Context)


def output_json(data: dict) -> None:
    """Output JSON to stdout."""
    click.echo(json.dumps(data, indent=2, default=str))


def handle_registry_errors(command: Callable) -> Callable:
    """Report registry errors as JSON and exit with the matching code."""

    @functools.wraps(command)
    def wrapper(ctx: Context, *args: Any, **kwargs: Any) -> Any:
        try:
            return command(ctx, *args, **kwargs)
        except RegistryError as e:
            ctx.logger.warning(
                "command_failed",
                command=command.__name__,
                error=type(e).__name__,
                message=e.message,
            )
            output_json({"status": "error", **e.to_dict()})
            sys.exit(exit_code_for(e))

    return wrapper


def parse_assignment(assignment: str) -> tuple[str, Any]:
    """
    Parse a ``field=value`` pair from the command line.

    Values starting with '[' or '{' are decoded as JSON, and ``null``
    clears the field; anything else is taken as text.
    """
    name, sep, raw = assignment.partition("=")
    if not sep or not name.strip():
        raise InvalidRecord(f"Expected field=value, got {assignment!r}")

    raw = raw.strip()
    if raw == "null":
        return name.strip(), None
    if raw[:1] in ("[", "{"):
        try:
            return name.strip(), json.loads(raw)
        except json.JSONDecodeError as e:
            raise InvalidRecord(f"Invalid JSON value for {name.strip()}: {e}") from e
    return name.strip(), raw


def load_records_file(path: Path) -> list[dict]:
    """Read one record or a list of records from a JSON file."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise InvalidRecord(f"Cannot read records from {path}: {e}") from e
    return data if isinstance(data, list) else [data]


def build_filter(statuses: tuple[str, ...], title: Optional[str]) -> RecordFilter:
    return RecordFilter.of(list(statuses) or None, title)


@click.group()
@click.option(
    "--config",
    type=click.Path(exists=False, path_type=Path),
    default=DEFAULT_CONFIG,
    help="Path to config directory",
)
@click.option(
    "--store",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar=STORE_ENV_VAR,
    default=None,
    help="Path to the store file (overrides config)",
)
@click.option(
    "--actor",
    envvar="TCREGISTRY_ACTOR",
    default=None,
    help="Name of the user making changes (added to logs)",
)
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warn", "error"], case_sensitive=False),
    default=None,
    help="Logging level (overrides config)",
)
@click.option(
    "--log-format",
    type=click.Choice(["json", "text"], case_sensitive=False),
    default=None,
    help="Log format (overrides config)",
)
@click.version_option(version=__version__)
@click.pass_context
def cli(
    ctx: click.Context,
    config: Path,
    store: Optional[Path],
    actor: Optional[str],
    log_level: Optional[str],
    log_format: Optional[str],
) -> None:
    """
    Test-case registry - track manual test cases and their executions.

    Stores test-case records (steps, expected and actual results, status),
    records who executed them and when, and reports execution coverage.
    """
    result = load_config(config)
    if result.is_err():
        configure_logging(level=log_level or "info", format_type=log_format or "json")
        output_json({"status": "error", "error": "ConfigError", "message": str(result.unwrap_err())})
        ctx.exit(ExitCode.CONFIG_ERROR)

    registry_config = result.unwrap().with_store_path(store)

    configure_logging(
        level=log_level or registry_config.logging.level,
        format_type=log_format or registry_config.logging.format,
    )
    get_correlation_id()
    if actor:
        set_actor(actor)

    ctx.obj = Context(config=registry_config)


@cli.command()
@click.option("--id", "case_id", help="Test case id")
@click.option("--title", default="", help="Short description")
@click.option("--description", default="", help="What the case verifies")
@click.option("--preconditions", default="", help="Required starting state")
@click.option("--step", "steps", multiple=True, help="Test step (repeat in order)")
@click.option("--test-data", default="", help="Input values")
@click.option("--expected", default="", help="Expected result")
@click.option("--comments", default=None, help="Notes")
@click.option(
    "--from-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="JSON file with one record or a list of records",
)
@pass_context
@handle_registry_errors
def create(
    ctx: Context,
    case_id: Optional[str],
    title: str,
    description: str,
    preconditions: str,
    steps: tuple[str, ...],
    test_data: str,
    expected: str,
    comments: Optional[str],
    from_file: Optional[Path],
) -> None:
    """Create test cases (status NotRun)."""
    if from_file is not None:
        records = [TestCaseRecord.from_dict(item) for item in load_records_file(from_file)]
    elif case_id:
        records = [
            TestCaseRecord(
                id=case_id,
                title=title,
                description=description,
                preconditions=preconditions,
                steps=list(steps),
                test_data=test_data,
                expected_result=expected,
                comments=comments,
            )
        ]
    else:
        raise InvalidRecord("Either --id or --from-file is required")

    service = ctx.service
    with service.store.transaction():
        created = [service.create(record) for record in records]
    ctx.commit()

    output_json({
        "status": "success",
        "message": f"Created {len(created)} test case(s)",
        "records": [r.to_dict() for r in created],
    })


@cli.command()
@click.argument("case_id")
@pass_context
@handle_registry_errors
def show(ctx: Context, case_id: str) -> None:
    """Show a test case (active or archived)."""
    record = ctx.service.get(case_id)
    output_json({
        "status": "success",
        "archived": ctx.service.store.is_archived(case_id),
        "record": record.to_dict(),
    })


@cli.command()
@click.argument("case_id")
@click.option(
    "--set",
    "assignments",
    multiple=True,
    required=True,
    help="field=value to change (repeatable); JSON for lists/objects, null to clear",
)
@pass_context
@handle_registry_errors
def update(ctx: Context, case_id: str, assignments: tuple[str, ...]) -> None:
    """Change fields of a test case."""
    patch = dict(parse_assignment(a) for a in assignments)
    record = ctx.service.update(case_id, patch)
    ctx.commit()
    output_json({"status": "success", "record": record.to_dict()})


@cli.command(name="list")
@click.option("--status", "statuses", multiple=True, help="Only this status (repeatable)")
@click.option("--title", default=None, help="Only titles containing this text")
@click.option("--sort", "sort_key", default=None, help="Sort by this field")
@click.option("--reverse", is_flag=True, default=False, help="Reverse the order")
@click.option("--archived", is_flag=True, default=False, help="List archived cases instead")
@pass_context
@handle_registry_errors
def list_cases(
    ctx: Context,
    statuses: tuple[str, ...],
    title: Optional[str],
    sort_key: Optional[str],
    reverse: bool,
    archived: bool,
) -> None:
    """List test cases."""
    record_filter = build_filter(statuses, title)
    store = ctx.service.store
    if archived:
        view = store.list_archived(record_filter, sort_key=sort_key, reverse=reverse)
    else:
        view = store.list(record_filter, sort_key=sort_key, reverse=reverse)

    records = [r.to_dict() for r in view]
    output_json({"status": "success", "count": len(records), "records": records})


@cli.command()
@click.argument("case_id")
@pass_context
@handle_registry_errors
def archive(ctx: Context, case_id: str) -> None:
    """Archive a test case (kept for audit, hidden from list)."""
    record = ctx.service.archive(case_id)
    ctx.commit()
    output_json({"status": "success", "message": f"Archived {case_id}", "record": record.to_dict()})


@cli.command()
@click.argument("old_id")
@click.option(
    "--from-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="JSON file with the replacement record",
)
@pass_context
@handle_registry_errors
def supersede(ctx: Context, old_id: str, from_file: Path) -> None:
    """Archive a test case and create its replacement."""
    records = load_records_file(from_file)
    if len(records) != 1:
        raise InvalidRecord(f"Expected exactly one replacement record, got {len(records)}")
    record = ctx.service.supersede(old_id, TestCaseRecord.from_dict(records[0]))
    ctx.commit()
    output_json({
        "status": "success",
        "message": f"{old_id} superseded by {record.id}",
        "record": record.to_dict(),
    })


@cli.command()
@click.argument("case_id")
@click.option("--status", required=True, help="Pass, Fail or Blocked")
@click.option("--actual", "actual_result", default=None, help="Observed result")
@click.option("--tested-by", required=True, help="Who executed the case")
@pass_context
@handle_registry_errors
def record(
    ctx: Context,
    case_id: str,
    status: str,
    actual_result: Optional[str],
    tested_by: str,
) -> None:
    """Record the outcome of executing a test case."""
    set_actor(tested_by)
    updated = ctx.service.record_execution(case_id, status, actual_result, tested_by)
    ctx.commit()
    output_json({"status": "success", "record": updated.to_dict()})


@cli.command()
@click.argument("case_id")
@pass_context
@handle_registry_errors
def reset(ctx: Context, case_id: str) -> None:
    """Return a test case to NotRun (history is kept)."""
    updated = ctx.service.reset(case_id)
    ctx.commit()
    output_json({"status": "success", "record": updated.to_dict()})


@cli.command()
@click.argument("case_id")
@pass_context
@handle_registry_errors
def history(ctx: Context, case_id: str) -> None:
    """Show every recorded execution of a test case."""
    events = ctx.service.history(case_id)
    output_json({
        "status": "success",
        "case_id": case_id,
        "executions": [e.to_dict() for e in events],
    })


@cli.command()
@click.option("--status", "statuses", multiple=True, help="Only this status (repeatable)")
@click.option("--title", default=None, help="Only titles containing this text")
@pass_context
@handle_registry_errors
def summary(ctx: Context, statuses: tuple[str, ...], title: Optional[str]) -> None:
    """Show status counts and execution coverage."""
    result = ctx.service.summary(build_filter(statuses, title))
    output_json({"status": "success", "summary": result.to_dict()})


@cli.command()
@click.option(
    "--format",
    "export_format",
    type=click.Choice(["markdown", "jsonl"], case_sensitive=False),
    default="markdown",
    help="Output format",
)
@click.option(
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write to this file instead of stdout",
)
@click.option("--with-summary", is_flag=True, default=False, help="Append the status summary (markdown)")
@click.option("--title", "heading", default="", help="Heading for the markdown table")
@pass_context
@handle_registry_errors
def export(
    ctx: Context,
    export_format: str,
    output: Optional[Path],
    with_summary: bool,
    heading: str,
) -> None:
    """Export active test cases as a markdown table or JSON Lines."""
    records = list(ctx.service.list())

    if export_format == "jsonl":
        if output is not None:
            count = export_jsonl(records, output)
            output_json({"status": "success", "records": count, "output": str(output)})
        else:
            for r in records:
                click.echo(json.dumps(r.to_dict(), ensure_ascii=False))
        return

    summary_snapshot = ctx.service.summary() if with_summary else None
    text = render_markdown(records, summary=summary_snapshot, title=heading)
    if output is not None:
        from tcregistry.utils.atomic import atomic_write_text

        atomic_write_text(output, text)
        output_json({"status": "success", "records": len(records), "output": str(output)})
    else:
        click.echo(text, nl=False)


@cli.command(name="import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--preserve-state",
    is_flag=True,
    default=False,
    help="Keep execution status and results instead of resetting to NotRun",
)
@click.option("--skip-existing", is_flag=True, default=False, help="Skip ids already present")
@pass_context
@handle_registry_errors
def import_cases(
    ctx: Context,
    path: Path,
    preserve_state: bool,
    skip_existing: bool,
) -> None:
    """Import test cases from a JSON Lines file."""
    records = import_jsonl(path)
    counts = ctx.service.import_records(
        records,
        preserve_state=preserve_state,
        skip_existing=skip_existing,
    )
    ctx.commit()
    output_json({"status": "success", **counts})


def main() -> None:
    """Main entry point."""
    try:
        cli()
    except Exception as e:
        logger = get_logger("cli")
        logger.error("cli_error", error=str(e))
        sys.exit(ExitCode.GENERAL_ERROR)


if __name__ == "__main__":
    main()
