"""Markdown rendering of the test-case table."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Optional

from jinja2 import DictLoader, Environment, StrictUndefined

from tcregistry.models import StatusSummary, TestCaseRecord
from tcregistry.utils.logging import get_logger

logger = get_logger("reporter.markdown")

TABLE_TEMPLATE = """\
{% if title %}
# {{ title }}

{% endif %}
| ID | Title | Steps | Expected Result | Actual Result | Status | Tested By | Date Executed |
|----|-------|-------|-----------------|---------------|--------|-----------|---------------|
{% for r in records %}
| {{ r.id | cell }} | {{ r.title | cell }} | {{ r.steps | steps }} | {{ r.expected_result | cell }} | {{ r.actual_result | cell }} | {{ r.status.value }} | {{ r.tested_by | cell }} | {{ r.date_executed | date }} |
{% endfor %}
{% if summary %}

## Summary

| Status | Count |
|--------|-------|
{% for status, count in summary.counts.items() %}
| {{ status.value }} | {{ count }} |
{% endfor %}

Total: {{ summary.total }}, executed: {{ summary.executed }}, coverage: {{ "%.1f" | format(summary.coverage * 100) }}%, pass rate: {{ "%.1f" | format(summary.pass_rate * 100) }}%
{% endif %}
"""


def _cell(value: Any) -> str:
    """Make a value safe for a single markdown table cell."""
    if value is None:
        return ""
    text = str(value).replace("|", "\\|")
    return "<br>".join(line.strip() for line in text.splitlines())


def _steps(steps: list[str]) -> str:
    return "<br>".join(f"{i}. {_cell(step)}" for i, step in enumerate(steps, start=1))


def _date(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else ""


class MarkdownReporter:
    """Renders test cases as the markdown table used for test documentation."""

    def __init__(self) -> None:
        self.env = Environment(
            loader=DictLoader({"table.md": TABLE_TEMPLATE}),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )
        self.env.filters["cell"] = _cell
        self.env.filters["steps"] = _steps
        self.env.filters["date"] = _date

    def render(
        self,
        records: Iterable[TestCaseRecord],
        summary: Optional[StatusSummary] = None,
        title: str = "",
    ) -> str:
        """
        Render records (and optionally their summary) as markdown.

        Args:
            records: Test cases, one table row each
            summary: Status summary appended below the table
            title: Optional heading

        Returns:
            Markdown text
        """
        rows = list(records)
        template = self.env.get_template("table.md")
        output = template.render(records=rows, summary=summary, title=title)
        logger.debug("markdown_rendered", rows=len(rows), has_summary=summary is not None)
        return output


def render_markdown(
    records: Iterable[TestCaseRecord],
    summary: Optional[StatusSummary] = None,
    title: str = "",
) -> str:
    return MarkdownReporter().render(records, summary=summary, title=title)
