"""Reporting for tcregistry."""

from tcregistry.reporter.markdown import MarkdownReporter, render_markdown

__all__ = ["MarkdownReporter", "render_markdown"]
