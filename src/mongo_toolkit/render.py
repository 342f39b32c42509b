"""Text and JSON rendering for issue descriptors and check results.

Rendering is side-effect free: every function returns a string and the
CLI decides where to echo it.  Colors are applied with
:func:`click.style`, which the CLI strips automatically when stdout is
not a terminal.
"""

from __future__ import annotations

import json
import pprint
from datetime import date
from typing import Any, Dict, Iterable

import click

from .diagnostics.models import Category, CheckResult, IssueDescriptor

STATUS_COLORS: Dict[str, Dict[str, Any]] = {
    "ok": {"fg": "green"},
    "warn": {"fg": "yellow"},
    "critical": {"fg": "red"},
    "error": {"fg": "bright_red", "bold": True},
    "info": {"fg": "cyan"},
}


def colorize_status(status: str) -> str:
    return click.style(status.upper(), **STATUS_COLORS.get(status, {}))


def render_issue_row(issue: IssueDescriptor) -> str:
    severity = click.style(issue.severity.upper(), bold=True) if issue.severity else "n/a"
    tags = ", ".join(sorted(issue.tags)) or "-"
    return (
        f"{click.style(issue.id, fg='bright_black')}\n"
        f"  {issue.title} [{severity}]\n"
        f"  Category: {issue.category}\n"
        f"  Tags: {tags}\n"
    )


def render_issue_list(issues: Iterable[IssueDescriptor]) -> str:
    return "\n".join(render_issue_row(issue) for issue in issues)


def render_issue_list_json(issues: Iterable[IssueDescriptor]) -> str:
    return json.dumps([issue.to_dict() for issue in issues], indent=2)


def render_categories(categories: Iterable[Category]) -> str:
    return "\n".join(
        f"{click.style(category.title, bold=True)} ({category.id}) - {len(category.issues)} issue(s)"
        for category in categories
    )


def render_issue_description(issue: IssueDescriptor) -> str:
    lines = [render_issue_row(issue), issue.description or "No description provided."]
    if issue.options:
        lines.append(f"Options: {dict(issue.options)}")
    return "\n".join(lines)


def _json_default(value: Any) -> str:
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def result_to_dict(issue: IssueDescriptor, result: CheckResult) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"issue": issue.id, "title": issue.title}
    payload.update(result.model_dump())
    return payload


def render_result(issue: IssueDescriptor, result: CheckResult, as_json: bool = False) -> str:
    """Render a check result as colorized text or as a JSON document.

    In JSON output dates and datetimes found in check details are
    rendered in ISO 8601 and other BSON values (ObjectId, Timestamp) via
    ``str``.
    """
    if as_json:
        return json.dumps(result_to_dict(issue, result), indent=2, default=_json_default)

    lines = [
        f"{click.style(issue.title, bold=True)} - {colorize_status(result.status)}",
        result.summary or "No summary.",
    ]
    if result.details is not None:
        lines.append("")
        lines.append("Details:")
        lines.append(pprint.pformat(result.details, depth=4, sort_dicts=False))
    if result.recommendation:
        lines.append("")
        lines.append(f"Recommendation: {result.recommendation}")
    return "\n".join(lines)
