"""Command-line interface for mongo-toolkit.

The CLI is built with Click.  It exposes four commands:

* ``categories`` - list issue categories with their issue counts.
* ``list`` - list issues, optionally filtered by category.
* ``describe`` - show metadata for one issue.
* ``run`` - execute one issue against a MongoDB deployment.

Exit codes for ``run``: 0 when the check produced a result, 1 for an
unknown issue id or when the deployment could not be reached, and 2 in
``--strict`` mode when the status is ``critical`` or ``error``.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

import click

from . import __version__
from .config import DEFAULT_DATABASE, URI_ENV_VAR
from .diagnostics.models import CheckResult, IssueDescriptor
from .diagnostics.registry import IssueRegistry, default_registry
from .diagnostics.runner import run_issue
from .errors import ConfigError, DeploymentConnectionError
from .logging import configure_logging
from .render import (
    render_categories,
    render_issue_description,
    render_issue_list,
    render_issue_list_json,
    render_result,
)

# Statuses that fail a ``run --strict`` invocation.
STRICT_FAILURE_STATUSES = frozenset({"critical", "error"})


def _get_registry() -> IssueRegistry:
    """Return the issue registry used by the CLI.

    Factored out so tests can monkeypatch it with a custom registry.
    """
    return default_registry()


def _parse_option_pairs(pairs: Tuple[str, ...]) -> Dict[str, Any]:
    """Parse repeated ``--option KEY=VALUE`` values into a dictionary."""
    parsed: Dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise click.BadParameter(f"Expected KEY=VALUE, got {pair!r}", param_hint="--option")
        parsed[key] = value.strip()
    return parsed


def _resolve_issue(registry: IssueRegistry, issue_id: str) -> Optional[IssueDescriptor]:
    issue = registry.get(issue_id)
    if issue is None:
        click.echo(click.style(f"Unknown issue id: {issue_id}", fg="red"), err=True)
    return issue


@click.group()
@click.version_option(__version__, prog_name="mongo-toolkit")
@click.option("--debug", is_flag=True, default=False, help="Enable debug logging on stderr.")
def cli(debug: bool) -> None:
    """mongo-toolkit: single-shot MongoDB diagnostics."""
    # Without --debug, warnings still reach stderr through logging's last-resort handler.
    if debug:
        configure_logging(debug=True)


@cli.command(name="categories")
def categories() -> None:
    """List available issue categories."""
    click.echo(render_categories(_get_registry().categories))


@cli.command(name="list")
@click.argument("category", required=False)
@click.option("--json", "json_output", is_flag=True, default=False, help="Return JSON payload.")
def list_issues(category: Optional[str], json_output: bool) -> None:
    """List issues, optionally filtered by CATEGORY."""
    issues = _get_registry().list(category)
    if json_output:
        click.echo(render_issue_list_json(issues))
        return
    click.echo(render_issue_list(issues))


@cli.command(name="describe")
@click.argument("issue_id")
def describe(issue_id: str) -> None:
    """Show metadata for a specific issue (e.g. performance:slow-queries)."""
    issue = _resolve_issue(_get_registry(), issue_id)
    if issue is None:
        click.get_current_context().exit(1)
    click.echo(render_issue_description(issue))


@cli.command(name="run")
@click.argument("issue_id")
@click.option(
    "--uri",
    envvar=URI_ENV_VAR,
    required=True,
    help=f"MongoDB connection string (defaults to ${URI_ENV_VAR}).",
)
@click.option(
    "--database",
    default=DEFAULT_DATABASE,
    show_default=True,
    help="Database name to target when applicable.",
)
@click.option("--json", "json_output", is_flag=True, default=False, help="Output machine-readable JSON.")
@click.option("--slow-ms", type=float, default=None, help="Override slow query threshold (ms).")
@click.option(
    "--threshold-seconds",
    type=float,
    default=None,
    help="Override long-running operation threshold (seconds).",
)
@click.option(
    "--threshold",
    type=float,
    default=None,
    help="Generic threshold (seconds or ms depending on issue).",
)
@click.option(
    "--option",
    "option_pairs",
    multiple=True,
    metavar="KEY=VALUE",
    help="Override any option declared by the issue (repeatable).",
)
@click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Exit with status 2 when the result is critical or error.",
)
def run(
    issue_id: str,
    uri: str,
    database: str,
    json_output: bool,
    slow_ms: Optional[float],
    threshold_seconds: Optional[float],
    threshold: Optional[float],
    option_pairs: Tuple[str, ...],
    strict: bool,
) -> None:
    """Execute a diagnostic issue against a MongoDB deployment."""
    ctx = click.get_current_context()
    issue = _resolve_issue(_get_registry(), issue_id)
    if issue is None:
        ctx.exit(1)

    overrides = _parse_option_pairs(option_pairs)
    # Dedicated flags take precedence over the same key given via --option.
    overrides.update(
        {
            key: value
            for key, value in (
                ("slow_ms", slow_ms),
                ("threshold_seconds", threshold_seconds),
                ("threshold", threshold),
            )
            if value is not None
        }
    )

    try:
        result = run_issue(issue, uri=uri, database=database, options=overrides)
    except (DeploymentConnectionError, ConfigError) as exc:
        click.echo(render_result(issue, CheckResult(status="error", summary=str(exc)), json_output))
        ctx.exit(1)

    click.echo(render_result(issue, result, json_output))
    if strict and result.status in STRICT_FAILURE_STATUSES:
        ctx.exit(2)
