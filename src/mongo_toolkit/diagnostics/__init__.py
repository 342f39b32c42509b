"""Diagnostic engine for mongo-toolkit.

This package defines the check result and issue descriptor models, the
per-run diagnostic context with its memoized data sources, the issue
registry and the runner that executes one check against a deployment.
"""

from .context import DiagnosticContext, resolve_options
from .models import CheckResult, CheckStatus, Category, IssueDescriptor
from .registry import IssueRegistry, build_registry, default_registry
from .runner import run_issue
from .sources import DataSource, DataSourceCache, SlotState

__all__ = [
    "Category",
    "CheckResult",
    "CheckStatus",
    "DataSource",
    "DataSourceCache",
    "DiagnosticContext",
    "IssueDescriptor",
    "IssueRegistry",
    "SlotState",
    "build_registry",
    "default_registry",
    "resolve_options",
    "run_issue",
]
