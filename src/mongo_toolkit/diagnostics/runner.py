"""Single-shot execution of one diagnostic check.

The runner acquires a session from the connection provider, builds a
fresh :class:`DiagnosticContext` for the check, executes it through the
descriptor's guarded entry point and releases the session on every exit
path.  A :class:`~mongo_toolkit.errors.DeploymentConnectionError` raised
while acquiring the session is the only failure that propagates.
"""

from __future__ import annotations

from typing import Any, Callable, ContextManager, Mapping, Optional

from ..db.client import MongoHandles, mongo_session
from ..logging import get_logger
from .context import DiagnosticContext
from .models import CheckResult, IssueDescriptor

logger = get_logger(__name__)

SessionFactory = Callable[..., ContextManager[MongoHandles]]


def run_issue(
    descriptor: IssueDescriptor,
    *,
    uri: Optional[str],
    database: str,
    options: Optional[Mapping[str, Any]] = None,
    timeout_ms: Optional[int] = None,
    session_factory: Optional[SessionFactory] = None,
) -> CheckResult:
    """Run ``descriptor`` against the deployment at ``uri``.

    Args:
        descriptor: The check to execute.
        uri: MongoDB connection string.
        database: Target database for database-scoped checks.
        options: Caller-supplied option overrides (see
            :func:`~mongo_toolkit.diagnostics.context.resolve_options`).
        timeout_ms: Optional server-selection timeout override.
        session_factory: Replacement for :func:`mongo_session`, used by
            tests to supply fake handles.

    Returns:
        The check's :class:`CheckResult`.

    Raises:
        DeploymentConnectionError: If the deployment cannot be reached.
        ConfigError: If the URI is missing or an option value is invalid.
    """
    factory = session_factory or mongo_session
    logger.debug("Running %s against database %s", descriptor.id, database)
    with factory(uri, database, timeout_ms=timeout_ms) as handles:
        context = DiagnosticContext.for_issue(handles, descriptor, options)
        result = descriptor.execute(context)
    logger.debug("%s finished with status %s", descriptor.id, result.status)
    return result
