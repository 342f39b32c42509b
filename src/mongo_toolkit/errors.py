"""Error taxonomy for the diagnostic engine.

Only :class:`DeploymentConnectionError` is allowed to abort a run.  Every
other failure is converted into a :class:`~mongo_toolkit.diagnostics.models.CheckResult`
at the check boundary.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

ConnectionErrorKind = Literal["server_selection", "authentication", "configuration", "connection"]
CommandErrorKind = Literal["command", "permission"]


class ToolkitError(Exception):
    """Base exception for mongo-toolkit."""


class ConfigError(ToolkitError):
    """Raised when the registry, options or CLI configuration are invalid."""


class DeploymentConnectionError(ToolkitError):
    """Raised when the administrative session cannot be established.

    The ``kind`` tag is assigned by the connection provider at the point
    of failure so callers never need to inspect driver exception classes
    or message text.
    """

    def __init__(self, message: str, kind: ConnectionErrorKind = "connection") -> None:
        super().__init__(message)
        self.kind: ConnectionErrorKind = kind


class CommandError(ToolkitError):
    """Raised when the deployment rejects an administrative command."""

    def __init__(
        self,
        message: str,
        *,
        source: Optional[str] = None,
        kind: CommandErrorKind = "command",
    ) -> None:
        super().__init__(message)
        self.source = source
        self.kind: CommandErrorKind = kind



class DataUnavailable(ToolkitError):
    """Raised when a probed feature is legitimately off or inapplicable.

    Nothing actually failed, so the check boundary reports it with the
    carried ``status`` (``info`` or ``warn``) instead of ``error``.
    """

    def __init__(
        self,
        message: str,
        *,
        status: Literal["info", "warn"] = "info",
        details: Optional[Any] = None,
        recommendation: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.details = details
        self.recommendation = recommendation
