"""Security and access-control checks.

Neither check has a numeric threshold; both classify by a categorical
condition on the server's configuration.
"""

from __future__ import annotations

from typing import Any, Dict, List

from pymongo.errors import PyMongoError

from ...config import SENSITIVE_ROLES
from ..context import DiagnosticContext
from ..models import CheckResult, IssueDescriptor

AUTHORIZATION_ENABLED = "enabled"


def _authorization_mode_check(context: DiagnosticContext) -> CheckResult:
    """Verify that ``security.authorization`` is enabled."""
    try:
        cmd_line = context.admin_db.command("getCmdLineOpts")
    except PyMongoError as exc:
        return CheckResult(
            status="error",
            summary="Unable to inspect server command-line options.",
            details={"message": str(exc)},
            recommendation="Connect with a cluster-admin role or enable getCmdLineOpts on the server.",
        )

    parsed: Dict[str, Any] = cmd_line.get("parsed") or {}
    security = parsed.get("security") or {}
    mode = security.get("authorization") or "disabled"
    verdict = "ok" if mode == AUTHORIZATION_ENABLED else "critical"
    return CheckResult(
        status=verdict,
        summary=f"Authorization is {mode}.",
        details=dict(security) if security else None,
        recommendation=(
            "Authorization is enforced. No action required."
            if verdict == "ok"
            else "Enable authorization to prevent unauthenticated access (set security.authorization to enabled)."
        ),
    )


def elevated_roles(roles: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Return the role grants from ``roles`` that are in the sensitive set."""
    return [role for role in roles if role.get("role") in SENSITIVE_ROLES]


def _overprivileged_users_check(context: DiagnosticContext) -> CheckResult:
    """Flag users holding cluster-wide roles."""
    try:
        users_info = context.admin_db.command("usersInfo", 1, showPrivileges=False)
    except PyMongoError as exc:
        return CheckResult(
            status="error",
            summary="Unable to enumerate users.",
            details={"message": str(exc)},
            recommendation="Connect to the admin database with userAdminAnyDatabase or root.",
        )

    flagged: List[Dict[str, Any]] = []
    for user in users_info.get("users") or []:
        roles = list(user.get("roles") or [])
        elevated = elevated_roles(roles)
        if elevated:
            flagged.append(
                {
                    "user": f"{user.get('user')}@{user.get('db')}",
                    "roles": roles,
                    "elevated_roles": elevated,
                }
            )

    if not flagged:
        return CheckResult(
            status="ok",
            summary="No users with cluster-wide privileges were found.",
        )
    return CheckResult(
        status="warn",
        summary=f"{len(flagged)} user(s) with cluster-wide roles detected.",
        details=flagged,
        recommendation="Limit root/readWriteAnyDatabase usage to automation users and rotate credentials regularly.",
    )


ISSUES = (
    IssueDescriptor(
        id="security:authorization-mode",
        category="security",
        title="Authorization enforcement",
        severity="high",
        tags=frozenset({"auth", "compliance"}),
        description="Verifies whether authorization is enabled in the server configuration.",
        error_recommendation="Connect with a cluster-admin role or enable getCmdLineOpts on the server.",
        run=_authorization_mode_check,
    ),
    IssueDescriptor(
        id="security:overprivileged-users",
        category="security",
        title="Over-privileged database users",
        severity="medium",
        tags=frozenset({"roles", "privileges"}),
        description="Flags users that hold cluster-wide roles such as root or readWriteAnyDatabase.",
        error_recommendation="Connect to the admin database with userAdminAnyDatabase or root.",
        run=_overprivileged_users_check,
    ),
)
