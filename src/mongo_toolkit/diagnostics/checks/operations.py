"""Operations and runtime checks.

Both checks read memoized snapshots: connection pressure uses the
``serverStatus`` snapshot and long-running operations use the
``currentOp`` listing.
"""

from __future__ import annotations

from typing import Any, Dict, List

from ...config import DEFAULT_LONG_RUNNING_SECONDS
from ..classify import classify_high
from ..context import DiagnosticContext
from ..models import CheckResult, IssueDescriptor
from ..sources import DataSource

# At most this many offenders are reported in the result details.
MAX_REPORTED_OFFENDERS = 10


def _connection_pressure_check(context: DiagnosticContext) -> CheckResult:
    """Compare open connections against the deployment's connection limit."""
    status = context.acquire(DataSource.SERVER_STATUS) or {}
    connections: Dict[str, Any] = status.get("connections") or {}
    current = connections.get("current") or 0
    available = connections.get("available") or 1
    total = current + available
    utilization = current / total

    verdict = classify_high(
        utilization,
        warn=context.options["warn_ratio"],
        critical=context.options["critical_ratio"],
    )
    return CheckResult(
        status=verdict,
        summary=f"{current} of {total} connections in use ({utilization * 100:.1f}%).",
        details=dict(connections),
        recommendation=(
            "No action required."
            if verdict == "ok"
            else "Add connection pooling, increase maxIncomingConnections, or scale out application nodes."
        ),
    )


def is_long_running(op: Dict[str, Any], threshold_seconds: float) -> bool:
    """Return True if ``op`` is an active, unkilled operation at or past the threshold."""
    if not op.get("active") or op.get("killed"):
        return False
    secs_running = op.get("secs_running")
    return secs_running is not None and secs_running >= threshold_seconds


def _long_running_ops_check(context: DiagnosticContext) -> CheckResult:
    """Surface active operations that have been running past a threshold."""
    threshold = context.options["threshold_seconds"]
    ops: List[Dict[str, Any]] = context.acquire(DataSource.CURRENT_OPS) or []
    offenders = [
        {
            "opid": op.get("opid"),
            "type": op.get("op"),
            "ns": op.get("ns"),
            "secs_running": op.get("secs_running"),
            "client": op.get("client"),
            "waiting_for_lock": op.get("waitingForLock"),
        }
        for op in ops
        if is_long_running(op, threshold)
    ]

    if not offenders:
        return CheckResult(
            status="ok",
            summary=f"No active operations running longer than {threshold}s.",
        )
    return CheckResult(
        status="warn",
        summary=f"{len(offenders)} long-running operation(s) detected (>={threshold}s).",
        details=offenders[:MAX_REPORTED_OFFENDERS],
        recommendation=(
            "Inspect offending operations, examine explain plans, or terminate blockers with db.killOp(opid)."
        ),
    )


ISSUES = (
    IssueDescriptor(
        id="operations:connection-pressure",
        category="operations",
        title="Connection pressure",
        severity="medium",
        tags=frozenset({"connections", "infrastructure"}),
        description="Detects when the deployment is close to its connection limit.",
        options={"warn_ratio": 0.75, "critical_ratio": 0.90},
        error_recommendation="Connect with a user allowed to run serverStatus (clusterMonitor role).",
        run=_connection_pressure_check,
    ),
    IssueDescriptor(
        id="operations:long-running-ops",
        category="operations",
        title="Long-running operations",
        severity="medium",
        tags=frozenset({"currentOp"}),
        description="Surfaces operations that have been executing longer than a threshold.",
        options={"threshold_seconds": DEFAULT_LONG_RUNNING_SECONDS},
        threshold_alias="threshold_seconds",
        error_recommendation="Connect with a user allowed to run currentOp with $all (clusterMonitor role).",
        run=_long_running_ops_check,
    ),
)
