"""Replication and resilience checks.

The lag check consumes the memoized ``replSetGetStatus`` snapshot and
relies on the cache keeping "not a replica set" (no error) apart from a
failed query (error retained).  The oplog window check reads
``local.oplog.rs`` directly through the client handle.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson.timestamp import Timestamp
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from ...errors import DataUnavailable
from ..classify import classify_high, classify_low
from ..context import DiagnosticContext
from ..models import CheckResult, IssueDescriptor
from ..sources import DataSource


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def oplog_entry_time(entry: Dict[str, Any]) -> Optional[datetime]:
    """Return the wall-clock time of an oplog entry.

    ``wallTime`` is preferred; older servers only record the BSON
    timestamp, whose high 32 bits are seconds since the epoch.
    """
    wall_time = entry.get("wallTime")
    if isinstance(wall_time, datetime):
        return _as_utc(wall_time)
    ts = entry.get("ts")
    if isinstance(ts, Timestamp):
        return datetime.fromtimestamp(ts.time, tz=timezone.utc)
    if isinstance(ts, datetime):
        return _as_utc(ts)
    return None


def _member_time(member: Dict[str, Any]) -> Optional[datetime]:
    optime_date = member.get("optimeDate")
    return _as_utc(optime_date) if isinstance(optime_date, datetime) else None


def _replication_lag_check(context: DiagnosticContext) -> CheckResult:
    """Compute the worst lag between the primary and its secondaries."""
    repl = context.acquire(DataSource.REPL_STATUS)
    if repl is None:
        error = context.cache.error(DataSource.REPL_STATUS)
        if error is not None:
            return CheckResult(
                status="error",
                summary="Unable to retrieve replSetGetStatus.",
                details={"message": str(error)},
                recommendation="Ensure the cluster is a replica set and the user has replSetGetStatus privileges.",
            )
        raise DataUnavailable("This deployment is not part of a replica set.")

    members: List[Dict[str, Any]] = repl.get("members") or []
    primary = next((member for member in members if member.get("stateStr") == "PRIMARY"), None)
    secondaries = [member for member in members if member.get("stateStr") == "SECONDARY"]
    primary_time = _member_time(primary) if primary else None
    if primary_time is None or not secondaries:
        return CheckResult(
            status="info",
            summary="Replica set does not expose secondary members or is still initializing.",
        )

    lag_rows: List[Dict[str, Any]] = []
    for member in secondaries:
        member_time = _member_time(member)
        if member_time is None:
            lag_seconds = None
        else:
            lag_seconds = max(0.0, (primary_time - member_time).total_seconds())
        lag_rows.append(
            {
                "member": member.get("name"),
                "state": member.get("stateStr"),
                "lag_seconds": lag_seconds,
            }
        )

    worst_lag = max((row["lag_seconds"] or 0.0 for row in lag_rows), default=0.0)
    verdict = classify_high(
        worst_lag,
        warn=context.options["warn_seconds"],
        critical=context.options["critical_seconds"],
    )
    return CheckResult(
        status=verdict,
        summary=f"Worst replication lag {worst_lag:.1f}s among {len(lag_rows)} secondary member(s).",
        details=lag_rows,
        recommendation=(
            "Replication is healthy."
            if verdict == "ok"
            else "Check network latency, disk throughput, and long-running operations on lagging members."
        ),
    )


def _oplog_window_check(context: DiagnosticContext) -> CheckResult:
    """Measure how many hours of history the oplog retains."""
    projection = {"ts": 1, "wallTime": 1}
    try:
        oplog = context.client["local"]["oplog.rs"]
        oldest = oplog.find_one({}, projection, sort=[("ts", ASCENDING)])
        newest = oplog.find_one({}, projection, sort=[("ts", DESCENDING)])
    except PyMongoError as exc:
        return CheckResult(
            status="error",
            summary="Unable to read from local.oplog.rs. Connect to a primary or provide permissions.",
            details={"message": str(exc)},
        )

    if not oldest or not newest:
        return CheckResult(
            status="warn",
            summary="oplog.rs collection is empty.",
            recommendation="Ensure this node is a replica set member and retains oplog entries.",
        )

    start = oplog_entry_time(oldest)
    end = oplog_entry_time(newest)
    if start is None or end is None:
        return CheckResult(
            status="error",
            summary="Unable to convert oplog timestamps to dates.",
        )

    window_hours = (end - start).total_seconds() / 3600
    verdict = classify_low(
        window_hours,
        warn=context.options["warn_hours"],
        critical=context.options["critical_hours"],
    )
    return CheckResult(
        status=verdict,
        summary=f"Oplog window is {window_hours:.1f} hours.",
        details={"oldest": start, "newest": end, "window_hours": window_hours},
        recommendation=(
            "Oplog provides adequate history for resyncs."
            if verdict == "ok"
            else "Increase the oplog size or reduce write volume to avoid forced initial syncs."
        ),
    )


ISSUES = (
    IssueDescriptor(
        id="replication:lag",
        category="replication",
        title="Replica set lag",
        severity="high",
        tags=frozenset({"replication", "ha"}),
        description="Calculates the largest lag between the primary and secondaries.",
        options={"warn_seconds": 15, "critical_seconds": 60},
        error_recommendation="Ensure the cluster is a replica set and the user has replSetGetStatus privileges.",
        run=_replication_lag_check,
    ),
    IssueDescriptor(
        id="replication:oplog-window",
        category="replication",
        title="Oplog window coverage",
        severity="medium",
        tags=frozenset({"replication", "oplog"}),
        description="Measures how many hours of history are retained in the oplog.",
        options={"warn_hours": 48, "critical_hours": 24},
        error_recommendation="Connect to a replica set member with read access to the local database.",
        run=_oplog_window_check,
    ),
)
