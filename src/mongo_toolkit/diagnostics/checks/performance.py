"""Performance and querying checks."""

from __future__ import annotations

from typing import Any, Dict, List

from pymongo.errors import PyMongoError

from ...config import DEFAULT_SLOW_MS
from ...errors import DataUnavailable
from ..classify import classify_high
from ..context import DiagnosticContext
from ..models import CheckResult, IssueDescriptor
from ..sources import DataSource

# Number of slowest profiler samples reported.
SLOW_SAMPLE_LIMIT = 5

# WiredTiger cache statistics keys as reported by serverStatus.
_CACHE_USED = "bytes currently in the cache"
_CACHE_DIRTY = "tracked dirty bytes in the cache"
_CACHE_MAX = "maximum bytes configured"


def slow_query_pipeline(slow_ms: float) -> List[Dict[str, Any]]:
    """Aggregation over ``system.profile`` returning the slowest samples."""
    return [
        {"$match": {"millis": {"$gte": slow_ms}}},
        {"$sort": {"millis": -1}},
        {"$limit": SLOW_SAMPLE_LIMIT},
        {
            "$project": {
                "_id": 0,
                "ns": 1,
                "millis": 1,
                "op": 1,
                "command": {
                    "$cond": {
                        "if": {"$gt": ["$command.query", None]},
                        "then": "$command.query",
                        "else": "$command.filter",
                    }
                },
            }
        },
    ]


def _slow_queries_check(context: DiagnosticContext) -> CheckResult:
    """Report profiler samples slower than ``slow_ms``.

    The profiler level is probed first: with profiling off the
    ``system.profile`` collection holds no fresh samples, which is
    reported as a warning rather than an error.
    """
    slow_ms = context.options["slow_ms"]
    try:
        profile_status = context.db.command("profile", -1)
    except PyMongoError as exc:
        return CheckResult(
            status="error",
            summary="Unable to inspect profiler configuration.",
            details={"message": str(exc)},
            recommendation="Use a user with sufficient privileges to run db.command({ profile: -1 }).",
        )

    if not profile_status or profile_status.get("was") == 0:
        raise DataUnavailable(
            "The profiler is disabled, so slow query samples are unavailable.",
            status="warn",
            details=dict(profile_status) if profile_status else None,
            recommendation="Enable profiling temporarily or use Performance Advisor to capture slow operations.",
        )

    try:
        slow_ops = list(context.db["system.profile"].aggregate(slow_query_pipeline(slow_ms)))
    except PyMongoError as exc:
        return CheckResult(
            status="error",
            summary="Profiler collection is not accessible.",
            details={"message": str(exc)},
            recommendation="Ensure profiling is enabled and the user can read system.profile.",
        )

    if not slow_ops:
        return CheckResult(
            status="ok",
            summary=f"No operations slower than {slow_ms} ms were present in system.profile.",
        )
    return CheckResult(
        status="warn",
        summary=f"{len(slow_ops)} operation(s) slower than {slow_ms} ms detected.",
        details=slow_ops,
        recommendation="Review the listed namespaces and add or tune indexes where necessary.",
    )


def _wiredtiger_cache_check(context: DiagnosticContext) -> CheckResult:
    """Measure WiredTiger cache fill and dirty ratios."""
    server_status = context.acquire(DataSource.SERVER_STATUS) or {}
    cache = (server_status.get("wiredTiger") or {}).get("cache")
    if not cache:
        raise DataUnavailable(
            "WiredTiger cache statistics are unavailable on this deployment.",
            details={"storageEngine": server_status.get("storageEngine")},
        )

    used = cache.get(_CACHE_USED) or 0
    dirty = cache.get(_CACHE_DIRTY) or 0
    maximum = cache.get(_CACHE_MAX) or 1
    utilization = used / maximum
    dirty_ratio = dirty / maximum

    verdict = classify_high(
        utilization,
        warn=context.options["warn_ratio"],
        critical=context.options["critical_ratio"],
    )
    # The dirty ratio escalates to critical regardless of the fill ratio.
    if dirty_ratio >= context.options["dirty_critical_ratio"]:
        verdict = "critical"

    return CheckResult(
        status=verdict,
        summary=f"Cache utilization {utilization * 100:.1f}% (dirty {dirty_ratio * 100:.1f}%).",
        details={
            "used_bytes": used,
            "dirty_bytes": dirty,
            "max_bytes": maximum,
        },
        recommendation=(
            "No action required. Keep utilization under 85% for predictable performance."
            if verdict == "ok"
            else "Review working set size and consider increasing cache memory or reducing page cache usage."
        ),
    )


ISSUES = (
    IssueDescriptor(
        id="performance:slow-queries",
        category="performance",
        title="Slow query hotspots",
        severity="high",
        tags=frozenset({"profiler", "query", "plan"}),
        description="Surface operations recorded in system.profile that exceed a configurable latency.",
        options={"slow_ms": DEFAULT_SLOW_MS},
        threshold_alias="slow_ms",
        error_recommendation="Use a user with sufficient privileges to run the profile command.",
        run=_slow_queries_check,
    ),
    IssueDescriptor(
        id="performance:wiredtiger-cache",
        category="performance",
        title="WiredTiger cache pressure",
        severity="medium",
        tags=frozenset({"wiredtiger", "memory"}),
        description="Checks if the WiredTiger cache is consistently above safe utilization levels.",
        options={"warn_ratio": 0.85, "critical_ratio": 0.95, "dirty_critical_ratio": 0.40},
        error_recommendation="Connect with a user allowed to run serverStatus (clusterMonitor role).",
        run=_wiredtiger_cache_check,
    ),
)
