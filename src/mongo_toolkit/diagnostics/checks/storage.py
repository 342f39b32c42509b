"""Storage and capacity checks."""

from __future__ import annotations

from typing import Any, Dict, List

from pymongo.errors import PyMongoError

from ..classify import classify_high
from ..context import DiagnosticContext
from ..models import CheckResult, IssueDescriptor
from ..sources import DataSource

MIB = 1024 * 1024


def fragmentation_ratio(data_size: float, storage_size: float) -> float:
    """Return the share of on-disk storage not occupied by logical data."""
    if storage_size == 0:
        return 0.0
    return (storage_size - data_size) / storage_size


def _fragmentation_check(context: DiagnosticContext) -> CheckResult:
    """Compare logical data size with on-disk storage for the target database."""
    stats: Dict[str, Any] = context.acquire(DataSource.DB_STATS) or {}
    data_size = stats.get("dataSize") or 0
    storage_size = stats.get("storageSize")
    if storage_size is None:
        storage_size = 1
    fragmentation = fragmentation_ratio(data_size, storage_size)

    # Cutoffs are exclusive: a ratio exactly at a cutoff stays in the milder band.
    verdict = classify_high(
        fragmentation,
        warn=context.options["warn_ratio"],
        critical=context.options["critical_ratio"],
        strict=True,
    )
    return CheckResult(
        status=verdict,
        summary=(
            f"Logical data {data_size / MIB:.1f} MiB vs storage {storage_size / MIB:.1f} MiB "
            f"(fragmentation {fragmentation * 100:.1f}%)."
        ),
        details=dict(stats),
        recommendation=(
            "No action required."
            if verdict == "ok"
            else "Run compact on the most bloated collections or re-sync via mongodump/mongorestore during maintenance."
        ),
    )


def _largest_collections_check(context: DiagnosticContext) -> CheckResult:
    """List the heaviest collections by storage size.

    Statistics are gathered for at most ``sample_size`` collections.  A
    collection whose statistics cannot be read (a view, or a permission
    problem) is recorded with its error and skipped in the ranking.
    """
    sample_size = int(context.options["sample_size"])
    top = int(context.options["top"])
    names = context.db.list_collection_names()
    sample = names[:sample_size]

    rows: List[Dict[str, Any]] = []
    for name in sample:
        try:
            coll_stats = context.db.command("collStats", name, scale=1)
        except PyMongoError as exc:
            rows.append({"collection": name, "error": str(exc)})
            continue
        rows.append(
            {
                "collection": name,
                "storage_bytes": coll_stats.get("storageSize"),
                "count": coll_stats.get("count"),
                "avg_obj_size": coll_stats.get("avgObjSize"),
            }
        )

    largest = sorted(
        (row for row in rows if row.get("storage_bytes")),
        key=lambda row: row["storage_bytes"],
        reverse=True,
    )[:top]
    failed = [row for row in rows if "error" in row]

    details: Dict[str, Any] = {
        "largest": [
            {
                "collection": row["collection"],
                "storage_mb": round(row["storage_bytes"] / MIB, 1),
                "docs": row["count"],
                "avg_obj_size": row["avg_obj_size"],
            }
            for row in largest
        ]
    }
    if failed:
        details["failed"] = failed
    return CheckResult(
        status="info",
        summary=f"Analyzed {len(sample)} collections (showing top {len(largest)}).",
        details=details,
        recommendation="Keep an eye on fast-growing collections. Consider sharding or archiving cold data.",
    )


ISSUES = (
    IssueDescriptor(
        id="storage:fragmentation",
        category="storage",
        title="Collection fragmentation",
        severity="medium",
        tags=frozenset({"storage", "compression"}),
        description="Compares logical data size with on-disk storage to highlight fragmentation.",
        options={"warn_ratio": 0.25, "critical_ratio": 0.40},
        error_recommendation="Connect with a user allowed to run dbStats on the target database.",
        run=_fragmentation_check,
    ),
    IssueDescriptor(
        id="storage:largest-collections",
        category="storage",
        title="Largest collections",
        severity="info",
        tags=frozenset({"storage", "capacity"}),
        description="Lists the heaviest collections by storage size inside the target database.",
        options={"sample_size": 25, "top": 5},
        minimums={"sample_size": 1, "top": 1},
        error_recommendation="Connect with a user allowed to list collections and run collStats.",
        run=_largest_collections_check,
    ),
)
