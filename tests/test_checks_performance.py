"""Tests for the performance checks (slow queries, WiredTiger cache)."""

from __future__ import annotations

from conftest import FakeCollection, FakeDatabase, make_handles, unauthorized


def _cache_status(used: int, dirty: int, maximum: int) -> FakeDatabase:
    return FakeDatabase(
        "admin",
        {
            "serverStatus": {
                "storageEngine": {"name": "wiredTiger"},
                "wiredTiger": {
                    "cache": {
                        "bytes currently in the cache": used,
                        "tracked dirty bytes in the cache": dirty,
                        "maximum bytes configured": maximum,
                    }
                },
            }
        },
    )


def test_wiredtiger_cache_ok(run_check) -> None:
    result = run_check("performance:wiredtiger-cache", make_handles(admin=_cache_status(50, 5, 100)))
    assert result.status == "ok"
    assert result.summary == "Cache utilization 50.0% (dirty 5.0%)."
    assert result.details == {"used_bytes": 50, "dirty_bytes": 5, "max_bytes": 100}


def test_wiredtiger_cache_warn_and_critical(run_check) -> None:
    assert run_check("performance:wiredtiger-cache", make_handles(admin=_cache_status(85, 0, 100))).status == "warn"
    assert run_check("performance:wiredtiger-cache", make_handles(admin=_cache_status(95, 0, 100))).status == "critical"


def test_wiredtiger_dirty_ratio_escalates_to_critical(run_check) -> None:
    result = run_check("performance:wiredtiger-cache", make_handles(admin=_cache_status(50, 40, 100)))
    assert result.status == "critical"


def test_wiredtiger_cache_unavailable_is_info(run_check) -> None:
    admin = FakeDatabase("admin", {"serverStatus": {"storageEngine": {"name": "inMemory"}}})
    result = run_check("performance:wiredtiger-cache", make_handles(admin=admin))
    assert result.status == "info"
    assert result.details == {"storageEngine": {"name": "inMemory"}}


def _profiled_db(level: int, samples=None, error=None) -> FakeDatabase:
    return FakeDatabase(
        "app",
        {"profile": {"was": level, "slowms": 100, "ok": 1}},
        collections={"system.profile": FakeCollection(samples, error=error)},
    )


def test_slow_queries_profiler_disabled_warns(run_check) -> None:
    result = run_check("performance:slow-queries", make_handles(db=_profiled_db(0)))
    assert result.status == "warn"
    assert "profiler is disabled" in result.summary


def test_slow_queries_profiler_probe_failure_is_error(run_check) -> None:
    db = FakeDatabase("app", {"profile": unauthorized("profile")})
    result = run_check("performance:slow-queries", make_handles(db=db))
    assert result.status == "error"
    assert result.summary == "Unable to inspect profiler configuration."


def test_slow_queries_none_found(run_check) -> None:
    result = run_check("performance:slow-queries", make_handles(db=_profiled_db(1, [])))
    assert result.status == "ok"
    assert "500 ms" in result.summary


def test_slow_queries_reports_samples(run_check) -> None:
    samples = [{"ns": "app.orders", "millis": 1200, "op": "query", "command": {"status": "open"}}]
    db = _profiled_db(1, samples)
    result = run_check("performance:slow-queries", make_handles(db=db), {"slow_ms": 750})
    assert result.status == "warn"
    assert result.details == samples
    pipeline = db.collections["system.profile"].pipelines[0]
    assert pipeline[0] == {"$match": {"millis": {"$gte": 750}}}
    assert pipeline[1] == {"$sort": {"millis": -1}}
    assert pipeline[2] == {"$limit": 5}


def test_slow_queries_threshold_alias(run_check) -> None:
    db = _profiled_db(2, [])
    result = run_check("performance:slow-queries", make_handles(db=db), {"threshold": 90})
    assert "90 ms" in result.summary


def test_slow_queries_profile_collection_unreadable(run_check) -> None:
    db = _profiled_db(1, error=unauthorized("aggregate"))
    result = run_check("performance:slow-queries", make_handles(db=db))
    assert result.status == "error"
    assert result.summary == "Profiler collection is not accessible."
