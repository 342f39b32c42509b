"""Tests for the storage checks (fragmentation, largest collections)."""

from __future__ import annotations

import pytest

from mongo_toolkit.diagnostics.checks.storage import MIB, fragmentation_ratio
from mongo_toolkit.diagnostics.context import DiagnosticContext, resolve_options
from mongo_toolkit.errors import ConfigError

from conftest import FakeCollection, FakeDatabase, make_handles, unauthorized


def _db_stats(data_mib: float, storage_mib: float) -> FakeDatabase:
    return FakeDatabase(
        "app",
        {"dbStats": {"db": "app", "dataSize": data_mib * MIB, "storageSize": storage_mib * MIB}},
    )


@pytest.mark.parametrize(
    "data_mib, storage_mib, expected",
    [(60, 100, "warn"), (50, 100, "critical"), (75, 100, "ok"), (74, 100, "warn"), (100, 100, "ok")],
)
def test_fragmentation_boundaries(run_check, data_mib, storage_mib, expected: str) -> None:
    result = run_check("storage:fragmentation", make_handles(db=_db_stats(data_mib, storage_mib)))
    assert result.status == expected


def test_fragmentation_exactly_at_critical_cutoff_is_warn(run_check) -> None:
    assert fragmentation_ratio(60 * MIB, 100 * MIB) == 0.40
    result = run_check("storage:fragmentation", make_handles(db=_db_stats(60, 100)))
    assert result.status == "warn"
    assert result.summary == "Logical data 60.0 MiB vs storage 100.0 MiB (fragmentation 40.0%)."


def test_fragmentation_empty_storage(run_check) -> None:
    assert fragmentation_ratio(0, 0) == 0.0
    result = run_check("storage:fragmentation", make_handles(db=_db_stats(0, 0)))
    assert result.status == "ok"


def test_fragmentation_db_stats_failure_is_error(run_check) -> None:
    db = FakeDatabase("app", {"dbStats": unauthorized("dbStats")})
    result = run_check("storage:fragmentation", make_handles(db=db))
    assert result.status == "error"
    assert "dbStats" in result.recommendation


def test_largest_collections_ranks_by_storage(run_check) -> None:
    sizes = {"orders": 300 * MIB, "users": 10 * MIB, "events": 900 * MIB, "empty": 0}

    def coll_stats(name, **kwargs):  # type: ignore[no-untyped-def]
        if name == "broken_view":
            raise unauthorized("collStats")
        return {"storageSize": sizes[name], "count": 7, "avgObjSize": 120}

    collections = {name: FakeCollection() for name in [*sizes, "broken_view"]}
    db = FakeDatabase("app", {"collStats": coll_stats}, collections=collections)
    result = run_check("storage:largest-collections", make_handles(db=db), {"top": 2})
    assert result.status == "info"
    assert result.summary == "Analyzed 5 collections (showing top 2)."
    assert [row["collection"] for row in result.details["largest"]] == ["events", "orders"]
    assert result.details["largest"][0]["storage_mb"] == 900.0
    assert result.details["failed"][0]["collection"] == "broken_view"


def test_largest_collections_respects_sample_size(run_check) -> None:
    collections = {f"c{i}": FakeCollection() for i in range(30)}
    db = FakeDatabase("app", {"collStats": {"storageSize": MIB, "count": 1, "avgObjSize": 1}}, collections=collections)
    result = run_check("storage:largest-collections", make_handles(db=db))
    assert result.summary == "Analyzed 25 collections (showing top 5)."
    assert db.calls["collStats"] == 25
    assert "failed" not in result.details


@pytest.mark.parametrize("overrides", [{"sample_size": -1}, {"sample_size": 0}, {"top": "0"}])
def test_largest_collections_rejects_counts_below_one(registry, overrides) -> None:
    with pytest.raises(ConfigError):
        resolve_options(registry.get("storage:largest-collections"), overrides)


def test_largest_collections_negative_sample_is_error_not_truncation(registry) -> None:
    collections = {f"c{i}": FakeCollection() for i in range(3)}
    db = FakeDatabase("app", {"collStats": {"storageSize": MIB, "count": 1, "avgObjSize": 1}}, collections=collections)
    context = DiagnosticContext(make_handles(db=db), {"sample_size": -1})
    result = registry.get("storage:largest-collections").execute(context)
    assert result.status == "error"
    assert "sample_size" in result.summary
    assert db.calls.get("collStats", 0) == 0
