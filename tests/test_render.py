"""Tests for text and JSON rendering of check results."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import click
from bson.objectid import ObjectId

from mongo_toolkit.diagnostics.models import CheckResult
from mongo_toolkit.render import render_result


def test_json_renders_datetimes_in_iso_format(registry) -> None:
    issue = registry.get("replication:oplog-window")
    oldest = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
    newest = datetime(2026, 1, 3, 12, 0, tzinfo=timezone.utc)
    result = CheckResult(
        status="ok",
        summary="Oplog window is 48.0 hours.",
        details={"oldest": oldest, "newest": newest, "window_hours": 48.0},
    )
    payload = json.loads(render_result(issue, result, as_json=True))
    assert payload["details"]["oldest"] == "2026-01-01T12:00:00+00:00"
    assert payload["details"]["newest"] == "2026-01-03T12:00:00+00:00"
    assert payload["issue"] == "replication:oplog-window"


def test_json_renders_other_bson_values_as_strings(registry) -> None:
    issue = registry.get("operations:long-running-ops")
    oid = ObjectId("65a1f0c2e4b0a1b2c3d4e5f6")
    result = CheckResult(status="warn", summary="1 long-running operation(s) detected (>=60s).", details=[{"opid": oid}])
    payload = json.loads(render_result(issue, result, as_json=True))
    assert payload["details"] == [{"opid": "65a1f0c2e4b0a1b2c3d4e5f6"}]


def test_text_output_lists_details_and_recommendation(registry) -> None:
    issue = registry.get("security:authorization-mode")
    result = CheckResult(
        status="critical",
        summary="Authorization is disabled.",
        details={"mode": "disabled"},
        recommendation="Enable authorization.",
    )
    text = click.unstyle(render_result(issue, result))
    assert "Authorization enforcement - CRITICAL" in text
    assert "Details:" in text
    assert "{'mode': 'disabled'}" in text
    assert text.endswith("Recommendation: Enable authorization.")
