"""Shared fixtures for mongo-toolkit tests.

No test talks to a real deployment.  The fakes below implement the small
slice of the pymongo ``MongoClient``/``Database``/``Collection`` surface
the checks use and record every command they receive, so tests can
assert how many round trips a check caused.
"""

from __future__ import annotations

from collections import Counter
from typing import Any, Callable, Dict, List, Optional

import pytest
from pymongo.errors import OperationFailure

from mongo_toolkit.db.client import MongoHandles
from mongo_toolkit.diagnostics.context import DiagnosticContext
from mongo_toolkit.diagnostics.registry import default_registry


def unauthorized(command: str) -> OperationFailure:
    """Build the error a server returns when the user lacks a privilege."""
    return OperationFailure(
        f"not authorized on admin to execute command {{ {command}: 1 }}",
        code=13,
        details={"ok": 0, "errmsg": "not authorized", "code": 13, "codeName": "Unauthorized"},
    )


def not_replica_set() -> OperationFailure:
    return OperationFailure(
        "not running with --replSet",
        code=76,
        details={"ok": 0, "errmsg": "not running with --replSet", "code": 76, "codeName": "NoReplicationEnabled"},
    )


class FakeCollection:
    def __init__(self, docs: Optional[List[Dict[str, Any]]] = None, error: Optional[Exception] = None) -> None:
        self.docs = list(docs or [])
        self.error = error
        self.pipelines: List[List[Dict[str, Any]]] = []

    def find_one(self, filter=None, projection=None, sort=None):  # type: ignore[no-untyped-def]
        if self.error is not None:
            raise self.error
        if not self.docs:
            return None
        docs = list(self.docs)
        if sort:
            key, direction = sort[0]
            docs.sort(key=lambda doc: doc[key], reverse=direction < 0)
        return docs[0]

    def aggregate(self, pipeline):  # type: ignore[no-untyped-def]
        self.pipelines.append(pipeline)
        if self.error is not None:
            raise self.error
        return iter(self.docs)


class FakeDatabase:
    """Database stand-in answering ``command`` from a response table.

    A response may be a value, an exception instance (raised), or a
    callable receiving the command arguments.
    """

    def __init__(
        self,
        name: str = "test",
        responses: Optional[Dict[str, Any]] = None,
        collections: Optional[Dict[str, FakeCollection]] = None,
    ) -> None:
        self.name = name
        self.responses = dict(responses or {})
        self.collections = dict(collections or {})
        self.calls: Counter[str] = Counter()
        self.call_args: List[tuple] = []

    def command(self, command, value=1, **kwargs):  # type: ignore[no-untyped-def]
        self.calls[command] += 1
        self.call_args.append((command, value, kwargs))
        if command not in self.responses:
            raise OperationFailure(f"no such command: '{command}'", code=59)
        response = self.responses[command]
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(value, **kwargs)
        return response

    def list_collection_names(self) -> List[str]:
        return [name for name in self.collections if not name.startswith("system.")]

    def __getitem__(self, name: str) -> FakeCollection:
        return self.collections.setdefault(name, FakeCollection())


class FakeClient:
    def __init__(self, databases: Optional[Dict[str, FakeDatabase]] = None) -> None:
        self.databases = dict(databases or {})
        self.closed = False

    def __getitem__(self, name: str) -> FakeDatabase:
        return self.databases.setdefault(name, FakeDatabase(name))

    def close(self) -> None:
        self.closed = True


def make_handles(
    *,
    admin: Optional[FakeDatabase] = None,
    db: Optional[FakeDatabase] = None,
    local: Optional[FakeDatabase] = None,
) -> MongoHandles:
    admin = admin or FakeDatabase("admin")
    db = db or FakeDatabase("app")
    client = FakeClient({"admin": admin, db.name: db})
    if local is not None:
        client.databases["local"] = local
    return MongoHandles(client=client, db=db, admin_db=admin)  # type: ignore[arg-type]


@pytest.fixture
def registry():
    return default_registry()


@pytest.fixture
def run_check(registry) -> Callable[..., Any]:
    """Run a registered check against fake handles and return its result."""

    def _run(issue_id: str, handles: MongoHandles, options: Optional[Dict[str, Any]] = None):
        descriptor = registry.get(issue_id)
        assert descriptor is not None, issue_id
        context = DiagnosticContext.for_issue(handles, descriptor, options)
        return descriptor.execute(context)

    return _run
