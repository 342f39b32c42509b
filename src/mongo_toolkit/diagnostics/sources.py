"""Per-run memoization of administrative snapshots.

Several checks need the same expensive deployment-wide snapshot (server
status feeds both the connection-pressure and the cache-pressure check).
:class:`DataSourceCache` guarantees at most one successful round trip
per source for the lifetime of a diagnostic context.

Each source slot carries an explicit :class:`SlotState`:

* ``UNFETCHED`` - no attempt has succeeded yet.  Failed fetches of
  ``serverStatus``, ``dbStats`` and ``currentOps`` leave the slot here so
  a later :meth:`DataSourceCache.acquire` may retry.
* ``FETCHED`` - a value is cached.  The value may be ``None``, meaning
  the feature is legitimately absent (e.g. not a replica set).
* ``FAILED`` - only used for ``replStatus``: the query failed and the
  error is retained so checks can tell a failure from an absence.

The cache has no internal locking and must not be shared between
threads.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from pymongo.errors import OperationFailure, PyMongoError

from ..db.client import MongoHandles
from ..errors import CommandError
from ..logging import get_logger

logger = get_logger(__name__)

# Server error codes recognised by the cache.
_UNAUTHORIZED = 13
_NO_REPLICATION_ENABLED = 76


class DataSource(str, Enum):
    """Closed set of memoized administrative snapshots."""

    SERVER_STATUS = "serverStatus"
    REPL_STATUS = "replStatus"
    DB_STATS = "dbStats"
    CURRENT_OPS = "currentOps"


class SlotState(str, Enum):
    UNFETCHED = "unfetched"
    FETCHED = "fetched"
    FAILED = "failed"


@dataclass
class SourceSlot:
    state: SlotState = SlotState.UNFETCHED
    value: Any = None
    error: Optional[BaseException] = None


def _fetch_server_status(handles: MongoHandles) -> Dict[str, Any]:
    return handles.admin_db.command("serverStatus")


def _fetch_repl_status(handles: MongoHandles) -> Dict[str, Any]:
    return handles.admin_db.command("replSetGetStatus")


def _fetch_db_stats(handles: MongoHandles) -> Dict[str, Any]:
    # scale=1 keeps every size in bytes
    return handles.db.command("dbStats", scale=1)


def _fetch_current_ops(handles: MongoHandles) -> List[Dict[str, Any]]:
    response = handles.admin_db.command("currentOp", 1, **{"$all": True})
    inprog = response.get("inprog") if response else None
    return list(inprog) if isinstance(inprog, list) else []


_FETCHERS: Dict[DataSource, Callable[[MongoHandles], Any]] = {
    DataSource.SERVER_STATUS: _fetch_server_status,
    DataSource.REPL_STATUS: _fetch_repl_status,
    DataSource.DB_STATS: _fetch_db_stats,
    DataSource.CURRENT_OPS: _fetch_current_ops,
}


def is_not_replica_set(exc: BaseException) -> bool:
    """Return True if ``exc`` means the server is not running as a replica set."""
    if isinstance(exc, OperationFailure) and exc.code == _NO_REPLICATION_ENABLED:
        return True
    return "not running with --replSet" in str(exc)


def _command_error(source: DataSource, exc: PyMongoError) -> CommandError:
    kind = "permission" if isinstance(exc, OperationFailure) and exc.code == _UNAUTHORIZED else "command"
    return CommandError(f"{source.value} query failed: {exc}", source=source.value, kind=kind)


class DataSourceCache:
    """Memoizes the four administrative snapshots for one context."""

    def __init__(self, handles: MongoHandles) -> None:
        self._handles = handles
        self._slots: Dict[DataSource, SourceSlot] = {source: SourceSlot() for source in DataSource}

    def slot(self, source: DataSource) -> SourceSlot:
        """Return the slot for ``source`` (for inspection only)."""
        return self._slots[DataSource(source)]

    def error(self, source: DataSource) -> Optional[BaseException]:
        """Return the error retained for ``source``, if any."""
        return self.slot(source).error

    def acquire(self, source: DataSource) -> Any:
        """Return the snapshot for ``source``, fetching it at most once.

        Raises:
            CommandError: If a ``serverStatus``, ``dbStats`` or
                ``currentOps`` fetch fails.  The slot stays unfetched.
        """
        source = DataSource(source)
        slot = self._slots[source]
        if slot.state is not SlotState.UNFETCHED:
            logger.debug("Cache hit for %s (%s)", source.value, slot.state.value)
            return slot.value

        logger.debug("Fetching %s", source.value)
        try:
            value = _FETCHERS[source](self._handles)
        except PyMongoError as exc:
            if source is not DataSource.REPL_STATUS:
                raise _command_error(source, exc) from exc
            if is_not_replica_set(exc):
                logger.debug("Deployment is not a replica set")
                slot.state = SlotState.FETCHED
                slot.value = None
            else:
                slot.state = SlotState.FAILED
                slot.value = None
                slot.error = exc
            return None

        slot.state = SlotState.FETCHED
        slot.value = value
        return value
