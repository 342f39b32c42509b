"""MongoDB client management utilities.

This module provides the connection provider used by every diagnostic
run.  It builds a short-lived :class:`pymongo.MongoClient`, proves the
deployment is reachable before any check executes, and guarantees the
client is closed on every exit path.  Driver failures raised while the
session is being established are translated into
:class:`~mongo_toolkit.errors.DeploymentConnectionError` with an explicit
``kind`` tag, and connection strings are redacted before they appear in
any message.
"""

from __future__ import annotations

import os
import re
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import (
    ConfigurationError,
    ConnectionFailure,
    OperationFailure,
    ServerSelectionTimeoutError,
)

from ..config import APP_NAME, DEFAULT_SERVER_SELECTION_TIMEOUT_MS, TIMEOUT_ENV_VAR
from ..errors import ConfigError, DeploymentConnectionError
from ..logging import get_logger

logger = get_logger(__name__)

# Matches the ``user:password@`` portion of a connection string.
_CREDENTIALS_RE = re.compile(r"(mongodb(?:\+srv)?://)([^:@/\s]+):([^@/\s]+)@")

# Server error code for a failed authentication handshake.
_AUTHENTICATION_FAILED = 18


@dataclass(frozen=True)
class MongoHandles:
    """Connection capabilities handed to a diagnostic context.

    Attributes:
        client: The general client, used for ad-hoc access to other
            databases (e.g. ``local`` for the oplog).
        db: The target database for database-scoped checks.
        admin_db: The ``admin`` database for administrative commands.
    """

    client: MongoClient
    db: Database
    admin_db: Database


def redact_uri(text: str) -> str:
    """Replace passwords embedded in MongoDB connection strings with ``***``."""
    return _CREDENTIALS_RE.sub(r"\1\2:***@", text)


def resolve_timeout_ms(timeout_ms: Optional[int] = None) -> int:
    """Return the server-selection timeout in milliseconds.

    The explicit argument wins, then ``MONGO_TOOLKIT_TIMEOUT_MS``, then
    the built-in default.
    """
    if timeout_ms is not None:
        return int(timeout_ms)
    raw = os.getenv(TIMEOUT_ENV_VAR)
    if not raw:
        return DEFAULT_SERVER_SELECTION_TIMEOUT_MS
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{TIMEOUT_ENV_VAR} must be an integer number of milliseconds, got {raw!r}")
    if value <= 0:
        raise ConfigError(f"{TIMEOUT_ENV_VAR} must be > 0, got {value}")
    return value


def get_client(uri: Optional[str], *, timeout_ms: Optional[int] = None) -> MongoClient:
    """Create a new MongoDB client.

    Args:
        uri: A MongoDB connection string.
        timeout_ms: Server-selection timeout; see :func:`resolve_timeout_ms`.

    Returns:
        A :class:`pymongo.MongoClient`.  The client connects lazily; use
        :func:`mongo_session` to obtain a verified session.
    """
    if not uri:
        raise ConfigError("A MongoDB connection string is required. Pass it with --uri.")
    try:
        return MongoClient(
            uri,
            appname=APP_NAME,
            serverSelectionTimeoutMS=resolve_timeout_ms(timeout_ms),
        )
    except ConfigurationError as exc:
        raise DeploymentConnectionError(
            f"Invalid MongoDB connection string: {redact_uri(str(exc))}",
            kind="configuration",
        ) from exc


@contextmanager
def mongo_session(
    uri: Optional[str],
    database: str,
    *,
    timeout_ms: Optional[int] = None,
) -> Iterator[MongoHandles]:
    """Context manager that yields verified :class:`MongoHandles`.

    A ``ping`` against the admin database is issued before yielding so an
    unreachable or unauthenticated deployment fails here, before any
    check is invoked.  The client is closed after use regardless of how
    the block exits.

    Args:
        uri: The MongoDB connection string.
        database: Name of the target database.
        timeout_ms: Optional server-selection timeout override.

    Yields:
        The client, target database and admin database handles.

    Raises:
        DeploymentConnectionError: If the session cannot be established.
    """
    client = get_client(uri, timeout_ms=timeout_ms)
    logger.debug("Opened client for %s", redact_uri(uri or ""))
    try:
        admin_db = client["admin"]
        try:
            admin_db.command("ping")
        except ServerSelectionTimeoutError as exc:
            raise DeploymentConnectionError(
                f"Unable to reach MongoDB cluster. {redact_uri(str(exc))}",
                kind="server_selection",
            ) from exc
        except OperationFailure as exc:
            kind = "authentication" if exc.code == _AUTHENTICATION_FAILED else "connection"
            raise DeploymentConnectionError(
                f"MongoDB rejected the session: {redact_uri(str(exc))}",
                kind=kind,
            ) from exc
        except ConnectionFailure as exc:
            raise DeploymentConnectionError(
                f"Unable to connect to MongoDB: {redact_uri(str(exc))}",
                kind="connection",
            ) from exc
        yield MongoHandles(client=client, db=client[database], admin_db=admin_db)
    finally:
        client.close()
        logger.debug("Closed client")
