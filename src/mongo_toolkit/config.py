"""
Configuration constants for the mongo-toolkit project.

This module centralises configuration values that are used across the
application.  New values should be added here deliberately.
"""

from typing import Final

# Application name reported to the server in the connection handshake.
# It shows up in ``currentOp`` output and server logs, which makes the
# toolkit's own operations easy to tell apart from application traffic.
APP_NAME: Final[str] = "mongo-toolkit"

# Environment variables consulted by the CLI and the connection provider.
URI_ENV_VAR: Final[str] = "MONGODB_URI"
TIMEOUT_ENV_VAR: Final[str] = "MONGO_TOOLKIT_TIMEOUT_MS"

# Database targeted by database-scoped checks when none is given.
DEFAULT_DATABASE: Final[str] = "admin"

# Bounded server-selection timeout.  An unreachable deployment aborts the
# whole run after this many milliseconds.
DEFAULT_SERVER_SELECTION_TIMEOUT_MS: Final[int] = 5000

# Latency (milliseconds) above which a profiled operation counts as slow.
DEFAULT_SLOW_MS: Final[int] = 500

# Running time (seconds) above which an active operation is reported.
DEFAULT_LONG_RUNNING_SECONDS: Final[int] = 60

# Built-in roles that grant cluster-wide data or administrative access.
# Holding any one of them marks a user as over-privileged.
SENSITIVE_ROLES: Final[frozenset[str]] = frozenset(
    {
        "root",
        "readWriteAnyDatabase",
        "dbAdminAnyDatabase",
        "userAdminAnyDatabase",
        "clusterAdmin",
    }
)

__all__ = [
    "APP_NAME",
    "URI_ENV_VAR",
    "TIMEOUT_ENV_VAR",
    "DEFAULT_DATABASE",
    "DEFAULT_SERVER_SELECTION_TIMEOUT_MS",
    "DEFAULT_SLOW_MS",
    "DEFAULT_LONG_RUNNING_SECONDS",
    "SENSITIVE_ROLES",
]
