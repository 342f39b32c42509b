"""Top-level package for mongo-toolkit.

This package provides a command-line interface via :mod:`mongo_toolkit.cli`,
the connection provider in :mod:`mongo_toolkit.db`, and the diagnostic
engine (registry, context, data-source cache and checks) in
:mod:`mongo_toolkit.diagnostics`.
"""

__version__ = "0.1.0"

__all__ = [
    "cli",
    "db",
    "diagnostics",
]
