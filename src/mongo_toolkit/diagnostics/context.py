"""Per-invocation diagnostic context.

A :class:`DiagnosticContext` bundles the connection handles supplied by
the connection provider, the caller's option overrides and a
:class:`~mongo_toolkit.diagnostics.sources.DataSourceCache`.  Several
checks may share one context and its cache; each check reads options
through :meth:`DiagnosticContext.scoped_to`, which resolves the
overrides against that check's own declared defaults.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from pymongo import MongoClient
from pymongo.database import Database

from ..db.client import MongoHandles
from ..errors import ConfigError
from ..logging import get_logger
from .models import IssueDescriptor
from .sources import DataSource, DataSourceCache

logger = get_logger(__name__)

# Generic override accepted by checks that declare a ``threshold_alias``.
GENERIC_THRESHOLD = "threshold"


def _coerce(name: str, value: Any, default: Any) -> Any:
    """Coerce ``value`` to the type of the declared ``default``."""
    if isinstance(default, bool) or not isinstance(default, (int, float)):
        return value
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Option {name!r} must be numeric, got {value!r}")
    if isinstance(default, int) and number.is_integer():
        return int(number)
    return number


def _checked(descriptor: IssueDescriptor, name: str, value: Any) -> Any:
    value = _coerce(name, value, descriptor.options.get(name))
    minimum = descriptor.minimums.get(name)
    if minimum is not None and value < minimum:
        raise ConfigError(f"Option {name!r} must be at least {minimum}, got {value!r}")
    return value


def resolve_options(
    descriptor: IssueDescriptor,
    overrides: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """Resolve caller overrides against a check's declared options.

    Resolution order for each declared option: the canonical option name
    if supplied, then (for the option named by ``threshold_alias``) the
    generic ``threshold`` value, then the declared default.  ``None``
    values are treated as not supplied, and keys the check does not
    declare are ignored.

    Raises:
        ConfigError: If a numeric option receives a non-numeric value or
            a value below the descriptor's declared minimum.
    """
    resolved: Dict[str, Any] = dict(descriptor.options)
    supplied = {key: value for key, value in (overrides or {}).items() if value is not None}
    for key, value in supplied.items():
        if key in resolved:
            resolved[key] = _checked(descriptor, key, value)
        elif key != GENERIC_THRESHOLD:
            logger.debug("Ignoring option %s not declared by %s", key, descriptor.id)
    alias = descriptor.threshold_alias
    if alias and alias not in supplied and GENERIC_THRESHOLD in supplied:
        resolved[alias] = _checked(descriptor, alias, supplied[GENERIC_THRESHOLD])
    logger.debug("Resolved options for %s: %s", descriptor.id, resolved)
    return resolved


class DiagnosticContext:
    """Connection handles, caller option overrides and the data-source cache.

    ``options`` holds the raw overrides exactly as the caller supplied
    them.  Checks never read it directly: :meth:`IssueDescriptor.execute`
    hands each check the view returned by :meth:`scoped_to`.
    """

    def __init__(
        self,
        handles: MongoHandles,
        options: Optional[Mapping[str, Any]] = None,
        *,
        cache: Optional[DataSourceCache] = None,
    ) -> None:
        self.handles = handles
        self.options: Dict[str, Any] = dict(options or {})
        self.cache = cache if cache is not None else DataSourceCache(handles)

    @classmethod
    def for_issue(
        cls,
        handles: MongoHandles,
        descriptor: IssueDescriptor,
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> "DiagnosticContext":
        """Build a context for ``descriptor``, rejecting invalid overrides up front.

        Raises:
            ConfigError: If an override fails :func:`resolve_options`.
        """
        resolve_options(descriptor, overrides)
        return cls(handles, overrides)

    def scoped_to(self, descriptor: IssueDescriptor) -> "DiagnosticContext":
        """Return a view sharing handles and cache, with options resolved for ``descriptor``."""
        return DiagnosticContext(
            self.handles,
            resolve_options(descriptor, self.options),
            cache=self.cache,
        )

    @property
    def client(self) -> MongoClient:
        return self.handles.client

    @property
    def db(self) -> Database:
        return self.handles.db

    @property
    def admin_db(self) -> Database:
        return self.handles.admin_db

    def acquire(self, source: DataSource) -> Any:
        """Shortcut for ``self.cache.acquire(source)``."""
        return self.cache.acquire(source)
