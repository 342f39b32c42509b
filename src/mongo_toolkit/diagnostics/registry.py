"""Catalog of diagnostic issues.

The registry is populated once at startup from the fixed list of
built-in categories and frozen afterwards.  Once frozen it is never
mutated, so it can be read from any number of diagnostic contexts at
the same time.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Dict, Iterable, List, Optional, Tuple

from ..errors import ConfigError
from .models import Category, IssueDescriptor


class IssueRegistry:
    """Ordered, id-unique collection of :class:`IssueDescriptor` records."""

    def __init__(self) -> None:
        self._issues: Dict[str, IssueDescriptor] = {}
        self._categories: Dict[str, Category] = {}
        self._frozen = False

    def register(self, descriptor: IssueDescriptor) -> None:
        """Add a descriptor to the registry.

        Raises:
            ConfigError: If the registry is frozen or the id is already
                registered.
        """
        if self._frozen:
            raise ConfigError(f"Registry is frozen; cannot register {descriptor.id!r}")
        if descriptor.id in self._issues:
            raise ConfigError(f"Duplicate issue id: {descriptor.id!r}")
        self._issues[descriptor.id] = descriptor

    def register_category(self, category: Category) -> None:
        """Register a category and every descriptor it contains."""
        if self._frozen:
            raise ConfigError(f"Registry is frozen; cannot register category {category.id!r}")
        if category.id in self._categories:
            raise ConfigError(f"Duplicate category id: {category.id!r}")
        for descriptor in category.issues:
            if descriptor.category != category.id:
                raise ConfigError(
                    f"Issue {descriptor.id!r} declares category {descriptor.category!r}, "
                    f"expected {category.id!r}"
                )
            self.register(descriptor)
        self._categories[category.id] = category

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def categories(self) -> Tuple[Category, ...]:
        return tuple(self._categories.values())

    def get(self, issue_id: str) -> Optional[IssueDescriptor]:
        """Return the descriptor with exactly this id, or ``None``."""
        return self._issues.get(issue_id)

    def list(self, category_filter: Optional[str] = None) -> List[IssueDescriptor]:
        """Return descriptors in registration order.

        With a filter, a descriptor is included when its category matches
        the filter case-insensitively or its id starts with
        ``<filter>:``.
        """
        if not category_filter:
            return list(self._issues.values())
        normalized = category_filter.lower()
        return [
            issue
            for issue in self._issues.values()
            if issue.category.lower() == normalized or issue.id.startswith(f"{normalized}:")
        ]

    def __contains__(self, issue_id: object) -> bool:
        return issue_id in self._issues

    def __len__(self) -> int:
        return len(self._issues)


def build_registry(categories: Iterable[Category]) -> IssueRegistry:
    """Build and freeze a registry from ``categories``."""
    registry = IssueRegistry()
    for category in categories:
        registry.register_category(category)
    registry.freeze()
    return registry


def builtin_categories() -> Tuple[Category, ...]:
    """Return the built-in categories in presentation order."""
    # Imported here so check modules can import registry helpers freely.
    from .checks import operations, performance, replication, security, storage

    return (
        Category("performance", "Performance & Querying", performance.ISSUES),
        Category("replication", "Replication & Resilience", replication.ISSUES),
        Category("storage", "Storage & Capacity", storage.ISSUES),
        Category("operations", "Operations & Runtime", operations.ISSUES),
        Category("security", "Security & Access Control", security.ISSUES),
    )


@lru_cache(maxsize=1)
def default_registry() -> IssueRegistry:
    """Return the process-wide registry of built-in checks."""
    return build_registry(builtin_categories())
