"""Models for the diagnostic engine.

Each check produces a :class:`CheckResult` describing its computed
status, a human-readable summary, optional structured details and an
optional recommendation.  Checks themselves are described by immutable
:class:`IssueDescriptor` records grouped into :class:`Category` entries.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, Dict, FrozenSet, Literal, Mapping, Optional, Tuple

from pydantic import BaseModel
from pymongo.errors import PyMongoError

from ..errors import DataUnavailable, ToolkitError
from ..logging import get_logger

if TYPE_CHECKING:
    from .context import DiagnosticContext

logger = get_logger(__name__)

# Computed per-run verdicts.  ``ok`` means nothing needs attention,
# ``warn`` and ``critical`` are graded risks, ``error`` means the check
# could not reach a verdict, and ``info`` is used by purely informational
# checks or when the probed feature does not apply to the deployment.
CheckStatus = Literal["ok", "warn", "critical", "error", "info"]

DEFAULT_ERROR_RECOMMENDATION = (
    "Connect with a user that holds the required privileges or enable the probed feature."
)


class CheckResult(BaseModel):
    """Result of a single diagnostic check.

    Attributes:
        status: The computed verdict.
        summary: A human-readable one-line description of the outcome.
        details: Optional structured details.  The shape is specific to
            each check (a mapping, or a list of offender rows).
        recommendation: Optional remediation text.
    """

    status: CheckStatus
    summary: str
    details: Optional[Any] = None
    recommendation: Optional[str] = None


RunFn = Callable[["DiagnosticContext"], CheckResult]


@dataclass(frozen=True)
class IssueDescriptor:
    """Static description of one diagnostic check.

    ``severity`` is a metadata label describing how serious a problem in
    this area usually is; it is unrelated to the status a run computes.
    ``options`` holds the declared defaults for every option the check
    understands, and ``threshold_alias`` names the option the generic
    ``threshold`` override stands in for (``None`` when the check has no
    such alias).  ``minimums`` holds the smallest value accepted for
    an overridden option.
    """

    id: str
    category: str
    title: str
    severity: str
    description: str
    run: RunFn = field(repr=False, compare=False)
    tags: FrozenSet[str] = frozenset()
    options: Mapping[str, Any] = field(default_factory=dict)
    threshold_alias: Optional[str] = None
    minimums: Mapping[str, Any] = field(default_factory=dict)
    error_recommendation: str = DEFAULT_ERROR_RECOMMENDATION

    def __post_init__(self) -> None:
        object.__setattr__(self, "tags", frozenset(self.tags))
        object.__setattr__(self, "options", MappingProxyType(dict(self.options)))
        object.__setattr__(self, "minimums", MappingProxyType(dict(self.minimums)))

    def __hash__(self) -> int:
        return hash(self.id)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, IssueDescriptor):
            return NotImplemented
        return self.id == other.id

    def execute(self, context: "DiagnosticContext") -> CheckResult:
        """Run the check, converting escaped failures into an error result.

        The check sees a view of ``context`` whose options are resolved
        against this descriptor's own defaults, so checks sharing one
        context never read each other's cutoffs.

        A :class:`DataUnavailable` becomes an ``info`` or ``warn`` result.
        Command and driver failures never propagate past this call, so a
        caller running several checks can always continue with the next
        one.
        """
        try:
            return self.run(context.scoped_to(self))
        except DataUnavailable as exc:
            logger.debug("Check %s not applicable: %s", self.id, exc)
            return CheckResult(
                status=exc.status,
                summary=str(exc),
                details=exc.details,
                recommendation=exc.recommendation,
            )
        except (ToolkitError, PyMongoError) as exc:
            logger.warning("Check %s failed: %s", self.id, exc)
            return CheckResult(
                status="error",
                summary=f"{self.title} could not be evaluated: {exc}",
                details={"message": str(exc)},
                recommendation=self.error_recommendation,
            )

    def to_dict(self) -> Dict[str, Any]:
        """Return the JSON-friendly metadata of this descriptor."""
        return {
            "id": self.id,
            "category": self.category,
            "title": self.title,
            "severity": self.severity,
            "tags": sorted(self.tags),
            "description": self.description,
            "options": dict(self.options),
        }


@dataclass(frozen=True)
class Category:
    """A titled group of issue descriptors in registration order."""

    id: str
    title: str
    issues: Tuple[IssueDescriptor, ...] = ()
