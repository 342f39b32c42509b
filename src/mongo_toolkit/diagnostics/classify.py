"""Threshold-to-status classification shared by the numeric checks.

Every numeric check computes one continuous metric and maps it onto a
status with two cutoffs.  The critical cutoff is always evaluated first,
so a metric that meets it is ``critical`` regardless of the warn cutoff.
"""

from __future__ import annotations

from .models import CheckStatus


def classify_high(
    value: float,
    *,
    warn: float,
    critical: float,
    strict: bool = False,
    healthy: CheckStatus = "ok",
) -> CheckStatus:
    """Classify a metric where higher values are worse.

    Args:
        value: The measured metric (a ratio, a duration in seconds, ...).
        warn: Cutoff at which the metric becomes ``warn``.
        critical: Cutoff at which the metric becomes ``critical``.
        strict: Compare with ``>`` instead of ``>=``, so a metric exactly
            at a cutoff stays in the milder band.
        healthy: Status returned when neither cutoff is met.

    Returns:
        ``critical``, ``warn`` or ``healthy``.
    """
    if strict:
        if value > critical:
            return "critical"
        if value > warn:
            return "warn"
        return healthy
    if value >= critical:
        return "critical"
    if value >= warn:
        return "warn"
    return healthy


def classify_low(
    value: float,
    *,
    warn: float,
    critical: float,
    healthy: CheckStatus = "ok",
) -> CheckStatus:
    """Classify a metric where lower values are worse.

    The critical cutoff is the smaller of the two and is checked first.
    Both comparisons are strict, so a metric exactly at a cutoff falls in
    the milder band.
    """
    if value < critical:
        return "critical"
    if value < warn:
        return "warn"
    return healthy
