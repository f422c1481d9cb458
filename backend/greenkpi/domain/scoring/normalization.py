"""Threshold normalization: raw metric value -> 0..100 sub-score.

All functions are pure: no I/O, no side effects, fully deterministic.
"""

from __future__ import annotations

import math

from .models import STANDARD_SCALE, Direction, ScoringScale, ThresholdBand


def normalize(
    value: float,
    band: ThresholdBand,
    scale: ScoringScale = STANDARD_SCALE,
) -> int:
    """Map *value* onto one of the five tiers of *scale* using *band*.

    Lower-is-better: ``value <= t0`` is the best tier, ``<= t1`` the next
    and so on; anything above ``t3`` is the worst tier.  Higher-is-better
    mirrors the comparisons, so ``value >= t3`` is the best tier.  Values
    are never clamped; out-of-range values simply fall into an end tier.
    NaN matches no comparison and therefore lands in the worst tier.
    """
    t0, t1, t2, t3 = band.cut_points
    tiers = scale.tiers

    if band.direction is Direction.HIGHER_BETTER:
        if value >= t3:
            return tiers[0]
        if value >= t2:
            return tiers[1]
        if value >= t1:
            return tiers[2]
        if value >= t0:
            return tiers[3]
        return tiers[4]

    if value <= t0:
        return tiers[0]
    if value <= t1:
        return tiers[1]
    if value <= t2:
        return tiers[2]
    if value <= t3:
        return tiers[3]
    return tiers[4]


def normalize_boolean(
    flag: bool,
    scale: ScoringScale = STANDARD_SCALE,
    favorable_when: bool = False,
) -> int:
    """Two-valued score for flags such as ``hstsMissing``.

    By default a *true* flag is the unfavorable outcome ("HSTS missing",
    "fonts hosted externally").
    """
    if bool(flag) == favorable_when:
        return scale.boolean_favorable
    return scale.boolean_unfavorable


def coerce_numeric(value: object) -> float | None:
    """Return *value* as a float, or None when it cannot be scored.

    Booleans count as 0/1.  Strings, None, containers and NaN are
    rejected.
    """
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        as_float = float(value)
        if math.isnan(as_float):
            return None
        return as_float
    return None


def coerce_boolean(value: object) -> bool | None:
    """Return *value* as a flag, or None when it cannot be scored.

    Numbers are accepted (non-zero is true) since collectors sometimes
    emit 0/1 instead of false/true.
    """
    if isinstance(value, bool):
        return value
    numeric = coerce_numeric(value)
    if numeric is None:
        return None
    return numeric != 0


def normalize_metric(
    value: object,
    band: ThresholdBand | None,
    direction: Direction,
    scale: ScoringScale = STANDARD_SCALE,
) -> tuple[int, bool]:
    """Score one raw metric value; return ``(sub_score, usable)``.

    Boolean metrics take the two-valued path, numeric metrics go through
    their band.  An unusable value (missing, text, NaN) is scored as 0 or
    false and reported with ``usable=False``.  A numeric metric without a
    band can only land in the worst tier.
    """
    if direction is Direction.BOOLEAN:
        flag = coerce_boolean(value)
        return normalize_boolean(bool(flag), scale), flag is not None

    numeric = coerce_numeric(value)
    if band is None:
        return scale.tiers[-1], numeric is not None
    return normalize(numeric if numeric is not None else 0.0, band, scale), numeric is not None


__all__ = [
    "coerce_boolean",
    "coerce_numeric",
    "normalize",
    "normalize_boolean",
    "normalize_metric",
]
