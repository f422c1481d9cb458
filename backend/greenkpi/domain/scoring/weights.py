"""Weight resolution: sparse raw weights -> effective weights summing to 1."""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping

from .catalog import DEFAULT_WEIGHTS, SCORABLE_METRICS


def _usable(weight: object) -> float:
    """Raw weights that are not finite non-negative numbers count as 0."""
    if isinstance(weight, bool) or not isinstance(weight, (int, float)):
        return 0.0
    if not math.isfinite(weight) or weight < 0:
        return 0.0
    return float(weight)


def resolve_weights(
    raw_weights: Mapping[str, float] | None,
    metric_list: Iterable[str] | None = None,
) -> dict[str, float]:
    """Fill defaults for missing metrics and normalize to a sum of 1.

    Every name in *metric_list* (catalog order by default) is guaranteed a
    key.  A metric with neither a configured nor a default weight gets 0.
    When every weight is zero the divisor is treated as 1, so all effective
    weights come out as 0 instead of raising.
    """
    raw = raw_weights or {}
    metrics = tuple(metric_list) if metric_list is not None else SCORABLE_METRICS

    filled: dict[str, float] = {}
    for name in metrics:
        if name in raw:
            filled[name] = _usable(raw[name])
        else:
            filled[name] = _usable(DEFAULT_WEIGHTS.get(name, 0.0))

    total = sum(filled.values()) or 1.0
    return {name: weight / total for name, weight in filled.items()}


__all__ = ["resolve_weights"]
