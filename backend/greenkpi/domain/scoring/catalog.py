"""Catalog of scorable page metrics and their defaults.

Each entry fixes a metric's direction, its default raw weight and (for
numeric metrics) its default threshold band.  Catalog order is the order
in which sub-scores and contributions are reported.
"""

from __future__ import annotations

from dataclasses import dataclass

from .models import Direction, ThresholdBand


@dataclass(frozen=True)
class MetricSpec:
    """Static description of one scorable metric."""

    name: str
    direction: Direction
    default_weight: float
    default_band: ThresholdBand | None = None  # None for boolean metrics

    @property
    def is_boolean(self) -> bool:
        return self.direction is Direction.BOOLEAN


def _lower(name: str, weight: float, *cuts: float) -> MetricSpec:
    return MetricSpec(
        name, Direction.LOWER_BETTER, weight,
        ThresholdBand(tuple(cuts), Direction.LOWER_BETTER),  # type: ignore[arg-type]
    )


def _higher(name: str, weight: float, *cuts: float) -> MetricSpec:
    return MetricSpec(
        name, Direction.HIGHER_BETTER, weight,
        ThresholdBand(tuple(cuts), Direction.HIGHER_BETTER),  # type: ignore[arg-type]
    )


def _flag(name: str, weight: float) -> MetricSpec:
    return MetricSpec(name, Direction.BOOLEAN, weight)


METRIC_CATALOG: tuple[MetricSpec, ...] = (
    _lower("requests", 0.40, 27, 50, 80, 120),
    _lower("transferKB", 0.25, 300, 800, 1500, 2500),
    _lower("domSize", 0.15, 800, 1500, 2500, 4000),
    _lower("uniqueDomains", 0.10, 6, 10, 15, 20),
    _higher("compressedPct", 0.05, 50, 70, 85, 95),
    _higher("minifiedPct", 0.05, 50, 70, 85, 95),
    _lower("inlineStyles", 0.02, 0, 1, 3, 6),
    _lower("inlineScripts", 0.02, 0, 1, 3, 6),
    _lower("cssFiles", 0.02, 3, 6, 10, 14),
    _lower("jsFiles", 0.02, 5, 10, 20, 35),
    _lower("resizedImages", 0.01, 0, 1, 3, 6),
    _lower("hiddenDownloadedImages", 0.01, 0, 1, 3, 6),
    _lower("staticWithCookies", 0.01, 0, 1, 3, 6),
    _lower("redirects", 0.01, 0, 1, 3, 6),
    _lower("errors", 0.01, 0, 1, 2, 4),
    _flag("fontsExternal", 0.01),
    _lower("belowFoldNoLazy", 0.01, 0, 1, 2, 4),
    _lower("staticNoCache", 0.01, 0, 1, 3, 6),
    _lower("imageLegacyPct", 0.01, 20, 40, 60, 70),
    _lower("wastedImagePct", 0.01, 5, 6, 8, 10),
    _flag("hstsMissing", 0.01),
    _lower("cookieHeaderAvg", 0.01, 1024, 2048, 3072, 4096),
)

METRICS_BY_NAME: dict[str, MetricSpec] = {spec.name: spec for spec in METRIC_CATALOG}

SCORABLE_METRICS: tuple[str, ...] = tuple(spec.name for spec in METRIC_CATALOG)

DEFAULT_WEIGHTS: dict[str, float] = {
    spec.name: spec.default_weight for spec in METRIC_CATALOG
}

DEFAULT_THRESHOLDS: dict[str, ThresholdBand] = {
    spec.name: spec.default_band
    for spec in METRIC_CATALOG
    if spec.default_band is not None
}

BOOLEAN_METRICS: frozenset[str] = frozenset(
    spec.name for spec in METRIC_CATALOG if spec.is_boolean
)


def direction_for(metric: str) -> Direction:
    """Direction of a catalog metric; unknown metrics are lower-is-better."""
    spec = METRICS_BY_NAME.get(metric)
    return spec.direction if spec is not None else Direction.LOWER_BETTER


__all__ = [
    "BOOLEAN_METRICS",
    "DEFAULT_THRESHOLDS",
    "DEFAULT_WEIGHTS",
    "METRICS_BY_NAME",
    "METRIC_CATALOG",
    "MetricSpec",
    "SCORABLE_METRICS",
    "direction_for",
]
