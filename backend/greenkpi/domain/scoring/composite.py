"""Composite page score: normalize, weight, cap, round, grade.

The scorer is a pure function of (metrics, config).  It never raises for
bad metric data: missing or unusable values are scored as 0 / false and
reported through ``CompositeScoreResult.missing_metrics``.  Because no
state is shared between calls, pages may be scored concurrently.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from ..common.rounding import round_half_up
from ..common.types import MetricsRecord
from .catalog import (
    DEFAULT_THRESHOLDS,
    SCORABLE_METRICS,
    direction_for,
)
from .grading import grade_for
from .models import STANDARD_SCALE, CompositeScoreResult, ScoringScale, ThresholdBand
from .normalization import normalize_metric
from .rules import MAX_SCORE, CeilingRule, evaluate_ceiling
from .weights import resolve_weights

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoringConfig:
    """Validated, ready-to-use scoring configuration.

    Built once at configuration-load time; ``effective_weights`` is
    resolved eagerly so every scoring call sees the same normalized map.
    """

    raw_weights: Mapping[str, float] = field(default_factory=dict)
    thresholds: Mapping[str, ThresholdBand] = field(
        default_factory=lambda: dict(DEFAULT_THRESHOLDS)
    )
    ceiling_rules: tuple[CeilingRule, ...] = ()
    scale: ScoringScale = STANDARD_SCALE
    metrics: tuple[str, ...] = SCORABLE_METRICS
    effective_weights: Mapping[str, float] = field(init=False)

    def __post_init__(self) -> None:
        merged = dict(DEFAULT_THRESHOLDS)
        merged.update(self.thresholds)
        object.__setattr__(self, "thresholds", merged)
        object.__setattr__(
            self, "effective_weights", resolve_weights(self.raw_weights, self.metrics)
        )

    @classmethod
    def build(
        cls,
        weights: Mapping[str, float] | None = None,
        thresholds: Mapping[str, Sequence[float] | ThresholdBand] | None = None,
        ceilings: Sequence[Mapping[str, object]] | None = None,
        scale: ScoringScale = STANDARD_SCALE,
    ) -> "ScoringConfig":
        """Compile the plain ``weights / thresholds / score_ceilings`` shape.

        Raises ConfigurationError for any malformed band or rule, so a bad
        configuration is rejected before any page is scored.
        """
        bands: dict[str, ThresholdBand] = {}
        for name, band in (thresholds or {}).items():
            bands[name] = (
                band if isinstance(band, ThresholdBand)
                else ThresholdBand.of(band, direction_for(name))
            )
        rules = tuple(
            CeilingRule.parse(rule.get("if"), rule.get("max_score"))  # type: ignore[arg-type]
            for rule in (ceilings or ())
        )
        return cls(
            raw_weights=dict(weights or {}),
            thresholds=bands,
            ceiling_rules=rules,
            scale=scale,
        )


def compute_composite_score(
    metrics: MetricsRecord,
    config: ScoringConfig,
) -> CompositeScoreResult:
    """Score one page's metrics record.

    1. Normalize every scorable metric into a 0..100 sub-score.
    2. Multiply by its effective weight.
    3. Scale all contributions by ``ceiling / 100`` when a ceiling rule
       caps the page below 100.
    4. Round the sum and clamp it into ``[0, ceiling]``.
    5. Grade the final clamped score.
    """
    sub_scores: dict[str, int] = {}
    missing: list[str] = []
    for name in config.metrics:
        value = metrics.get(name)
        score, usable = normalize_metric(
            value, config.thresholds.get(name), direction_for(name), config.scale
        )
        sub_scores[name] = score
        if not usable:
            missing.append(name)

    if missing:
        logger.debug("Metrics missing or unusable, scored as 0/false: %s", ", ".join(missing))

    weights = dict(config.effective_weights)
    contributions = {
        name: sub_scores[name] * weights.get(name, 0.0) for name in config.metrics
    }

    ceiling = evaluate_ceiling(metrics, config.ceiling_rules)
    scale_factor = ceiling / MAX_SCORE if ceiling < MAX_SCORE else 1.0
    if scale_factor != 1.0:
        contributions = {name: part * scale_factor for name, part in contributions.items()}

    score = round_half_up(sum(contributions.values()))
    score = max(0, min(ceiling, score))

    return CompositeScoreResult(
        score=score,
        grade=grade_for(score, config.scale),
        per_metric_contribution=contributions,
        normalized_sub_scores=sub_scores,
        effective_weights=weights,
        ceiling_applied=ceiling,
        scale_factor=scale_factor,
        missing_metrics=tuple(missing),
    )


def score_metrics(
    metrics: MetricsRecord,
    weights: Mapping[str, float] | None = None,
    thresholds: Mapping[str, Sequence[float]] | None = None,
    ceilings: Sequence[Mapping[str, object]] | None = None,
    scale: ScoringScale = STANDARD_SCALE,
) -> CompositeScoreResult:
    """Convenience wrapper: compile a plain config, then score once.

    Prefer building a :class:`ScoringConfig` once and reusing it when
    scoring many pages.
    """
    config = ScoringConfig.build(weights, thresholds, ceilings, scale)
    return compute_composite_score(metrics, config)


__all__ = [
    "ScoringConfig",
    "compute_composite_score",
    "score_metrics",
]
