"""Scoring domain: threshold normalization, weights, ceilings, grades."""

from .composite import (  # noqa: F401 – re-export for convenience
    ScoringConfig,
    compute_composite_score,
    score_metrics,
)
