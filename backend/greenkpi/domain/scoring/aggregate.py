"""Product-level aggregation of page scores.

The product score is the weighted mean of its page scores.  Totals are
carried in an immutable accumulator that each scoring step returns a new
copy of, so per-page scoring can run in any order or in parallel and the
partial results can be merged afterwards.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass

from ..common.rounding import round_half_up
from .grading import grade_for
from .models import STANDARD_SCALE, Grade, ScoringScale

DEFAULT_PAGE_WEIGHT = 1.0


@dataclass(frozen=True)
class ProductAccumulator:
    """Running totals for one product.

    ``entries`` is generic so the scoring layer does not depend on the
    snapshot model; use cases store their page entries in it.
    """

    sum_weighted_score: float = 0.0
    sum_weights: float = 0.0
    entries: tuple[object, ...] = ()

    def add(self, score: float, weight: float, entry: object = None) -> "ProductAccumulator":
        """Return a new accumulator that includes one more page."""
        entries = self.entries if entry is None else self.entries + (entry,)
        return ProductAccumulator(
            sum_weighted_score=self.sum_weighted_score + score * weight,
            sum_weights=self.sum_weights + weight,
            entries=entries,
        )

    def merge(self, other: "ProductAccumulator") -> "ProductAccumulator":
        """Combine two partial accumulators (self's entries first)."""
        return ProductAccumulator(
            sum_weighted_score=self.sum_weighted_score + other.sum_weighted_score,
            sum_weights=self.sum_weights + other.sum_weights,
            entries=self.entries + other.entries,
        )

    @property
    def weighted_mean(self) -> float:
        if self.sum_weights <= 0:
            return 0.0
        return self.sum_weighted_score / self.sum_weights


@dataclass(frozen=True)
class ProductScore:
    """Final product score in the three forms persisted with a run."""

    score100: int
    grade: Grade
    score5: str  # one decimal, e.g. "3.8"
    weighted_mean: float


def finalize_product(
    accumulator: ProductAccumulator,
    scale: ScoringScale = STANDARD_SCALE,
) -> ProductScore:
    """Round the weighted mean and derive grade and /5 score."""
    mean = accumulator.weighted_mean
    score100 = round_half_up(mean) if accumulator.sum_weights > 0 else 0
    return ProductScore(
        score100=score100,
        grade=grade_for(score100, scale),
        score5=f"{score100 / 20:.1f}",
        weighted_mean=mean,
    )


def resolve_page_weight(
    product: str,
    page_name: str,
    explicit: float | None = None,
    page_weights: Mapping[str, object] | None = None,
) -> float:
    """Pick a page's weight in the product mean.

    Order: an explicit weight on the page, then
    ``page_weights[product][page]``, then ``page_weights[page]``, then 1.
    """
    if _is_weight(explicit):
        return float(explicit)  # type: ignore[arg-type]
    table = page_weights or {}
    per_product = table.get(product)
    if isinstance(per_product, Mapping) and _is_weight(per_product.get(page_name)):
        return float(per_product[page_name])
    direct = table.get(page_name)
    if _is_weight(direct):
        return float(direct)  # type: ignore[arg-type]
    return DEFAULT_PAGE_WEIGHT


def _is_weight(value: object) -> bool:
    return (
        not isinstance(value, bool)
        and isinstance(value, (int, float))
        and math.isfinite(value)
        and value >= 0
    )


__all__ = [
    "DEFAULT_PAGE_WEIGHT",
    "ProductAccumulator",
    "ProductScore",
    "finalize_product",
    "resolve_page_weight",
]
