"""ScoreProductUseCase — score every page of a product and snapshot the run.

This use case contains the business rules for one product run:
  1. Score each page's metrics with the composite scorer
  2. Resolve each page's weight in the product mean
  3. Thread a ProductAccumulator through the page results
  4. Finalize score100 / grade / score5 and build the RunSnapshot
  5. Persist the snapshot through the SnapshotRepository port (optional)

Pages are independent, so scoring may run on a thread pool; the snapshot
always lists pages in input order.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone

from greenkpi.domain.common.errors import ValidationError
from greenkpi.domain.history.models import PageRunEntry, RunSnapshot, SnapshotRef
from greenkpi.domain.history.ports import SnapshotRepository
from greenkpi.domain.scoring.aggregate import (
    ProductAccumulator,
    ProductScore,
    finalize_product,
    resolve_page_weight,
)
from greenkpi.domain.scoring.composite import ScoringConfig, compute_composite_score
from greenkpi.domain.scoring.models import CompositeScoreResult

logger = logging.getLogger(__name__)


# ── Command (input) ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class PageMeasurement:
    """Metrics collected for one page, plus its optional explicit weight."""

    name: str
    url: str | None
    metrics: Mapping[str, object]
    weight: float | None = None


@dataclass(frozen=True)
class ScoreProductCommand:
    """Immutable value object describing the product run to score."""

    product: str
    pages: tuple[PageMeasurement, ...]
    timestamp: datetime | None = None
    max_workers: int = 1

    def __post_init__(self) -> None:
        if not self.product or not self.product.strip():
            raise ValidationError("product must not be empty")
        if not self.pages:
            raise ValidationError("at least one page is required")
        if self.max_workers < 1:
            raise ValidationError("max_workers must be >= 1")
        if not isinstance(self.pages, tuple):
            object.__setattr__(self, "pages", tuple(self.pages))


# ── Result (output) ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class ScoreProductResult:
    """What the use case returns to the caller."""

    snapshot: RunSnapshot
    product_score: ProductScore
    page_results: tuple[CompositeScoreResult, ...]
    ref: SnapshotRef | None = None


# ── Use Case ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class RecordedConfig:
    """The configuration as written by the operator, stored in each snapshot."""

    weights: Mapping[str, float] | None = None
    thresholds: Mapping[str, object] | None = None
    score_ceilings: tuple[Mapping[str, object], ...] | None = None
    page_weights: Mapping[str, object] = field(default_factory=dict)


class ScoreProductUseCase:
    """Score a product's pages: score → weight → accumulate → snapshot."""

    def __init__(
        self,
        scoring: ScoringConfig,
        recorded: RecordedConfig | None = None,
    ) -> None:
        self._scoring = scoring
        self._recorded = recorded or RecordedConfig()

    def _score_page(self, page: PageMeasurement) -> CompositeScoreResult:
        return compute_composite_score(page.metrics, self._scoring)

    def execute(
        self,
        command: ScoreProductCommand,
        repository: SnapshotRepository | None = None,
    ) -> ScoreProductResult:
        if command.max_workers > 1:
            with ThreadPoolExecutor(max_workers=command.max_workers) as pool:
                results = list(pool.map(self._score_page, command.pages))
        else:
            results = [self._score_page(page) for page in command.pages]

        accumulator = ProductAccumulator()
        for page, result in zip(command.pages, results):
            weight = resolve_page_weight(
                command.product, page.name, page.weight, self._recorded.page_weights
            )
            entry = PageRunEntry(
                name=page.name,
                url=page.url,
                score=result.score,
                grade=result.grade.value,
                weight=weight,
                metrics=dict(page.metrics),
                contributions=dict(result.per_metric_contribution),
                normalized_sub_scores=dict(result.normalized_sub_scores),
                effective_weights=dict(result.effective_weights),
                ceiling_applied=result.ceiling_applied,
                scale_factor=result.scale_factor,
            )
            accumulator = accumulator.add(result.score, weight, entry)

            ceiling_note = (
                f" | Ceiling: {result.ceiling_applied}"
                if result.ceiling_applied < 100 else ""
            )
            logger.info(
                "[%s] %s KPI: %s (%d)%s",
                command.product, page.name, result.grade.value, result.score, ceiling_note,
            )
            if result.missing_metrics:
                logger.warning(
                    "[%s] %s: %d metric(s) missing, scored as 0/false: %s",
                    command.product, page.name, len(result.missing_metrics),
                    ", ".join(result.missing_metrics),
                )

        product_score = finalize_product(accumulator, self._scoring.scale)
        snapshot = RunSnapshot(
            product=command.product,
            timestamp=command.timestamp or datetime.now(timezone.utc),
            score100=product_score.score100,
            grade=product_score.grade.value,
            score5=product_score.score5,
            pages=tuple(accumulator.entries),  # type: ignore[arg-type]
            weight_config=self._recorded.weights,
            threshold_config=self._recorded.thresholds,
            ceiling_config=self._recorded.score_ceilings,
        )
        logger.info(
            "[%s] Global: %s | %d/100 | %s/5",
            command.product, snapshot.grade, snapshot.score100, snapshot.score5,
        )

        ref = repository.save(snapshot) if repository is not None else None
        return ScoreProductResult(
            snapshot=snapshot,
            product_score=product_score,
            page_results=tuple(results),
            ref=ref,
        )
