"""CompareRunsUseCase — diff the two latest runs of each product.

A product with fewer than two snapshots is skipped with a warning, and a
snapshot that cannot be read fails only that product's comparison.  Other
products are always processed.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

from greenkpi.domain.common.errors import SnapshotIntegrityError, ValidationError
from greenkpi.domain.history.diff import DiffResult, diff_snapshots
from greenkpi.domain.history.models import SnapshotRef
from greenkpi.domain.history.ports import SnapshotRepository

logger = logging.getLogger(__name__)


# ── Query (input) ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class CompareRunsQuery:
    """Immutable value object describing the compare-runs request.

    ``products=None`` compares every product the repository knows.
    """

    products: tuple[str, ...] | None = None
    noteworthy_thresholds: Mapping[str, float] | None = None

    def __post_init__(self) -> None:
        if self.products is not None:
            if isinstance(self.products, str):
                raise ValidationError("products must be a sequence of names")
            if not all(p and p.strip() for p in self.products):
                raise ValidationError("product names must not be empty")
            object.__setattr__(self, "products", tuple(self.products))


# ── Result (output) ────────────────────────────────────────────────────


class ComparisonStatus(str, Enum):
    COMPARED = "compared"
    SKIPPED = "skipped"  # fewer than two snapshots
    FAILED = "failed"  # a snapshot could not be loaded


@dataclass(frozen=True)
class ProductComparison:
    """Outcome for one product."""

    product: str
    status: ComparisonStatus
    diff: DiffResult | None = None
    base_ref: SnapshotRef | None = None
    head_ref: SnapshotRef | None = None
    message: str = ""


@dataclass(frozen=True)
class CompareRunsResult:
    """What the use case returns to the caller."""

    comparisons: tuple[ProductComparison, ...]

    def _with(self, status: ComparisonStatus) -> tuple[ProductComparison, ...]:
        return tuple(c for c in self.comparisons if c.status == status)

    @property
    def compared(self) -> tuple[ProductComparison, ...]:
        return self._with(ComparisonStatus.COMPARED)

    @property
    def skipped(self) -> tuple[ProductComparison, ...]:
        return self._with(ComparisonStatus.SKIPPED)

    @property
    def failed(self) -> tuple[ProductComparison, ...]:
        return self._with(ComparisonStatus.FAILED)


# ── Use Case ───────────────────────────────────────────────────────────


class CompareRunsUseCase:
    """Compare the two most recent snapshots of each requested product."""

    def compare_refs(
        self,
        repository: SnapshotRepository,
        base_ref: SnapshotRef,
        head_ref: SnapshotRef,
        noteworthy_thresholds: Mapping[str, float] | None = None,
    ) -> ProductComparison:
        """Diff two specific snapshots; load and product errors become FAILED."""
        product = head_ref.product or base_ref.product
        try:
            base = repository.load(base_ref)
            head = repository.load(head_ref)
            diff = diff_snapshots(base, head, noteworthy_thresholds)
        except (SnapshotIntegrityError, ValidationError) as exc:
            logger.error("[diff] compare failed for %s: %s", product, exc)
            return ProductComparison(
                product=product,
                status=ComparisonStatus.FAILED,
                base_ref=base_ref,
                head_ref=head_ref,
                message=str(exc),
            )

        logger.info(
            "[diff] %s: %s → %s (%+d), %d page(s)",
            product, base_ref.label, head_ref.label, diff.score_delta, len(diff.pages),
        )
        return ProductComparison(
            product=diff.product,
            status=ComparisonStatus.COMPARED,
            diff=diff,
            base_ref=base_ref,
            head_ref=head_ref,
        )

    def execute(
        self, repository: SnapshotRepository, query: CompareRunsQuery
    ) -> CompareRunsResult:
        products = query.products if query.products is not None else tuple(repository.products())

        comparisons = []
        for product in products:
            refs = repository.list_refs(product)
            if len(refs) < 2:
                logger.warning(
                    "[diff] Not enough snapshots for %s (%d found)", product, len(refs)
                )
                comparisons.append(ProductComparison(
                    product=product,
                    status=ComparisonStatus.SKIPPED,
                    message=f"{len(refs)} snapshot(s) available, 2 required",
                ))
                continue
            comparisons.append(self.compare_refs(
                repository, refs[-2], refs[-1], query.noteworthy_thresholds
            ))

        return CompareRunsResult(comparisons=tuple(comparisons))
