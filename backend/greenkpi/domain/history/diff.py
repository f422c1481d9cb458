"""Run-to-run comparison of two snapshots of the same product.

All functions are pure: no I/O, no side effects, fully deterministic.
The result is plain data for a report renderer: a global score/grade
delta, one row per page ordered worst regression first, the biggest
contribution changes per page, and raw metric movements large enough to
be worth a reader's attention.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime

from ..common.errors import ValidationError
from ..common.rounding import round_half_up
from .models import PageRunEntry, RunSnapshot

TOP_CONTRIBUTION_CHANGES = 5

UNKNOWN_GRADE = "?"
ABSENT_PAGE = "—"

TRACKED_METRICS: tuple[str, ...] = (
    "requests",
    "transferKB",
    "domSize",
    "uniqueDomains",
    "compressedPct",
    "minifiedPct",
    "inlineStyles",
    "inlineScripts",
    "cssFiles",
    "jsFiles",
    "resizedImages",
    "hiddenDownloadedImages",
    "belowFoldNoLazy",
    "staticNoCache",
    "staticShortCache",
    "staticWithCookies",
    "imageLegacyPct",
    "wastedImagePct",
    "errors",
    "redirects",
    "cookieHeaderAvg",
)

DEFAULT_NOTEWORTHY_THRESHOLDS: dict[str, float] = {
    "requests": 5,
    "transferKB": 250,
    "domSize": 200,
    "uniqueDomains": 2,
    "compressedPct": 5,
    "minifiedPct": 5,
    "staticNoCache": 2,
    "staticShortCache": 2,
    "staticWithCookies": 1,
    "imageLegacyPct": 5,
    "wastedImagePct": 5,
    "errors": 1,
    "redirects": 1,
}


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GradeTransition:
    """Grade before and after; renders as ``B`` or ``B → C``."""

    base: str
    head: str

    @property
    def changed(self) -> bool:
        return self.base != self.head

    def __str__(self) -> str:
        return self.base if not self.changed else f"{self.base} → {self.head}"


@dataclass(frozen=True)
class ContributionDelta:
    """Rounded change of one metric's weighted contribution."""

    metric: str
    delta: int


@dataclass(frozen=True)
class MetricChange:
    """A raw metric movement that met its noteworthy threshold."""

    metric: str
    base_value: object
    head_value: object
    delta: float


@dataclass(frozen=True)
class PageDiff:
    """Comparison of one page between base and head.

    ``base_score`` is None for a page new in head; ``head_score`` is None
    for a page that disappeared.  For such one-sided pages ``delta`` is
    the head score, or minus the base score.
    """

    key: str
    name: str
    base_score: int | None
    head_score: int | None
    delta: int
    grade_transition: GradeTransition
    weight: float
    regressions: tuple[ContributionDelta, ...] = ()
    improvements: tuple[ContributionDelta, ...] = ()
    noteworthy: tuple[MetricChange, ...] = ()
    ceiling_change: tuple[int, int] | None = None

    @property
    def status(self) -> str:
        if self.base_score is None:
            return "added"
        if self.head_score is None:
            return "removed"
        return "unchanged" if self.delta == 0 else "changed"


@dataclass(frozen=True)
class DiffResult:
    """Everything a diff report needs, computed from two snapshots."""

    product: str
    base_timestamp: datetime
    head_timestamp: datetime
    base_score: int
    head_score: int
    score_delta: int
    grade_transition: GradeTransition
    pages: tuple[PageDiff, ...]

    @property
    def added_pages(self) -> tuple[PageDiff, ...]:
        return tuple(p for p in self.pages if p.status == "added")

    @property
    def removed_pages(self) -> tuple[PageDiff, ...]:
        return tuple(p for p in self.pages if p.status == "removed")

    @property
    def noteworthy_changes(self) -> tuple[tuple[str, MetricChange], ...]:
        """(page name, change) for every noteworthy movement across pages."""
        return tuple((p.name, c) for p in self.pages for c in p.noteworthy)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _index_pages(pages: tuple[PageRunEntry, ...]) -> dict[str, PageRunEntry]:
    """Key pages case-insensitively; a later duplicate replaces an earlier one."""
    index: dict[str, PageRunEntry] = {}
    for page in pages:
        if page.key:
            index[page.key] = page
    return index


def _page_score(page: PageRunEntry | None) -> int | None:
    if page is None:
        return None
    return round_half_up(page.score if _is_number(page.score) else 0)


def _page_grade(page: PageRunEntry | None) -> str:
    if page is None:
        return ABSENT_PAGE
    return page.grade or UNKNOWN_GRADE


def _page_delta(base_score: int | None, head_score: int | None) -> int:
    if base_score is not None and head_score is not None:
        return head_score - base_score
    if head_score is not None:
        return head_score
    if base_score is not None:
        return -base_score
    return 0


def contribution_deltas(
    base: Mapping[str, object] | None,
    head: Mapping[str, object] | None,
) -> dict[str, int]:
    """Rounded head-minus-base contribution per metric in either breakdown."""
    base = base or {}
    head = head or {}
    keys = list(dict.fromkeys([*base.keys(), *head.keys()]))
    deltas: dict[str, int] = {}
    for key in keys:
        before = base.get(key)
        after = head.get(key)
        before_num = before if _is_number(before) else 0
        after_num = after if _is_number(after) else 0
        deltas[key] = round_half_up(after_num - before_num)  # type: ignore[operator]
    return deltas


def top_changes(
    deltas: Mapping[str, int], limit: int = TOP_CONTRIBUTION_CHANGES
) -> tuple[tuple[ContributionDelta, ...], tuple[ContributionDelta, ...]]:
    """Split deltas into (worst regressions, best improvements).

    Both lists are ordered by absolute size, largest first, and capped at
    *limit*.  Zero deltas appear in neither.
    """
    ranked = sorted(deltas.items(), key=lambda kv: abs(kv[1]), reverse=True)
    regressions = tuple(ContributionDelta(k, v) for k, v in ranked if v < 0)[:limit]
    improvements = tuple(ContributionDelta(k, v) for k, v in ranked if v > 0)[:limit]
    return regressions, improvements


def metric_deltas(
    base: Mapping[str, object] | None,
    head: Mapping[str, object] | None,
    tracked: tuple[str, ...] = TRACKED_METRICS,
) -> dict[str, float]:
    """Head-minus-base for tracked metrics numeric on at least one side."""
    deltas: dict[str, float] = {}
    for name in tracked:
        before = base.get(name) if base else None
        after = head.get(name) if head else None
        if not (_is_number(before) or _is_number(after)):
            continue
        deltas[name] = (after if _is_number(after) else 0) - (  # type: ignore[operator]
            before if _is_number(before) else 0
        )
    return deltas


def noteworthy_changes(
    base: Mapping[str, object] | None,
    head: Mapping[str, object] | None,
    thresholds: Mapping[str, float] | None = None,
) -> tuple[MetricChange, ...]:
    """Metric movements whose magnitude meets the per-metric threshold.

    *thresholds* is merged over :data:`DEFAULT_NOTEWORTHY_THRESHOLDS`.  A
    metric without a positive threshold is never noteworthy.  Results are
    ordered by absolute delta, largest first.
    """
    limits = {**DEFAULT_NOTEWORTHY_THRESHOLDS, **(thresholds or {})}
    changes = []
    for name, delta in metric_deltas(base, head).items():
        limit = limits.get(name) or math.inf
        if limit <= 0:
            limit = math.inf
        if abs(delta) >= limit:
            changes.append(MetricChange(
                metric=name,
                base_value=base.get(name) if base else None,
                head_value=head.get(name) if head else None,
                delta=delta,
            ))
    changes.sort(key=lambda c: abs(c.delta), reverse=True)
    return tuple(changes)


# ---------------------------------------------------------------------------
# Diff
# ---------------------------------------------------------------------------


def diff_pages(
    base: PageRunEntry | None,
    head: PageRunEntry | None,
    key: str,
    thresholds: Mapping[str, float] | None = None,
) -> PageDiff:
    """Compare one page; either side may be absent."""
    base_score = _page_score(base)
    head_score = _page_score(head)
    name = (head.name if head else None) or (base.name if base else None) or key

    if head is not None and _is_number(head.weight):
        weight = float(head.weight)
    elif base is not None and _is_number(base.weight):
        weight = float(base.weight)
    else:
        weight = 1.0

    ceiling_change = None
    if (
        base is not None
        and head is not None
        and base.ceiling_applied != head.ceiling_applied
    ):
        ceiling_change = (base.ceiling_applied, head.ceiling_applied)

    regressions, improvements = top_changes(contribution_deltas(
        base.contributions if base else None,
        head.contributions if head else None,
    ))

    return PageDiff(
        key=key,
        name=name,
        base_score=base_score,
        head_score=head_score,
        delta=_page_delta(base_score, head_score),
        grade_transition=GradeTransition(_page_grade(base), _page_grade(head)),
        weight=weight,
        regressions=regressions,
        improvements=improvements,
        noteworthy=noteworthy_changes(
            base.metrics if base else None,
            head.metrics if head else None,
            thresholds,
        ),
        ceiling_change=ceiling_change,
    )


def diff_snapshots(
    base: RunSnapshot,
    head: RunSnapshot,
    noteworthy_thresholds: Mapping[str, float] | None = None,
) -> DiffResult:
    """Compare *base* (older) with *head* (newer) for the same product.

    Raises ValidationError when the snapshots belong to different products.
    """
    if base.product.casefold() != head.product.casefold():
        raise ValidationError(
            f"cannot diff snapshots of different products: "
            f"{base.product!r} vs {head.product!r}"
        )

    base_pages = _index_pages(base.pages)
    head_pages = _index_pages(head.pages)
    keys = list(dict.fromkeys([*base_pages, *head_pages]))

    rows = [
        diff_pages(base_pages.get(k), head_pages.get(k), k, noteworthy_thresholds)
        for k in keys
    ]
    rows.sort(key=lambda row: row.delta)

    base_score = base.score100 if _is_number(base.score100) else 0
    head_score = head.score100 if _is_number(head.score100) else 0

    return DiffResult(
        product=head.product,
        base_timestamp=base.timestamp,
        head_timestamp=head.timestamp,
        base_score=base_score,
        head_score=head_score,
        score_delta=round_half_up(head_score - base_score),
        grade_transition=GradeTransition(
            base.grade or UNKNOWN_GRADE, head.grade or UNKNOWN_GRADE
        ),
        pages=tuple(rows),
    )


__all__ = [
    "ABSENT_PAGE",
    "ContributionDelta",
    "DEFAULT_NOTEWORTHY_THRESHOLDS",
    "DiffResult",
    "GradeTransition",
    "MetricChange",
    "PageDiff",
    "TOP_CONTRIBUTION_CHANGES",
    "TRACKED_METRICS",
    "UNKNOWN_GRADE",
    "contribution_deltas",
    "diff_pages",
    "diff_snapshots",
    "metric_deltas",
    "noteworthy_changes",
    "top_changes",
]
