"""Domain models for run history.

A RunSnapshot is the immutable record of one completed scoring run over
every page of a product.  Later runs create new snapshots; existing ones
are never edited.  These classes carry no persistence concerns; the JSON
document shape lives in ``greenkpi.schemas.snapshot``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime

from ..common.errors import ValidationError


def page_key(name: str | None, url: str | None) -> str:
    """Case-insensitive identity of a page across runs (name, else URL)."""
    return (name or url or "").lower()


@dataclass(frozen=True)
class PageRunEntry:
    """One page's scoring outcome within a run."""

    name: str
    url: str | None
    score: float
    grade: str
    weight: float = 1.0
    metrics: Mapping[str, object] = field(default_factory=dict)
    contributions: Mapping[str, float] = field(default_factory=dict)
    normalized_sub_scores: Mapping[str, int] = field(default_factory=dict)
    effective_weights: Mapping[str, float] = field(default_factory=dict)
    ceiling_applied: int = 100
    scale_factor: float = 1.0

    @property
    def key(self) -> str:
        return page_key(self.name, self.url)


@dataclass(frozen=True)
class RunSnapshot:
    """Immutable result of one full run for a product."""

    product: str
    timestamp: datetime
    score100: int
    grade: str
    score5: str
    pages: tuple[PageRunEntry, ...] = ()
    weight_config: Mapping[str, float] | None = None
    threshold_config: Mapping[str, object] | None = None
    ceiling_config: tuple[Mapping[str, object], ...] | None = None

    def __post_init__(self) -> None:
        if not self.product:
            raise ValidationError("snapshot product must not be empty")
        if not isinstance(self.pages, tuple):
            object.__setattr__(self, "pages", tuple(self.pages))


@dataclass(frozen=True)
class SnapshotRef:
    """Lightweight pointer to a stored snapshot.

    ``location`` is opaque to the domain (a file path for the JSON store).
    Refs sort chronologically by ``label`` (the run timestamp string).
    """

    product: str
    label: str
    location: str


__all__ = [
    "PageRunEntry",
    "RunSnapshot",
    "SnapshotRef",
    "page_key",
]
