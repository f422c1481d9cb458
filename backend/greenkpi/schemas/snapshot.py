"""Schemas for persisted run snapshots.

The JSON document shape is shared with every snapshot written so far and
is append-only: fields may be added, never renamed or removed, otherwise
older runs could no longer be diffed.  Page entries keep their historical
camelCase keys (``effW``, ``ceilingApplied``...).
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from greenkpi.domain.history.models import PageRunEntry, RunSnapshot

SNAPSHOT_FORMAT_VERSION = 1


class PageEntrySchema(BaseModel):
    """One page within a snapshot document."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: Optional[str] = None
    url: Optional[str] = None
    score: float = 0
    grade: str = "?"
    weight: float = 1
    metrics: Dict[str, Any] = Field(default_factory=dict)
    norms: Optional[Dict[str, float]] = None
    breakdown: Optional[Dict[str, float]] = None
    effective_weights: Optional[Dict[str, float]] = Field(default=None, alias="effW")
    ceiling_applied: int = Field(default=100, alias="ceilingApplied")
    scale_factor: float = Field(default=1, alias="scale")

    @field_validator("score", "weight", mode="before")
    @classmethod
    def null_as_default(cls, v, info):
        if v is None:
            return 1 if info.field_name == "weight" else 0
        return v

    @field_validator("metrics", mode="before")
    @classmethod
    def metrics_null_as_empty(cls, v):
        return {} if v is None else v

    def to_domain(self) -> PageRunEntry:
        return PageRunEntry(
            name=self.name or self.url or "",
            url=self.url,
            score=self.score,
            grade=self.grade or "?",
            weight=self.weight,
            metrics=dict(self.metrics),
            contributions=dict(self.breakdown or {}),
            normalized_sub_scores={k: int(v) for k, v in (self.norms or {}).items()},
            effective_weights=dict(self.effective_weights or {}),
            ceiling_applied=self.ceiling_applied,
            scale_factor=self.scale_factor,
        )

    @classmethod
    def from_domain(cls, page: PageRunEntry) -> "PageEntrySchema":
        return cls(
            name=page.name,
            url=page.url,
            score=page.score,
            grade=page.grade,
            weight=page.weight,
            metrics=dict(page.metrics),
            norms=dict(page.normalized_sub_scores),
            breakdown=dict(page.contributions),
            effective_weights=dict(page.effective_weights),
            ceiling_applied=page.ceiling_applied,
            scale_factor=page.scale_factor,
        )


class RunSnapshotSchema(BaseModel):
    """A whole snapshot document."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    version: int = SNAPSHOT_FORMAT_VERSION
    product: str
    timestamp: datetime = Field(alias="date")
    score100: int
    grade: str
    score5: str = "0.0"
    weights: Optional[Dict[str, float]] = None
    thresholds: Optional[Dict[str, Any]] = None
    score_ceilings: Optional[List[Dict[str, Any]]] = None
    pages: List[PageEntrySchema]

    @field_validator("score5", mode="before")
    @classmethod
    def score5_as_text(cls, v):
        """Older writers stored score5 as a number."""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return f"{v:.1f}"
        return v

    @field_validator("timestamp")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        return v if v.tzinfo is not None else v.replace(tzinfo=timezone.utc)

    def to_domain(self) -> RunSnapshot:
        return RunSnapshot(
            product=self.product,
            timestamp=self.timestamp,
            score100=self.score100,
            grade=self.grade,
            score5=self.score5,
            pages=tuple(p.to_domain() for p in self.pages),
            weight_config=self.weights,
            threshold_config=self.thresholds,
            ceiling_config=tuple(self.score_ceilings) if self.score_ceilings is not None else None,
        )

    @classmethod
    def from_domain(cls, snapshot: RunSnapshot) -> "RunSnapshotSchema":
        return cls(
            product=snapshot.product,
            timestamp=snapshot.timestamp,
            score100=snapshot.score100,
            grade=snapshot.grade,
            score5=snapshot.score5,
            weights=dict(snapshot.weight_config) if snapshot.weight_config is not None else None,
            thresholds=dict(snapshot.threshold_config) if snapshot.threshold_config is not None else None,
            score_ceilings=(
                [dict(rule) for rule in snapshot.ceiling_config]
                if snapshot.ceiling_config is not None else None
            ),
            pages=[PageEntrySchema.from_domain(p) for p in snapshot.pages],
        )

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)
