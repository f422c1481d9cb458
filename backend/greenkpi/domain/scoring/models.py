"""Domain models for the composite scoring bounded context.

Pure value objects and enums for threshold bands, scoring scales, letter
grades and scoring results.  All dataclasses use frozen=True so that a
result handed to a report renderer can never be changed behind its back.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from ..common.errors import ConfigurationError


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Direction(str, Enum):
    """Which way a metric improves."""

    LOWER_BETTER = "lower_better"
    HIGHER_BETTER = "higher_better"
    BOOLEAN = "boolean"  # true is the unfavorable value

    @classmethod
    def parse(cls, raw: str) -> "Direction":
        """Accept snake_case values and the camelCase spellings used in YAML."""
        aliases = {
            "lowerbetter": cls.LOWER_BETTER,
            "higherbetter": cls.HIGHER_BETTER,
        }
        key = raw.strip()
        try:
            return cls(key.lower())
        except ValueError:
            pass
        compact = key.replace("_", "").replace("-", "").lower()
        if compact in aliases:
            return aliases[compact]
        raise ConfigurationError(f"unknown direction {raw!r}")


class Grade(str, Enum):
    """Letter grades, A best down to G worst."""

    A = "A"
    B = "B"
    C = "C"
    D = "D"
    E = "E"
    F = "F"
    G = "G"


# ---------------------------------------------------------------------------
# Threshold bands
# ---------------------------------------------------------------------------


BAND_SIZE = 4


@dataclass(frozen=True)
class ThresholdBand:
    """Four ordered cut-points defining five contiguous score tiers.

    For ``LOWER_BETTER`` the first cut-point bounds the best tier; for
    ``HIGHER_BETTER`` the last one does.  Cut-points must be finite and
    non-decreasing in both cases.
    """

    cut_points: tuple[float, float, float, float]
    direction: Direction = Direction.LOWER_BETTER

    def __post_init__(self) -> None:
        if self.direction is Direction.BOOLEAN:
            raise ConfigurationError(
                "boolean metrics are scored without a threshold band"
            )
        if len(self.cut_points) != BAND_SIZE:
            raise ConfigurationError(
                f"threshold band needs exactly {BAND_SIZE} cut-points, "
                f"got {len(self.cut_points)}"
            )
        for point in self.cut_points:
            if isinstance(point, bool) or not isinstance(point, (int, float)):
                raise ConfigurationError(
                    f"threshold cut-point {point!r} is not a number"
                )
            if not math.isfinite(point):
                raise ConfigurationError(
                    f"threshold cut-point {point!r} is not finite"
                )
        for lower, upper in zip(self.cut_points, self.cut_points[1:]):
            if lower > upper:
                raise ConfigurationError(
                    f"threshold cut-points must be non-decreasing, "
                    f"got {list(self.cut_points)}"
                )

    @classmethod
    def of(
        cls,
        cut_points: Sequence[float],
        direction: Direction = Direction.LOWER_BETTER,
    ) -> "ThresholdBand":
        """Build a band from any sequence (lists come straight from YAML)."""
        if isinstance(cut_points, (str, bytes)) or not isinstance(
            cut_points, Sequence
        ):
            raise ConfigurationError(
                f"threshold band must be a list of {BAND_SIZE} numbers, "
                f"got {cut_points!r}"
            )
        return cls(tuple(cut_points), direction)  # type: ignore[arg-type]

    def as_list(self) -> list[float]:
        return list(self.cut_points)


# ---------------------------------------------------------------------------
# Scoring scale
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ScoringScale:
    """Sub-score tiers and grade cutoffs that belong together.

    ``tiers`` lists the five sub-scores from best to worst band.
    ``grade_cutoffs`` lists the minimum score for A through F; anything
    below the last cutoff is a G.
    """

    name: str
    tiers: tuple[int, int, int, int, int]
    grade_cutoffs: tuple[int, int, int, int, int, int]
    boolean_favorable: int = 100
    boolean_unfavorable: int = 40

    def __post_init__(self) -> None:
        if len(self.tiers) != BAND_SIZE + 1:
            raise ConfigurationError(
                f"scale {self.name!r} needs {BAND_SIZE + 1} tiers"
            )
        if list(self.tiers) != sorted(self.tiers, reverse=True):
            raise ConfigurationError(
                f"scale {self.name!r} tiers must be decreasing"
            )
        if len(self.grade_cutoffs) != len(Grade) - 1:
            raise ConfigurationError(
                f"scale {self.name!r} needs {len(Grade) - 1} grade cutoffs"
            )
        if list(self.grade_cutoffs) != sorted(self.grade_cutoffs, reverse=True):
            raise ConfigurationError(
                f"scale {self.name!r} grade cutoffs must be decreasing"
            )


STANDARD_SCALE = ScoringScale(
    name="standard",
    tiers=(100, 75, 50, 25, 0),
    grade_cutoffs=(90, 75, 60, 45, 30, 15),
)

LEGACY_SCALE = ScoringScale(
    name="legacy",
    tiers=(100, 80, 60, 40, 20),
    grade_cutoffs=(90, 80, 70, 60, 50, 40),
)

SCALES: dict[str, ScoringScale] = {
    STANDARD_SCALE.name: STANDARD_SCALE,
    LEGACY_SCALE.name: LEGACY_SCALE,
}


def get_scale(name: str) -> ScoringScale:
    """Look up a scoring scale by name."""
    if name not in SCALES:
        raise ConfigurationError(
            f"Unknown scoring scale: {name}. Valid options: {list(SCALES)}"
        )
    return SCALES[name]


# ---------------------------------------------------------------------------
# Result value object
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CompositeScoreResult:
    """Outcome of scoring one page's metrics.

    ``per_metric_contribution`` holds contributions after the ceiling scale
    factor, so they sum (before rounding) to the pre-clamp score.
    """

    score: int
    grade: Grade
    per_metric_contribution: dict[str, float]
    normalized_sub_scores: dict[str, int]
    effective_weights: dict[str, float]
    ceiling_applied: int
    scale_factor: float
    missing_metrics: tuple[str, ...] = field(default=())


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

__all__ = [
    "BAND_SIZE",
    "CompositeScoreResult",
    "Direction",
    "Grade",
    "LEGACY_SCALE",
    "SCALES",
    "STANDARD_SCALE",
    "ScoringScale",
    "ThresholdBand",
    "get_scale",
]
