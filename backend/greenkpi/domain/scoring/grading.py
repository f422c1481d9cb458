"""Score -> letter grade mapping."""

from __future__ import annotations

from .models import STANDARD_SCALE, Grade, ScoringScale

_GRADES_BEST_FIRST = (Grade.A, Grade.B, Grade.C, Grade.D, Grade.E, Grade.F)


def grade_for(score: float, scale: ScoringScale = STANDARD_SCALE) -> Grade:
    """Return the first grade whose cutoff *score* reaches, else G."""
    for grade, cutoff in zip(_GRADES_BEST_FIRST, scale.grade_cutoffs):
        if score >= cutoff:
            return grade
    return Grade.G


__all__ = ["grade_for"]
