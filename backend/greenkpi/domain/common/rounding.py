"""Rounding shared by scoring and diffing.

Python's ``round`` uses banker's rounding (``round(2.5) == 2``).  Scores
persisted by earlier runs were rounded half up, so every score and delta
goes through :func:`round_half_up` to stay comparable with them.
"""

from __future__ import annotations

import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer, ties toward +infinity (2.5 -> 3, -2.5 -> -2).

    The fraction is compared with 0.5 rather than added to it; the sum
    ``0.49999999999999994 + 0.5`` already rounds to 1.0 in binary floating point.
    """
    whole = math.floor(value)
    return int(whole) + (1 if value - whole >= 0.5 else 0)


__all__ = ["round_half_up"]
