"""Type aliases shared by the scoring and history sub-packages.

Metric records come from an external collector; the aliases name what the
scorer accepts without tying it to a concrete mapping type.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Union

# Raw measured value: numeric counts/percentages or boolean flags
MetricValue = Union[int, float, bool]

# One page-run worth of measured facts, keyed by metric name
MetricsRecord = Mapping[str, MetricValue]
